from enum import IntEnum


class AppID(IntEnum):
    ADMIN = 1
    API = 2
    PUBLIC = 3


class OrderIn(IntEnum):
    ASC = 1
    DESC = 2


class UserRole(IntEnum):
    USER = 1
    ADMIN = 2
    OPERATOR = 3
    DRIVER = 4
    CONDUCTOR = 5


class AccountStatus(IntEnum):
    ACTIVE = 1
    INACTIVE = 2
    SUSPENDED = 3


class GenderType(IntEnum):
    OTHER = 1
    FEMALE = 2
    MALE = 3


class PlatformType(IntEnum):
    OTHER = 1
    WEB = 2
    NATIVE = 3
    SERVER = 4


class ACType(IntEnum):
    AC = 1
    NON_AC = 2


class SeatingType(IntEnum):
    SEATER = 1
    SLEEPER = 2
    SEATER_SLEEPER = 3


class Amenity(IntEnum):
    CHARGING_POINT = 1
    USB_PORT = 2
    TYPE_C_PORT = 3
    TOILET = 4
    WIFI = 5
    WATER_BOTTLE = 6
    BLANKETS = 7
    BED_SHEET = 8
    TV = 9


class TenantStatus(IntEnum):
    ACTIVE = 1
    INACTIVE = 2
    SUSPENDED = 3


class SubscriptionPlan(IntEnum):
    BASIC = 1
    PREMIUM = 2
    ENTERPRISE = 3


class SMSProvider(IntEnum):
    TWILIO = 1
    AWS_SNS = 2


class BookingStatus(IntEnum):
    PENDING = 1
    CONFIRMED = 2
    CANCELLED = 3
    COMPLETED = 4
    NO_SHOW = 5


class PaymentStatus(IntEnum):
    PENDING = 1
    COMPLETED = 2
    FAILED = 3
    REFUNDED = 4


class PaymentMethod(IntEnum):
    CARD = 1
    UPI = 2
    NET_BANKING = 3
    WALLET = 4
    CASH = 5


class BookingSource(IntEnum):
    WEB = 1
    MOBILE = 2
    ADMIN = 3
    API = 4


class TripStatus(IntEnum):
    SCHEDULED = 1
    BOARDING = 2
    DEPARTED = 3
    IN_TRANSIT = 4
    ARRIVED = 5
    CANCELLED = 6
    DELAYED = 7


class Day(IntEnum):
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7
