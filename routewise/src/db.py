from secrets import token_hex
from sqlalchemy import (
    JSON,
    TEXT,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
    event,
    func,
)
from sqlalchemy.orm import declarative_base, sessionmaker

from routewise.src.constants import (
    DB_URL,
    PSQL_DB_DRIVER,
    PSQL_DB_HOST,
    PSQL_DB_PASSWORD,
    PSQL_DB_NAME,
    PSQL_DB_PORT,
    PSQL_DB_USERNAME,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
    DEFAULT_CURRENCY,
    DEFAULT_TIMEZONE,
    DEFAULT_ADVANCE_BOOKING_DAYS,
)
from routewise.src.enums import (
    AccountStatus,
    BookingSource,
    BookingStatus,
    PlatformType,
    SubscriptionPlan,
    TenantStatus,
    TripStatus,
    UserRole,
)


# Global DBMS variables
dbURL = (
    DB_URL
    or f"{PSQL_DB_DRIVER}://{PSQL_DB_USERNAME}:{PSQL_DB_PASSWORD}@{PSQL_DB_HOST}:{PSQL_DB_PORT}/{PSQL_DB_NAME}"
)
if dbURL.startswith("sqlite"):
    engine = create_engine(
        url=dbURL, echo=False, connect_args={"check_same_thread": False}
    )

    @event.listens_for(engine, "connect")
    def enableForeignKeys(dbapiConnection, connectionRecord):
        cursor = dbapiConnection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    engine = create_engine(url=dbURL, echo=False)
sessionMaker = sessionmaker(bind=engine, expire_on_commit=False)
ORMbase = declarative_base()


# ----------------------------------- Tenancy DB Models ---------------------------------------#
class Tenant(ORMbase):
    """
    Represents an isolated bus-operator account scope on the platform,
    carrying the branding used by the storefront, the payment gateway and
    notification credentials, booking settings and the subscription.

    Columns:
        id (Integer):
            Primary key. Unique identifier for the tenant.

        name (String(128)):
            Display name of the tenant. Must not be null.

        slug (String(64)):
            URL-safe identifier made of lowercase letters, digits and hyphens.
            Must be unique. Used by the storefront to resolve the tenant.

        logo_url, favicon_url (TEXT):
            Optional branding assets.

        primary_color, secondary_color (String(7)):
            Branding colors in `#RRGGBB` format.
            Default to `#3B82F6` and `#1E40AF`.

        payment_gateway (JSON):
            Stripe and Razorpay credentials. Stored only, never used to
            process payments. Never exposed through the public API.

        notification_settings (JSON):
            Email, SMS and push configuration. Stored only.

        currency (String(3)):
            ISO currency code, defaults to `INR`.

        timezone (String(64)):
            IANA timezone name, defaults to `Asia/Kolkata`.

        advance_booking_days (Integer):
            How many days ahead a trip can be booked. Defaults to 30.

        cancellation_policy (JSON):
            `{"hours_before_departure": int, "refund_percentage": int}`.

        status (Integer):
            Enum representing the status of the tenant.
            Defaults to `TenantStatus.ACTIVE`. Deleting a tenant only marks
            it `TenantStatus.INACTIVE`.

        subscription_plan (Integer):
            Enum representing the subscribed plan, defaults to `SubscriptionPlan.BASIC`.

        subscription_start, subscription_end (DateTime):
            Subscription validity window.

        subscription_active (Boolean):
            Whether the subscription is active. Defaults to True.

        updated_on (DateTime):
            Timestamp automatically updated whenever the tenant record is modified.

        created_on (DateTime):
            Timestamp indicating when the tenant record was created.
    """

    __tablename__ = "tenant"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False)
    slug = Column(String(64), nullable=False, unique=True)
    # Branding
    logo_url = Column(TEXT)
    primary_color = Column(String(7), nullable=False, default=DEFAULT_PRIMARY_COLOR)
    secondary_color = Column(
        String(7), nullable=False, default=DEFAULT_SECONDARY_COLOR
    )
    favicon_url = Column(TEXT)
    # Integrations
    payment_gateway = Column(JSON, nullable=False, default=dict)
    notification_settings = Column(JSON, nullable=False, default=dict)
    # Settings
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    advance_booking_days = Column(
        Integer, nullable=False, default=DEFAULT_ADVANCE_BOOKING_DAYS
    )
    cancellation_policy = Column(JSON, nullable=False, default=dict)
    status = Column(Integer, nullable=False, default=TenantStatus.ACTIVE)
    # Subscription
    subscription_plan = Column(Integer, nullable=False, default=SubscriptionPlan.BASIC)
    subscription_start = Column(DateTime(timezone=True))
    subscription_end = Column(DateTime(timezone=True))
    subscription_active = Column(Boolean, nullable=False, default=True)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class TenantRole(ORMbase):
    """
    Represents a named permission set defined by a tenant, assigned to the
    tenant's users through `user.tenant_role_id`.

    Columns:
        id (Integer):
            Primary key.

        tenant_id (Integer):
            Foreign key referencing `tenant.id`.
            Cascades on delete.

        name (String(32)):
            Name of the role. Must be unique within the tenant.

        manage_bookings, manage_routes, manage_buses, manage_depots,
        view_analytics, manage_users, manage_settings (Boolean):
            Permission flags granted by the role.

        updated_on (DateTime):
            Timestamp automatically updated whenever the role is modified.

        created_on (DateTime):
            Timestamp indicating when the role was created.
    """

    __tablename__ = "tenant_role"
    __table_args__ = (UniqueConstraint("tenant_id", "name"),)

    id = Column(Integer, primary_key=True)
    tenant_id = Column(
        Integer,
        ForeignKey("tenant.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(32), nullable=False)
    # Permissions
    manage_bookings = Column(Boolean, nullable=False, default=False)
    manage_routes = Column(Boolean, nullable=False, default=False)
    manage_buses = Column(Boolean, nullable=False, default=False)
    manage_depots = Column(Boolean, nullable=False, default=False)
    view_analytics = Column(Boolean, nullable=False, default=False)
    manage_users = Column(Boolean, nullable=False, default=False)
    manage_settings = Column(Boolean, nullable=False, default=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Account DB Models ---------------------------------------#
class User(ORMbase):
    """
    Represents a platform account. The same identity signs in to the admin
    console (session cookie) and to the API service (JWT).

    Columns:
        id (Integer):
            Primary key. Unique identifier for the user.

        email_id (String(256)):
            Login identifier, stored lowercase. Must be unique.

        password (TEXT):
            Argon2 hash of the user's password.

        full_name (String(128)):
            Display name of the user.

        phone_number (String(32)):
            Optional contact number.

        gender (Integer):
            Optional `GenderType` value.

        date_of_birth (Date):
            Optional date of birth.

        picture_url (TEXT):
            Optional profile picture.

        address (JSON):
            `{"street", "city", "state", "country", "pincode"}`.

        preferences (JSON):
            `{"language", "currency", "notifications": {"email", "sms", "push"}}`.

        tenant_id (Integer):
            Foreign key referencing `tenant.id`. Nullable, set to null when
            the tenant row is removed.

        tenant_role_id (Integer):
            Foreign key referencing `tenant_role.id`. Grants tenant scoped
            permissions. Nullable.

        role (Integer):
            Platform wide `UserRole`. Defaults to `UserRole.USER`.

        status (Integer):
            `AccountStatus` of the user. Only active users can authenticate.

        email_verified, phone_verified (Boolean):
            Verification flags.

        last_login_at (DateTime):
            Timestamp of the last successful login on any surface.

        organization_created, bus_type_created, route_created (Boolean):
            Onboarding steps completed by the user. Null until first recorded.

        onboarding_complete (Boolean):
            Whether the onboarding wizard is finished.

        updated_on (DateTime):
            Timestamp automatically updated whenever the user is modified.

        created_on (DateTime):
            Timestamp indicating when the user registered.
    """

    __tablename__ = "user_account"

    id = Column(Integer, primary_key=True)
    email_id = Column(String(256), nullable=False, unique=True)
    password = Column(TEXT, nullable=False)
    full_name = Column(String(128), nullable=False)
    phone_number = Column(String(32))
    gender = Column(Integer)
    date_of_birth = Column(Date)
    picture_url = Column(TEXT)
    address = Column(JSON, nullable=False, default=dict)
    preferences = Column(JSON, nullable=False, default=dict)
    # Access
    tenant_id = Column(
        Integer, ForeignKey("tenant.id", ondelete="SET NULL"), index=True
    )
    tenant_role_id = Column(
        Integer, ForeignKey("tenant_role.id", ondelete="SET NULL"), index=True
    )
    role = Column(Integer, nullable=False, default=UserRole.USER)
    status = Column(Integer, nullable=False, default=AccountStatus.ACTIVE)
    email_verified = Column(Boolean, nullable=False, default=False)
    phone_verified = Column(Boolean, nullable=False, default=False)
    last_login_at = Column(DateTime(timezone=True))
    # Onboarding
    organization_created = Column(Boolean)
    bus_type_created = Column(Boolean)
    route_created = Column(Boolean)
    onboarding_complete = Column(Boolean, nullable=False, default=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class AdminSession(ORMbase):
    """
    Represents an admin console login, delivered to the browser as an
    httpOnly cookie holding the access token.

    Columns:
        id (Integer):
            Primary key. Unique identifier for this session record.

        user_id (Integer):
            Foreign key referencing `user_account.id`.
            Cascades on delete.

        access_token (String):
            Unique, securely generated 64-character hexadecimal token.

        expires_in (Integer):
            Session lifetime in seconds.

        expires_at (DateTime):
            Date and time after which the session becomes invalid.

        platform_type (Integer):
            Enum value indicating the client platform type.
            Defaults to `PlatformType.WEB`.

        client_details (TEXT):
            Optional description of the client device or browser.
            Maximum 1024 characters long.

        updated_on (DateTime):
            Timestamp automatically updated whenever the session is modified.

        created_on (DateTime):
            Timestamp indicating when the session was created.
    """

    __tablename__ = "admin_session"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    access_token = Column(
        String(64), unique=True, nullable=False, default=lambda: token_hex(32)
    )
    expires_in = Column(Integer, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    # Device related details
    platform_type = Column(Integer, default=PlatformType.WEB)
    client_details = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Operator DB Models --------------------------------------#
class Organization(ORMbase):
    """
    Represents a registered business entity of a bus operator.
    A user may own several organizations, at most one of them primary.

    Columns:
        id (Integer):
            Primary key.

        user_id (Integer):
            Foreign key referencing `user_account.id`. Owner of the record.
            Cascades on delete.

        name (String(128)):
            Registered name. Must not be null.

        address (TEXT):
            Business address. Must not be null.

        registered_office (TEXT):
            Optional registered office address.

        phone_number (String(32)), phone_number_2 (String(32)):
            Primary contact number is required, the secondary is optional.

        email_id (String(256)):
            Business email. Must not be null.

        website (TEXT):
            Optional `http(s)://` URL.

        gst_number (String(32)), pan_number (String(32)):
            Optional tax identifiers.

        is_primary (Boolean):
            Whether this is the owner's primary organization.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the record was created.
    """

    __tablename__ = "organization"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(128), nullable=False)
    address = Column(TEXT, nullable=False)
    registered_office = Column(TEXT)
    # Contact details
    phone_number = Column(String(32), nullable=False)
    phone_number_2 = Column(String(32))
    email_id = Column(String(256), nullable=False)
    website = Column(TEXT)
    # Tax details
    gst_number = Column(String(32))
    pan_number = Column(String(32))
    is_primary = Column(Boolean, nullable=False, default=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class BusType(ORMbase):
    """
    Represents a fleet configuration template: AC type, seating layout,
    per-deck pricing and the amenities on board.

    Columns:
        id (Integer):
            Primary key.

        user_id (Integer):
            Foreign key referencing `user_account.id`. Cascades on delete.

        organization_id (Integer):
            Foreign key referencing `organization.id`. Cascades on delete.

        name (String(64)):
            Name of the bus type.

        ac_type (Integer):
            `ACType` value.

        seating_type (Integer):
            `SeatingType` value.

        capacity (Integer):
            Number of berths and seats. Greater than zero.

        lower_seater_price, upper_seater_price,
        lower_sleeper_price, upper_sleeper_price (Numeric(10, 2)):
            Per deck fares. The lower seater price is mandatory,
            the rest default to zero.

        amenities (JSON):
            Sorted list of distinct `Amenity` values.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the record was created.
    """

    __tablename__ = "bus_type"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id = Column(
        Integer,
        ForeignKey("organization.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(64), nullable=False)
    ac_type = Column(Integer, nullable=False)
    seating_type = Column(Integer, nullable=False)
    capacity = Column(Integer, nullable=False)
    # Pricing
    lower_seater_price = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    upper_seater_price = Column(Numeric(10, 2, asdecimal=False), default=0)
    lower_sleeper_price = Column(Numeric(10, 2, asdecimal=False), default=0)
    upper_sleeper_price = Column(Numeric(10, 2, asdecimal=False), default=0)
    amenities = Column(JSON, nullable=False, default=list)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Route(ORMbase):
    """
    Represents a route operated by an organization between two places.

    Columns:
        id (Integer):
            Primary key.

        user_id (Integer):
            Foreign key referencing `user_account.id`. Cascades on delete.

        organization_id (Integer):
            Foreign key referencing `organization.id`. Cascades on delete.

        name (String(128)):
            Name of the route.

        origin (String(128)), destination (String(128)):
            Start and end of the route.

        distance (Numeric(10, 2)):
            Length of the route in kilometers. Greater than zero.

        duration (String(32)):
            Optional human readable travel time, e.g. `6h 30m`.

        description (TEXT):
            Optional notes.

        updated_on (DateTime):
            Timestamp automatically updated whenever the record is modified.

        created_on (DateTime):
            Timestamp indicating when the record was created.
    """

    __tablename__ = "route"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    organization_id = Column(
        Integer,
        ForeignKey("organization.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(128), nullable=False)
    origin = Column(String(128), nullable=False)
    destination = Column(String(128), nullable=False)
    distance = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    duration = Column(String(32))
    description = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class OnboardingDraft(ORMbase):
    """
    Holds the last state of the onboarding wizard submitted by a user, so
    the console can resume the flow.

    Columns:
        id (Integer):
            Primary key.

        user_id (Integer):
            Foreign key referencing `user_account.id`. One draft per user.

        organization (JSON):
            Organization step form data.

        business (JSON):
            Business step form data, keyed by `bus_types`, `routes`,
            `stops`, `fleet`, `drivers` and `workers`.

        is_complete (Boolean):
            Whether the wizard was submitted as finished.
    """

    __tablename__ = "onboarding_draft"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    organization = Column(JSON, nullable=False, default=dict)
    business = Column(JSON, nullable=False, default=dict)
    is_complete = Column(Boolean, nullable=False, default=False)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


# ----------------------------------- Travel DB Models ----------------------------------------#
class Trip(ORMbase):
    """
    Represents a scheduled run of a bus type on a route.

    No endpoint creates or modifies trips, they are read by the API service,
    the storefront search and the dashboard.

    Columns:
        organization_id, route_id, bus_type_id (Integer):
            Operating organization, route and bus configuration.

        departure_time, arrival_time (DateTime):
            Planned schedule.

        base_fare, fare_per_km, total_fare (Numeric(10, 2)), currency (String(3)):
            Fare of a seat on this trip.

        available_seats, total_seats (Integer):
            Seat inventory.

        seat_map (JSON):
            List of `{"seat_number", "type", "deck", "is_available", "price"}`.

        status (Integer):
            `TripStatus` value. Defaults to `TripStatus.SCHEDULED`.

        delay (JSON):
            `{"minutes", "reason", "updated_at"}` when delayed.

        driver, conductor (JSON):
            Crew assignment.

        amenities (JSON):
            List of `Amenity` values available on the trip.

        boarding_points, dropping_points (JSON):
            Lists of `{"name", "address", "time", "landmark"}`.

        operating_days (JSON):
            List of `Day` values for recurring trips.

        is_recurring (Boolean), parent_trip_id (Integer):
            Recurrence information.

        notes (TEXT):
            Optional notes.
    """

    __tablename__ = "trip"

    id = Column(Integer, primary_key=True)
    organization_id = Column(
        Integer,
        ForeignKey("organization.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    route_id = Column(
        Integer, ForeignKey("route.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bus_type_id = Column(
        Integer, ForeignKey("bus_type.id", ondelete="CASCADE"), nullable=False
    )
    departure_time = Column(DateTime(timezone=True), nullable=False)
    arrival_time = Column(DateTime(timezone=True), nullable=False)
    # Fare
    base_fare = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    fare_per_km = Column(Numeric(10, 2, asdecimal=False))
    total_fare = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    # Seats
    available_seats = Column(Integer, nullable=False)
    total_seats = Column(Integer, nullable=False)
    seat_map = Column(JSON, nullable=False, default=list)
    status = Column(Integer, nullable=False, default=TripStatus.SCHEDULED)
    delay = Column(JSON)
    # Crew
    driver = Column(JSON)
    conductor = Column(JSON)
    amenities = Column(JSON, nullable=False, default=list)
    boarding_points = Column(JSON, nullable=False, default=list)
    dropping_points = Column(JSON, nullable=False, default=list)
    # Recurrence
    operating_days = Column(JSON, nullable=False, default=list)
    is_recurring = Column(Boolean, nullable=False, default=False)
    parent_trip_id = Column(Integer, ForeignKey("trip.id", ondelete="SET NULL"))
    notes = Column(TEXT)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())


class Booking(ORMbase):
    """
    Represents a seat reservation made by a user on a trip.

    No endpoint creates or modifies bookings, payment processing and seat
    conflict resolution live outside this server.

    Columns:
        booking_code (String(16)):
            Unique reference, `RW` followed by twelve digits.

        user_id, tenant_id, trip_id (Integer):
            Booking owner, tenant scope and the booked trip.

        passengers (JSON):
            List of `{"name", "age", "gender", "seat_number", "id_proof"}`.

        contact (JSON):
            `{"email", "phone", "emergency_contact"}`.

        base_fare, taxes, discount, total_amount (Numeric(10, 2)), currency (String(3)):
            Fare breakdown.

        payment (JSON):
            `{"status", "method", "transaction_id", "gateway", "paid_at"}`.

        status (Integer):
            `BookingStatus` value. Defaults to `BookingStatus.PENDING`.

        cancellation (JSON):
            `{"cancelled_at", "reason", "refund_amount", "refund_status"}`.

        boarding_point, dropping_point (JSON):
            Selected stops.

        special_requests (TEXT), booking_source (Integer):
            Request notes and the `BookingSource` of the booking.
    """

    __tablename__ = "booking"

    id = Column(Integer, primary_key=True)
    booking_code = Column(String(16), nullable=False, unique=True)
    user_id = Column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id = Column(Integer, ForeignKey("tenant.id", ondelete="SET NULL"))
    trip_id = Column(
        Integer, ForeignKey("trip.id", ondelete="CASCADE"), nullable=False, index=True
    )
    passengers = Column(JSON, nullable=False, default=list)
    contact = Column(JSON, nullable=False, default=dict)
    # Fare
    base_fare = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    taxes = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    discount = Column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    total_amount = Column(Numeric(10, 2, asdecimal=False), nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    payment = Column(JSON, nullable=False, default=dict)
    status = Column(Integer, nullable=False, default=BookingStatus.PENDING)
    cancellation = Column(JSON)
    boarding_point = Column(JSON)
    dropping_point = Column(JSON)
    special_requests = Column(TEXT)
    booking_source = Column(Integer, nullable=False, default=BookingSource.WEB)
    # Metadata
    updated_on = Column(DateTime(timezone=True), onupdate=func.now())
    created_on = Column(DateTime(timezone=True), nullable=False, default=func.now())
