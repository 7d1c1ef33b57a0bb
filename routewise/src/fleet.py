"""
Bus type helpers shared by the admin console and the onboarding wizard.

Covers the human readable labels of a configuration, the pricing summary
shown next to it, the catalogue of common presets and the validation rules
applied to bus types and routes entered in bulk.
"""

from typing import Iterable, List

from routewise.src.enums import ACType, Amenity, SeatingType

AC_TYPE_LABELS = {
    ACType.AC: "AC",
    ACType.NON_AC: "Non-AC",
}

SEATING_TYPE_LABELS = {
    SeatingType.SEATER: "Seater",
    SeatingType.SLEEPER: "Sleeper",
    SeatingType.SEATER_SLEEPER: "Seater + Sleeper",
}

COMMON_BUS_TYPES = [
    {
        "name": "AC Seater",
        "ac_type": ACType.AC,
        "seating_type": SeatingType.SEATER,
        "capacity": 40,
        "lower_seater_price": 550,
        "upper_seater_price": 450,
        "lower_sleeper_price": 0,
        "upper_sleeper_price": 0,
        "amenities": [
            Amenity.CHARGING_POINT,
            Amenity.USB_PORT,
            Amenity.WIFI,
            Amenity.WATER_BOTTLE,
        ],
    },
    {
        "name": "AC Sleeper",
        "ac_type": ACType.AC,
        "seating_type": SeatingType.SLEEPER,
        "capacity": 30,
        "lower_seater_price": 0,
        "upper_seater_price": 0,
        "lower_sleeper_price": 900,
        "upper_sleeper_price": 700,
        "amenities": [
            Amenity.CHARGING_POINT,
            Amenity.USB_PORT,
            Amenity.TYPE_C_PORT,
            Amenity.WIFI,
            Amenity.WATER_BOTTLE,
            Amenity.BLANKETS,
            Amenity.BED_SHEET,
        ],
    },
    {
        "name": "Non-AC Seater",
        "ac_type": ACType.NON_AC,
        "seating_type": SeatingType.SEATER,
        "capacity": 45,
        "lower_seater_price": 350,
        "upper_seater_price": 250,
        "lower_sleeper_price": 0,
        "upper_sleeper_price": 0,
        "amenities": [Amenity.CHARGING_POINT, Amenity.WATER_BOTTLE],
    },
    {
        "name": "Non-AC Sleeper",
        "ac_type": ACType.NON_AC,
        "seating_type": SeatingType.SLEEPER,
        "capacity": 35,
        "lower_seater_price": 0,
        "upper_seater_price": 0,
        "lower_sleeper_price": 600,
        "upper_sleeper_price": 400,
        "amenities": [Amenity.CHARGING_POINT, Amenity.WATER_BOTTLE, Amenity.BLANKETS],
    },
    {
        "name": "AC Seater + Sleeper",
        "ac_type": ACType.AC,
        "seating_type": SeatingType.SEATER_SLEEPER,
        "capacity": 50,
        "lower_seater_price": 400,
        "upper_seater_price": 350,
        "lower_sleeper_price": 700,
        "upper_sleeper_price": 600,
        "amenities": [
            Amenity.CHARGING_POINT,
            Amenity.USB_PORT,
            Amenity.TYPE_C_PORT,
            Amenity.WIFI,
            Amenity.WATER_BOTTLE,
            Amenity.BLANKETS,
            Amenity.TV,
        ],
    },
]


def displayName(ac_type: int, seating_type: int) -> str:
    """
    Compose the label of a bus configuration.

    Example:
        >>> displayName(ACType.NON_AC, SeatingType.SEATER_SLEEPER)
        'Non-AC Seater + Sleeper'
    """
    return f"{AC_TYPE_LABELS[ACType(ac_type)]} {SEATING_TYPE_LABELS[SeatingType(seating_type)]}"


def normalizeAmenities(amenities: Iterable[int] | None) -> List[int]:
    """Collapse an amenity list into a sorted list of distinct values."""
    return sorted({int(Amenity(amenity)) for amenity in amenities or []})


def _deckPrice(label: str, lower, upper) -> str:
    text = f"{label}: ₹{lower or 0:g}"
    if upper:
        text += f" / ₹{upper:g}"
    return text


def pricingText(
    seating_type: int,
    lower_seater_price=None,
    upper_seater_price=None,
    lower_sleeper_price=None,
    upper_sleeper_price=None,
) -> str:
    """
    Summarize the fares of a bus type for display.

    The upper deck fare is left out when it is zero or missing.

    Example:
        >>> pricingText(SeatingType.SEATER, 550, 450)
        'Seater: ₹550 / ₹450'
    """
    seater = _deckPrice("Seater", lower_seater_price, upper_seater_price)
    sleeper = _deckPrice("Sleeper", lower_sleeper_price, upper_sleeper_price)
    if seating_type == SeatingType.SEATER:
        return seater
    if seating_type == SeatingType.SLEEPER:
        return sleeper
    return f"{seater} | {sleeper}"


def _positive(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def busTypeErrors(busType: dict) -> List[str]:
    """
    Validate a bus type entered in the onboarding wizard.

    Rules:
        - The name must not be blank.
        - The capacity must be greater than zero.
        - The fares matching the seating layout must be greater than zero:
          lower seater for SEATER, lower sleeper for SLEEPER and all four
          deck fares for SEATER_SLEEPER.

    Returns:
        List[str]: Error messages, empty when the bus type is valid.
    """
    errors = []
    name = busType.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("Bus type name is required")
    if not _positive(busType.get("capacity")):
        errors.append("Capacity must be greater than zero")

    seatingType = busType.get("seating_type")
    if seatingType == SeatingType.SEATER:
        required = ["lower_seater_price"]
    elif seatingType == SeatingType.SLEEPER:
        required = ["lower_sleeper_price"]
    elif seatingType == SeatingType.SEATER_SLEEPER:
        required = [
            "lower_seater_price",
            "upper_seater_price",
            "lower_sleeper_price",
            "upper_sleeper_price",
        ]
    else:
        errors.append("Seating type is invalid")
        required = []
    for field in required:
        if not _positive(busType.get(field)):
            errors.append(f"{field} must be greater than zero")

    if busType.get("ac_type") not in list(ACType):
        errors.append("AC type is invalid")
    amenities = busType.get("amenities") or []
    if not isinstance(amenities, list) or any(
        amenity not in list(Amenity) for amenity in amenities
    ):
        errors.append("Amenities contain an unknown value")
    return errors


def routeErrors(route: dict) -> List[str]:
    """Validate a route entered in the onboarding wizard."""
    errors = []
    for field in ("name", "origin", "destination"):
        value = route.get(field)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"Route {field} is required")
    if not _positive(route.get("distance")):
        errors.append("Distance must be greater than zero")
    return errors
