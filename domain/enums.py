"""Domain Enums"""
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"

    @classmethod
    def parse(cls, value: "str | BookingStatus") -> "BookingStatus":
        """Parse a status, accepting the legacy spellings used by older clients"""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        key = _LEGACY_STATUS_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown booking status: {value!r}")


_LEGACY_STATUS_ALIASES = {
    "checked-in": "checked_in",
    "checkedin": "checked_in",
    "checked-out": "checked_out",
    "checkout": "checked_out",
}


class UserRole(str, Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    HOTEL_MANAGER = "hotel_manager"
    ADMIN = "admin"


class ErrorKind(str, Enum):
    # Status machine
    ILLEGAL_TRANSITION = "IllegalTransition"
    NO_OP_TRANSITION = "NoOpTransition"
    FORBIDDEN_TRANSITION = "ForbiddenTransition"
    # Pricing aggregator
    INVALID_RANGE = "InvalidRange"
    QUANTITY_EXCEEDED = "QuantityExceeded"
    INVALID_OCCUPANTS = "InvalidOccupants"
    INVALID_QUANTITY = "InvalidQuantity"
    INVALID_PRICE = "InvalidPrice"
    UNKNOWN_SELECTION = "UnknownSelection"
    NO_DATE_RANGE = "NoDateRange"
    EMPTY_SELECTION = "EmptySelection"


class DayTone(str, Enum):
    FREE = "free"
    RESERVED = "reserved"
    OCCUPIED = "occupied"
