"""Domain Errors - typed failures carrying an ErrorKind"""
from domain.enums import ErrorKind


class CoreError(ValueError):
    """Base class for recoverable reservation core errors"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IllegalTransition(CoreError):
    kind = ErrorKind.ILLEGAL_TRANSITION


class NoOpTransition(CoreError):
    kind = ErrorKind.NO_OP_TRANSITION


class ForbiddenTransition(CoreError):
    kind = ErrorKind.FORBIDDEN_TRANSITION


class InvalidRange(CoreError):
    kind = ErrorKind.INVALID_RANGE


class QuantityExceeded(CoreError):
    kind = ErrorKind.QUANTITY_EXCEEDED


class InvalidOccupants(CoreError):
    kind = ErrorKind.INVALID_OCCUPANTS


class InvalidQuantity(CoreError):
    kind = ErrorKind.INVALID_QUANTITY


class InvalidPrice(CoreError):
    kind = ErrorKind.INVALID_PRICE


class UnknownSelection(CoreError):
    kind = ErrorKind.UNKNOWN_SELECTION


class NoDateRange(CoreError):
    kind = ErrorKind.NO_DATE_RANGE


class EmptySelection(CoreError):
    kind = ErrorKind.EMPTY_SELECTION
