import enum
from typing import Dict


class ErrorKind(str, enum.Enum):
    """Discriminant for every failure the marketplace reports to a caller."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    OUT_OF_STOCK = "out_of_stock"
    DUPLICATE = "duplicate"
    CONCURRENT_MODIFICATION = "concurrent_modification"
    INTERNAL = "internal"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.INSUFFICIENT_FUNDS: 402,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.OUT_OF_STOCK: 409,
    ErrorKind.DUPLICATE: 409,
    ErrorKind.CONCURRENT_MODIFICATION: 500,
    ErrorKind.INTERNAL: 500,
}


class VendingError(Exception):
    """
    Error raised by the service layer.

    The ``kind`` decides how the error is rendered at the HTTP boundary;
    callers branch on it instead of on exception subclasses.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND.get(self.kind, 500)

    def __repr__(self):
        return f"<VendingError(kind={self.kind.value}, message='{self.message}')>"


def validation_error(message: str) -> VendingError:
    return VendingError(ErrorKind.VALIDATION, message)


def authentication_error(message: str = "Unauthorized") -> VendingError:
    return VendingError(ErrorKind.AUTHENTICATION, message)


def forbidden_error(message: str = "Forbidden") -> VendingError:
    return VendingError(ErrorKind.FORBIDDEN, message)


def not_found_error(message: str) -> VendingError:
    return VendingError(ErrorKind.NOT_FOUND, message)


def insufficient_funds_error(message: str = "Insufficient funds") -> VendingError:
    return VendingError(ErrorKind.INSUFFICIENT_FUNDS, message)


def out_of_stock_error(message: str = "Out of stock") -> VendingError:
    return VendingError(ErrorKind.OUT_OF_STOCK, message)


def duplicate_error(message: str) -> VendingError:
    return VendingError(ErrorKind.DUPLICATE, message)


def concurrent_modification_error(message: str) -> VendingError:
    return VendingError(ErrorKind.CONCURRENT_MODIFICATION, message)


def internal_error(message: str) -> VendingError:
    return VendingError(ErrorKind.INTERNAL, message)
