"""
Error taxonomy shared by the data-access layer, the account service and the routes.
"""
from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"
    UNAVAILABLE = "unavailable"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def is_client_fault(self) -> bool:
        return self.status_code < 500


_STATUS_CODES = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class AcquisitionError(Exception):
    """Raised when a pooled connection cannot be obtained (exhausted, unreachable, closed)."""


class StoreUnavailableError(RuntimeError):
    """Raised at startup when the store never answered the liveness probe."""


class TokenError(Exception):
    """Base class for bearer token verification failures."""


class InvalidTokenError(TokenError):
    pass


class TokenExpiredError(TokenError):
    pass
