"""Typed failures raised by the remote gateway."""

from typing import Optional

from live_rotator.models.data_models import ErrorKind


class GatewayError(Exception):
    """Base class for every failure coming back from the remote API."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class GatewayValidationRejected(GatewayError):
    """The gateway rejected the request as malformed (400/422)."""
    kind = ErrorKind.VALIDATION_REJECTED


class GatewayAuthMismatch(GatewayError):
    """The member credential no longer matches the registered device."""
    kind = ErrorKind.AUTH_MISMATCH


class GatewayNetworkError(GatewayError):
    kind = ErrorKind.NETWORK


class GatewayTimeout(GatewayError):
    kind = ErrorKind.TIMEOUT


class UnknownGatewayError(GatewayError):
    kind = ErrorKind.UNKNOWN
