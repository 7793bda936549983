"""Remote API gateway for live sessions and product sets."""

from .errors import (
    GatewayAuthMismatch,
    GatewayError,
    GatewayNetworkError,
    GatewayTimeout,
    GatewayValidationRejected,
    UnknownGatewayError,
)
from .http_client import AsyncHTTPClient
from .live_gateway import LiveGateway

__all__ = [
    "AsyncHTTPClient",
    "GatewayAuthMismatch",
    "GatewayError",
    "GatewayNetworkError",
    "GatewayTimeout",
    "GatewayValidationRejected",
    "LiveGateway",
    "UnknownGatewayError",
]
