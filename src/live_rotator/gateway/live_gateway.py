"""Gateway to the remote member API driving live sessions."""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from live_rotator.catalog.normalizer import normalize_product_sets, normalize_session_id
from live_rotator.gateway.errors import (
    GatewayAuthMismatch,
    GatewayError,
    GatewayNetworkError,
    GatewayTimeout,
    GatewayValidationRejected,
    UnknownGatewayError,
)
from live_rotator.gateway.http_client import AsyncHTTPClient
from live_rotator.models.data_models import ProductItem, ProductSet
from live_rotator.monitoring.logger import StructuredLogger

ACTIVE_SESSION_PATH = "/api/shopee-live/active-session"
REPLACE_PRODUCTS_PATH = "/api/shopee-live/replace-products"
CLEAR_PRODUCTS_PATH = "/api/shopee-live/clear-products"
PRODUCT_SETS_PATH = "/api/members/product-sets"


class LiveGateway:
    """
    Session, application and catalog gateway over the member API.

    Responsibilities:
    - Look up the live session currently open for a shop account
    - Replace the product list published in a live session
    - List stored product sets for a niche
    - Translate transport and HTTP failures into typed GatewayErrors
    """

    def __init__(
        self,
        http_client: AsyncHTTPClient,
        email: str,
        password: str,
        validation_status_codes: Optional[List[int]] = None,
        auth_mismatch_status_codes: Optional[List[int]] = None,
        auth_mismatch_marker: str = "machine",
        logger: Optional[StructuredLogger] = None
    ):
        """
        Initialize gateway.

        Args:
            http_client: HTTP client bound to the member API base URL
            email: Member account email sent with every call
            password: Member account password sent with every call
            validation_status_codes: Status codes mapped to GatewayValidationRejected
            auth_mismatch_status_codes: Status codes that may carry a device mismatch
            auth_mismatch_marker: Body text that turns an auth status into GatewayAuthMismatch
            logger: Optional structured logger for telemetry
        """
        self.http_client = http_client
        self.email = email
        self.password = password
        self.validation_status_codes = frozenset(
            [400, 422] if validation_status_codes is None else validation_status_codes
        )
        self.auth_mismatch_status_codes = frozenset(
            [401] if auth_mismatch_status_codes is None else auth_mismatch_status_codes
        )
        self.auth_mismatch_marker = auth_mismatch_marker.lower()
        self.logger = logger

    async def find_active_sessions(self, account_id: int) -> List[str]:
        """
        Look up the active live session for a shop account.

        The endpoint reports a single session id or null; the result is a
        list so callers can treat "no session" as an empty sequence.

        Args:
            account_id: Shop account identifier

        Returns:
            Zero or one session ids
        """
        data = await self._call(
            "POST",
            ACTIVE_SESSION_PATH,
            {"shopee_account_id": account_id}
        )
        try:
            session_id = normalize_session_id(data.get("session_id"))
        except ValueError as e:
            raise UnknownGatewayError(str(e)) from e
        return [session_id] if session_id else []

    async def apply_product_set(
        self,
        account_id: int,
        session_id: str,
        product_set_id: int
    ) -> None:
        """
        Replace the live session's product list with a stored product set.

        Raises:
            GatewayError: On any rejected or failed call
        """
        await self._call(
            "POST",
            REPLACE_PRODUCTS_PATH,
            {
                "shopee_account_id": account_id,
                "session_id": session_id,
                "product_set_id": product_set_id,
            }
        )

    async def clear_products(self, account_id: int, session_id: str) -> None:
        """Remove every product from the live session."""
        await self._call(
            "POST",
            CLEAR_PRODUCTS_PATH,
            {"shopee_account_id": account_id, "session_id": session_id}
        )

    async def list_product_sets(self, niche_id: Optional[int] = None) -> List[ProductSet]:
        """
        List stored product sets with their items.

        Args:
            niche_id: Keep only sets of this niche when given

        Returns:
            Product sets in API order, empty sets included
        """
        data = await self._call("GET", PRODUCT_SETS_PATH, {})
        raw_sets = data.get("product_sets") or []
        try:
            return normalize_product_sets(raw_sets, niche_id=niche_id)
        except (ValueError, AttributeError, TypeError) as e:
            raise UnknownGatewayError(f"Failed to parse product sets: {e}") from e

    async def fetch_product_set_items(self, product_set_id: int) -> List[ProductItem]:
        """
        Fetch the current items of one product set.

        The API only exposes items embedded in the set listing, so this reads
        the listing and picks the set out of it.

        Returns:
            Items in insertion order, empty if the set no longer exists
        """
        for product_set in await self.list_product_sets():
            if product_set.id == product_set_id:
                return list(product_set.items)
        return []

    async def _call(self, method: str, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Perform one API call and unwrap its JSON envelope.

        Args:
            method: HTTP method
            path: API path
            payload: Body fields besides the member credentials

        Returns:
            Decoded response body

        Raises:
            GatewayTimeout: On any httpx timeout
            GatewayNetworkError: On connection level failures
            GatewayValidationRejected: On validation status codes
            GatewayAuthMismatch: On auth status codes naming the device
            UnknownGatewayError: On anything else, including success=false
        """
        body = {"email": self.email, "password": self.password, **payload}

        if self.logger:
            self.logger.api_request(method=method, path=path)

        start = asyncio.get_running_loop().time()
        try:
            response = await self.http_client.request(method, path, json=body)
        except httpx.TimeoutException as e:
            raise GatewayTimeout(f"{method} {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise GatewayNetworkError(f"{method} {path} failed: {e}") from e
        elapsed = asyncio.get_running_loop().time() - start

        if self.logger:
            self.logger.api_response(
                method=method,
                path=path,
                status=response.status_code,
                elapsed_ms=round(elapsed * 1000, 1)
            )

        if response.status_code >= 400:
            raise self._status_error(response)

        try:
            data = response.json()
        except ValueError as e:
            raise UnknownGatewayError(
                f"Failed to parse response: {e}",
                status_code=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise UnknownGatewayError(f"Unexpected response shape: {type(data).__name__}")

        if not data.get("success", False):
            raise UnknownGatewayError(data.get("message") or f"{method} {path} was not successful")

        return data

    def _status_error(self, response: httpx.Response) -> GatewayError:
        """Map a non-2xx response to the matching GatewayError."""
        status_code = response.status_code
        text = response.text

        if status_code in self.validation_status_codes:
            return GatewayValidationRejected(text, status_code=status_code)

        if (
            status_code in self.auth_mismatch_status_codes
            and self.auth_mismatch_marker in text.lower()
        ):
            return GatewayAuthMismatch(text, status_code=status_code)

        return UnknownGatewayError(text, status_code=status_code)
