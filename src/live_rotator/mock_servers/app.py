"""FastAPI mock of the member API for local runs and tests."""

import os
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from fastapi import FastAPI, HTTPException, Request


def sample_product_sets(niche_id: int = 1) -> List[Dict[str, Any]]:
    """Three product sets for one niche; the last one has no items."""
    return [
        {
            "id": 101,
            "name": "Morning deals",
            "niche_id": niche_id,
            "items": [
                {"id": 1, "url": "https://shopee.co.id/product/1001/2001"},
                {"id": 2, "url": "https://shopee.co.id/product/1001/2002"},
            ],
        },
        {
            "id": 102,
            "name": "Flash sale",
            "niche_id": niche_id,
            "items": [
                {"id": 3, "url": "https://shopee.co.id/product/1002/3001"},
            ],
        },
        {
            "id": 103,
            "name": "Coming soon",
            "niche_id": niche_id,
            "items": [],
        },
    ]


@dataclass
class MockGatewayState:
    """
    Scripted behavior of the mock member API.

    Attributes:
        email: Accepted member email
        password: Accepted member password
        sessions: Active session per shop account; values may be str, int or None
        product_sets: Raw product set payloads served by the listing endpoint
        replace_failures: Queued (status, detail) failures for replace-products,
            consumed one per call before any call succeeds
        applied: Successful replace-products calls, in order
        cleared: Successful clear-products calls, in order
    """
    email: str = "member@example.com"
    password: str = "secret"
    sessions: Dict[int, Any] = field(default_factory=dict)
    product_sets: List[Dict[str, Any]] = field(default_factory=sample_product_sets)
    replace_failures: Deque[Tuple[int, str]] = field(default_factory=deque)
    applied: List[Dict[str, Any]] = field(default_factory=list)
    cleared: List[Dict[str, Any]] = field(default_factory=list)

    def queue_replace_failure(self, status_code: int, detail: str = "Simulated failure") -> None:
        self.replace_failures.append((status_code, detail))

    @property
    def applied_set_ids(self) -> List[int]:
        return [call["product_set_id"] for call in self.applied]


def create_mock_app(state: Optional[MockGatewayState] = None) -> FastAPI:
    """
    Create a FastAPI mock of the member API.

    Args:
        state: Scripted behavior; a fresh MockGatewayState when omitted

    Returns:
        FastAPI application with the state attached as app.state.gateway
    """
    state = state or MockGatewayState()
    app = FastAPI(title="Mock member API")
    app.state.gateway = state

    async def read_body(request: Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Body must be JSON")
        if not isinstance(body, dict):
            raise HTTPException(status_code=400, detail="Body must be a JSON object")
        if body.get("email") != state.email or body.get("password") != state.password:
            raise HTTPException(status_code=401, detail="Invalid email or password")
        return body

    def require_account(body: Dict[str, Any]) -> int:
        account_id = body.get("shopee_account_id")
        if not isinstance(account_id, int):
            raise HTTPException(status_code=400, detail="shopee_account_id is required")
        return account_id

    @app.post("/api/shopee-live/active-session")
    async def active_session(request: Request):
        body = await read_body(request)
        account_id = require_account(body)
        return {"success": True, "session_id": state.sessions.get(account_id)}

    @app.post("/api/shopee-live/replace-products")
    async def replace_products(request: Request):
        body = await read_body(request)
        account_id = require_account(body)

        if state.replace_failures:
            status_code, detail = state.replace_failures.popleft()
            raise HTTPException(status_code=status_code, detail=detail)

        session_id = state.sessions.get(account_id)
        if session_id is None or str(session_id) != str(body.get("session_id")):
            raise HTTPException(status_code=400, detail="Session is not live for this account")

        known_ids = {ps["id"] for ps in state.product_sets}
        if body.get("product_set_id") not in known_ids:
            raise HTTPException(status_code=422, detail="Unknown product_set_id")

        state.applied.append({
            "shopee_account_id": account_id,
            "session_id": body["session_id"],
            "product_set_id": body["product_set_id"],
        })
        return {"success": True, "message": "Products replaced"}

    @app.post("/api/shopee-live/clear-products")
    async def clear_products(request: Request):
        body = await read_body(request)
        account_id = require_account(body)
        state.cleared.append({"shopee_account_id": account_id, "session_id": body.get("session_id")})
        return {"success": True}

    @app.get("/api/members/product-sets")
    async def product_sets(request: Request):
        await read_body(request)
        return {"success": True, "product_sets": state.product_sets}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


def create_app() -> FastAPI:
    """
    Factory function for uvicorn --factory.

    Reads MOCK_EMAIL, MOCK_PASSWORD, MOCK_ACCOUNT_ID, MOCK_SESSION_ID and
    MOCK_NICHE_ID from the environment.
    """
    account_id = int(os.getenv("MOCK_ACCOUNT_ID", 1))
    session_id = os.getenv("MOCK_SESSION_ID", "live-session-1") or None

    state = MockGatewayState(
        email=os.getenv("MOCK_EMAIL", "member@example.com"),
        password=os.getenv("MOCK_PASSWORD", "secret"),
        sessions={account_id: session_id},
        product_sets=sample_product_sets(int(os.getenv("MOCK_NICHE_ID", 1)))
    )
    return create_mock_app(state)
