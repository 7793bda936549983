"""Contracts the engine expects from its remote collaborators."""

from typing import List, Optional, Protocol, Sequence

from live_rotator.models.data_models import ProductItem, ProductSet


class SessionGateway(Protocol):
    """Discovers the live session currently open for an account."""

    async def find_active_sessions(self, account_id: int) -> Sequence[str]:
        """Return zero or one session tokens. An empty result is not an error."""
        ...


class ApplicationGateway(Protocol):
    """Publishes a product set into a live session."""

    async def apply_product_set(
        self,
        account_id: int,
        session_id: str,
        product_set_id: int
    ) -> None:
        """Replace the session's product list or raise a GatewayError."""
        ...


class CatalogGateway(Protocol):
    """Read access to stored product sets."""

    async def list_product_sets(self, niche_id: Optional[int] = None) -> List[ProductSet]:
        """Product sets in catalog order, empty ones included."""
        ...

    async def fetch_product_set_items(self, product_set_id: int) -> List[ProductItem]:
        ...
