"""Normalizer for product set payloads returned by the member API.

The API is loose about types: identifiers arrive as numbers or numeric
strings, session ids as strings, numbers or null, and item coordinates may be
missing and have to be recovered from the product URL.
"""

import re
from typing import Any, Dict, List, Optional, Tuple

from live_rotator.models.data_models import ProductItem, ProductSet

# https://<host>/product/<shop_id>/<item_id>
PRODUCT_URL_PATTERN = re.compile(r"^https?://[^/\s]+/product/(\d+)/(\d+)", re.IGNORECASE)


def parse_product_url(url: str) -> Optional[Tuple[int, int]]:
    """
    Decode (shop_id, item_id) from a product URL.

    Args:
        url: Product page URL

    Returns:
        (shop_id, item_id) or None if the URL does not carry them

    Examples:
        >>> parse_product_url("https://shopee.co.id/product/123/456")
        (123, 456)
        >>> parse_product_url("https://shopee.co.id/some-slug") is None
        True
    """
    if not isinstance(url, str):
        return None
    match = PRODUCT_URL_PATTERN.match(url.strip())
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def _coerce_int(value: Any) -> Optional[int]:
    """Convert ints and numeric strings to int, anything else to None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_session_id(value: Any) -> Optional[str]:
    """
    Normalize a session id payload that may be a string, a number or null.

    Blank strings count as no session.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)):
        return str(int(value)) if isinstance(value, float) and value.is_integer() else str(value)
    raise ValueError(f"Unexpected session id type: {type(value).__name__}")


def normalize_item(raw_item: Dict) -> ProductItem:
    """
    Normalize a single product set item.

    Explicit shop_id/item_id fields win; otherwise they are decoded from the URL.

    Raises:
        ValueError: If the item has no usable id
    """
    item_id = _coerce_int(raw_item.get("id"))
    if item_id is None:
        raise ValueError(f"Product set item without id: {raw_item!r}")

    url = str(raw_item.get("url") or "").strip()
    shop = _coerce_int(raw_item.get("shop_id"))
    listing = _coerce_int(raw_item.get("item_id"))

    if shop is None or listing is None:
        decoded = parse_product_url(url)
        if decoded is not None:
            shop = shop if shop is not None else decoded[0]
            listing = listing if listing is not None else decoded[1]

    return ProductItem(id=item_id, url=url, shop_id=shop, item_id=listing)


def normalize_product_set(raw_set: Dict) -> ProductSet:
    """
    Normalize a product set with its items, keeping item insertion order.

    Raises:
        ValueError: If the set has no usable id
    """
    set_id = _coerce_int(raw_set.get("id"))
    if set_id is None:
        raise ValueError(f"Product set without id: {raw_set!r}")

    name = raw_set.get("name")
    if not isinstance(name, str) or not name.strip():
        name = f"Product set {set_id}"

    items = [normalize_item(raw) for raw in raw_set.get("items") or []]

    return ProductSet(
        id=set_id,
        name=name.strip(),
        items=items,
        description=raw_set.get("description"),
        niche_id=_coerce_int(raw_set.get("niche_id"))
    )


def normalize_product_sets(raw_sets: List[Dict], niche_id: Optional[int] = None) -> List[ProductSet]:
    """
    Normalize a list of product sets, optionally keeping only one niche.

    Args:
        raw_sets: Raw product set payloads
        niche_id: Keep only sets belonging to this niche when given

    Returns:
        Product sets in API order
    """
    product_sets = [normalize_product_set(raw) for raw in raw_sets]
    if niche_id is None:
        return product_sets
    return [ps for ps in product_sets if ps.niche_id == niche_id]
