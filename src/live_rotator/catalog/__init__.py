"""Product set catalog normalization."""

from .normalizer import (
    normalize_product_set,
    normalize_product_sets,
    normalize_session_id,
    parse_product_url,
)

__all__ = [
    "normalize_product_set",
    "normalize_product_sets",
    "normalize_session_id",
    "parse_product_url",
]
