"""Unit tests for product set payload normalization."""

import pytest

from live_rotator.catalog.normalizer import (
    normalize_item,
    normalize_product_set,
    normalize_product_sets,
    normalize_session_id,
    parse_product_url,
)


class TestParseProductUrl:

    def test_decodes_shop_and_item(self):
        assert parse_product_url("https://shopee.co.id/product/123/456") == (123, 456)

    def test_ignores_query_string(self):
        assert parse_product_url("https://shopee.co.id/product/1/2?sp_atk=x") == (1, 2)

    @pytest.mark.parametrize("url", [
        "https://shopee.co.id/some-product-i.1.2",
        "ftp://shopee.co.id/product/1/2",
        "",
        None,
    ])
    def test_unrecognized_urls(self, url):
        assert parse_product_url(url) is None


class TestNormalizeSessionId:

    @pytest.mark.parametrize("raw,expected", [
        ("abc", "abc"),
        ("  abc  ", "abc"),
        (12345, "12345"),
        (12345.0, "12345"),
        (None, None),
        ("", None),
        (False, None),
    ])
    def test_values(self, raw, expected):
        assert normalize_session_id(raw) == expected

    def test_rejects_other_types(self):
        with pytest.raises(ValueError):
            normalize_session_id({"id": 1})


class TestNormalizeItem:

    def test_coordinates_from_url(self):
        item = normalize_item({"id": 5, "url": "https://shopee.co.id/product/10/20"})
        assert (item.id, item.shop_id, item.item_id) == (5, 10, 20)

    def test_explicit_fields_win(self):
        item = normalize_item({
            "id": "5",
            "url": "https://shopee.co.id/product/10/20",
            "shop_id": 99,
            "item_id": "98",
        })
        assert (item.id, item.shop_id, item.item_id) == (5, 99, 98)

    def test_url_without_coordinates(self):
        item = normalize_item({"id": 5, "url": "https://example.com/x"})
        assert item.shop_id is None
        assert item.item_id is None

    def test_missing_id_raises(self):
        with pytest.raises(ValueError, match="without id"):
            normalize_item({"url": "https://shopee.co.id/product/1/2"})


class TestNormalizeProductSet:

    def test_keeps_item_order(self):
        product_set = normalize_product_set({
            "id": 1,
            "name": "Morning",
            "items": [{"id": 3, "url": ""}, {"id": 1, "url": ""}, {"id": 2, "url": ""}],
        })
        assert [item.id for item in product_set.items] == [3, 1, 2]

    def test_blank_name_gets_default(self):
        assert normalize_product_set({"id": 7, "name": "  "}).name == "Product set 7"

    def test_missing_items_means_empty(self):
        product_set = normalize_product_set({"id": 7, "name": "Empty", "items": None})
        assert product_set.is_empty

    def test_missing_id_raises(self):
        with pytest.raises(ValueError):
            normalize_product_set({"name": "x"})

    def test_niche_filter(self):
        raw = [
            {"id": 1, "name": "a", "niche_id": 1},
            {"id": 2, "name": "b", "niche_id": 2},
            {"id": 3, "name": "c"},
        ]
        assert [ps.id for ps in normalize_product_sets(raw, niche_id=1)] == [1]
        assert [ps.id for ps in normalize_product_sets(raw)] == [1, 2, 3]
