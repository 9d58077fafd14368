# tests/test_cart_utils.py
import json

import pytest

from intl_quote.services.cart_utils import (
    FALLBACK_VARIANT_ID,
    MalformedLineItems,
    derive_line_items,
    parse_cart_text,
    parse_line_items_json,
)


def test_cart_text_two_items():
    items = parse_cart_text("2 × Widget $10.00\n1 × Gadget $5.00")
    assert [i["quantity"] for i in items] == [2, 1]
    assert all(i["variantId"] == FALLBACK_VARIANT_ID for i in items)


def test_cart_text_skips_non_item_lines():
    text = "Cart:\n3 × Hat $12.00\nSubtotal: $36.00\nNote × gift wrap\n"
    assert parse_cart_text(text) == [{"variantId": FALLBACK_VARIANT_ID, "quantity": 3}]


def test_cart_text_quantity_defaults_to_one():
    assert parse_cart_text("× Scarf $9.00") == [{"variantId": FALLBACK_VARIANT_ID, "quantity": 1}]


def test_cart_text_crlf_and_spacing():
    items = parse_cart_text("10×Socks $1.00\r\n4   × Boots $80.00")
    assert [i["quantity"] for i in items] == [10, 4]


def test_cart_text_only_ascii_digits():
    # арабская "3" количеством не считается
    assert parse_cart_text("٣ × Widget $10") == [{"variantId": FALLBACK_VARIANT_ID, "quantity": 1}]


def test_cart_text_splits_on_newline_only():
    items = parse_cart_text("2 × A $1\r3 × B $2 4 × C $3")
    assert items == [{"variantId": FALLBACK_VARIANT_ID, "quantity": 2}]


def test_cart_text_empty():
    assert parse_cart_text("") == []
    assert parse_cart_text(None) == []


def test_line_items_json_passthrough():
    raw = '[{"variantId":"gid://shopify/ProductVariant/123","quantity":3}]'
    assert parse_line_items_json(raw) == [
        {"variantId": "gid://shopify/ProductVariant/123", "quantity": 3}
    ]


def test_line_items_json_no_reinterpretation():
    raw = json.dumps([{"variantId": 7, "quantity": "2", "title": "ignored"}])
    assert parse_line_items_json(raw) == [{"variantId": 7, "quantity": "2"}]


def test_line_items_decoded_list():
    assert parse_line_items_json([{"variantId": "v", "quantity": 1}]) == [{"variantId": "v", "quantity": 1}]


@pytest.mark.parametrize("raw", ["{not json", '{"variantId": "x"}', "[1, 2]", "null", 42])
def test_line_items_malformed(raw):
    with pytest.raises(MalformedLineItems):
        parse_line_items_json(raw)


def test_derive_prefers_structured():
    items = derive_line_items('[{"variantId":"v1","quantity":5}]', "2 × Widget $10.00")
    assert items == [{"variantId": "v1", "quantity": 5}]


def test_derive_falls_back_to_text_on_bad_json():
    items = derive_line_items("[{broken", "2 × Widget $10.00")
    assert items == [{"variantId": FALLBACK_VARIANT_ID, "quantity": 2}]


def test_derive_bad_json_and_no_text():
    assert derive_line_items("[{broken", None) == []


def test_derive_nothing():
    assert derive_line_items() == []
