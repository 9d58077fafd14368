from __future__ import annotations
import json
import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Из текста корзины вариант товара не восстановить - подставляем фиксированный
FALLBACK_VARIANT_ID = "gid://shopify/ProductVariant/49457743036715"

MULTIPLY_SIGN = "×"
CURRENCY_SIGN = "$"

_QTY_PAT = re.compile(r"([0-9]+)\s*×")


class MalformedLineItems(ValueError):
    """cart_line_items не удалось разобрать как список объектов"""


def _is_item_line(line: str) -> bool:
    return MULTIPLY_SIGN in line and CURRENCY_SIGN in line


def _line_quantity(line: str) -> int:
    m = _QTY_PAT.search(line)
    return int(m.group(1)) if m else 1


def parse_cart_text(cart_text: Optional[str]) -> List[Dict[str, Any]]:
    """
    Разбирает текстовую корзину вида "2 × Widget $10.00" построчно.
    Строка считается товаром, только если в ней есть и "×", и "$".
    """
    if not cart_text:
        return []

    items = []
    # только "\n": одиночный "\r" строку не разбивает, CRLF остаётся рабочим
    for line in str(cart_text).split("\n"):
        if not _is_item_line(line):
            continue
        items.append({"variantId": FALLBACK_VARIANT_ID, "quantity": _line_quantity(line)})
    return items


def parse_line_items_json(raw: Any) -> List[Dict[str, Any]]:
    """
    cart_line_items: JSON-строка или уже разобранный список.
    Каждый объект переносится как есть: {variantId, quantity}.

    Raises:
        MalformedLineItems: если это не список объектов
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (ValueError, TypeError, RecursionError) as e:
            raise MalformedLineItems(f"invalid JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, list):
        raise MalformedLineItems(f"expected a list, got {type(data).__name__}")

    items = []
    for entry in data:
        if not isinstance(entry, dict):
            raise MalformedLineItems(f"expected an object, got {type(entry).__name__}")
        items.append({"variantId": entry.get("variantId"), "quantity": entry.get("quantity")})
    return items


def derive_line_items(cart_line_items: Any = None, cart_text: Optional[str] = None) -> List[Dict[str, Any]]:
    """Структурный список -> текст корзины -> пусто."""
    if cart_line_items is not None:
        try:
            return parse_line_items_json(cart_line_items)
        except MalformedLineItems as e:
            logger.warning(f"Failed to parse cart_line_items, falling back to cart text: {e}")
            return parse_cart_text(cart_text)

    return parse_cart_text(cart_text)
