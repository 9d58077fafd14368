# intl_quote/services/order_payload.py
"""
Нормализация тела запроса в заявку на черновой заказ.

Тело приходит в одном из трёх видов (JsonPayload, FormPayload, TextPayload),
поля называются в стиле форм Shopify: ``quote[email]``, ``contact[email]``
или вложенный объект ``{"quote": {...}}``.
"""
from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from intl_quote.services.cart_utils import FALLBACK_VARIANT_ID, derive_line_items

logger = logging.getLogger(__name__)

INTERNATIONAL_QUOTE_TAGS: Tuple[str, ...] = ("International-Quote",)
PROXY_TEST_TAGS: Tuple[str, ...] = ("VIP", "PhoneOrder")

FIELD_PREFIXES = ("quote", "contact")

_COMPOUND_KEY = re.compile(r"^(\w+)\[([^\]]+)\]$")

LineItem = Dict[str, Any]


# --- payload variants --------------------------------------------------------

@dataclass(frozen=True)
class JsonPayload:
    data: Any


@dataclass(frozen=True)
class FormPayload:
    fields: Mapping[str, Any]

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, Any]]) -> "FormPayload":
        # как Object.fromEntries: при повторе ключа остаётся последнее значение
        return cls(fields=dict(pairs))


@dataclass(frozen=True)
class TextPayload:
    text: str


RawOrderPayload = Union[JsonPayload, FormPayload, TextPayload]


# --- canonical request -------------------------------------------------------

@dataclass
class ShippingAddress:
    address1: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None
    zip: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {k: v for k, v in vars(self).items() if v is not None}


@dataclass
class CanonicalOrderRequest:
    email: Optional[str] = None
    shipping_address: ShippingAddress = field(default_factory=ShippingAddress)
    line_items: List[LineItem] = field(default_factory=list)
    tags: Tuple[str, ...] = ()

    # справочные поля, в черновой заказ не уходят
    full_name: Optional[str] = None
    cart: Optional[str] = None
    cart_total: Optional[str] = None
    cart_line_items: Any = None

    def __post_init__(self):
        self.tags = tuple(dict.fromkeys(self.tags))

    def to_draft_order_input(self) -> Dict[str, Any]:
        """DraftOrderInput для мутации draftOrderCreate."""
        data: Dict[str, Any] = {
            "shippingAddress": self.shipping_address.to_dict(),
            "lineItems": [dict(item) for item in self.line_items],
            "tags": list(self.tags),
        }
        if self.email is not None:
            data["email"] = self.email
        return data

    def to_dict(self) -> Dict[str, Any]:
        addr = self.shipping_address
        return {
            "email": self.email,
            "full_name": self.full_name,
            "shipping_address1": addr.address1,
            "shipping_city": addr.city,
            "shipping_province": addr.province,
            "shipping_country": addr.country,
            "shipping_zip": addr.zip,
            "cart": self.cart,
            "cart_line_items": self.cart_line_items,
            "cart_total": self.cart_total,
            "lineItems": [dict(item) for item in self.line_items],
            "tags": list(self.tags),
        }


# --- field extraction --------------------------------------------------------

def _index_flat(fields: Mapping[Any, Any]) -> Dict[Tuple[str, str], Any]:
    """{"quote[Cart]": v} -> {("quote", "cart"): v}. Первое вхождение побеждает."""
    index: Dict[Tuple[str, str], Any] = {}
    for key, value in fields.items():
        if not isinstance(key, str):
            continue
        m = _COMPOUND_KEY.match(key.strip())
        if not m:
            continue
        index.setdefault((m.group(1).lower(), m.group(2).strip().lower()), value)
    return index


def _index_nested(data: Mapping[Any, Any]) -> Dict[Tuple[str, str], Any]:
    """{"quote": {"email": v}} -> {("quote", "email"): v}"""
    index: Dict[Tuple[str, str], Any] = {}
    for prefix in FIELD_PREFIXES:
        nested = data.get(prefix)
        if not isinstance(nested, Mapping):
            continue
        for key, value in nested.items():
            if isinstance(key, str):
                index.setdefault((prefix, key.strip().lower()), value)
    return index


class _FieldLookup:
    def __init__(self, flat: Dict[Tuple[str, str], Any], nested: Optional[Dict[Tuple[str, str], Any]] = None):
        self._flat = flat
        self._nested = nested or {}

    def raw(self, name: str) -> Any:
        name = name.lower()
        for prefix in FIELD_PREFIXES:
            for source in (self._flat, self._nested):
                value = source.get((prefix, name))
                if value is not None and value != "":
                    return value
        return None

    def text(self, name: str) -> Optional[str]:
        value = self.raw(name)
        if value is None or isinstance(value, (dict, list)):
            return None
        return str(value)


def _lookup_for(payload: RawOrderPayload) -> _FieldLookup:
    if isinstance(payload, FormPayload):
        fields = payload.fields if isinstance(payload.fields, Mapping) else {}
        return _FieldLookup(_index_flat(fields))

    if isinstance(payload, JsonPayload):
        data = payload.data
        if not isinstance(data, Mapping):
            logger.warning(f"JSON payload is {type(data).__name__}, expected an object")
            return _FieldLookup({})
        return _FieldLookup(_index_flat(data), _index_nested(data))

    # TextPayload и всё прочее: именованных полей нет
    return _FieldLookup({})


def normalize_order_payload(payload: RawOrderPayload, tags: Iterable[str] = ()) -> CanonicalOrderRequest:
    """
    Разбирает тело запроса в CanonicalOrderRequest.

    Никогда не падает: отсутствующие поля остаются None, битый
    cart_line_items откатывается на разбор текста корзины.
    Теги задаёт вызывающий код, из payload они не берутся.
    """
    fields = _lookup_for(payload)

    cart = fields.text("Cart")
    cart_line_items = fields.raw("cart_line_items")

    return CanonicalOrderRequest(
        email=fields.text("email"),
        shipping_address=ShippingAddress(
            address1=fields.text("shipping_address1"),
            city=fields.text("shipping_city"),
            province=fields.text("shipping_province"),
            country=fields.text("shipping_country"),
            zip=fields.text("shipping_zip"),
        ),
        line_items=derive_line_items(cart_line_items, cart),
        tags=tuple(tags),
        full_name=fields.text("full_name"),
        cart=cart,
        cart_total=fields.text("cart_total"),
        cart_line_items=cart_line_items,
    )


def sample_proxy_order() -> CanonicalOrderRequest:
    """Фиксированный тестовый заказ для App Proxy."""
    return CanonicalOrderRequest(
        email="customer@example.com",
        shipping_address=ShippingAddress(
            address1="123 Main St",
            city="Springfield",
            province="Illinois",
            country="United States",
            zip="62704",
        ),
        line_items=[{"variantId": FALLBACK_VARIANT_ID, "quantity": 1}],
        tags=PROXY_TEST_TAGS,
    )
