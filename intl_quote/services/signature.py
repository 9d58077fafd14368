# intl_quote/services/signature.py
"""
Проверка подписи запросов App Proxy.

Shopify добавляет к проксируемому запросу параметр ``signature``:
hex(HMAC_SHA256(secret, "k1=v1k2=v2...")), где пары отсортированы по ключу
и склеены без разделителя.
"""
from __future__ import annotations
import hashlib
import hmac
import logging
from typing import Iterable, List, Mapping, Tuple, Union

logger = logging.getLogger(__name__)

SIGNATURE_PARAM = "signature"

Params = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def _pairs(parameters: Params) -> List[Tuple[str, str]]:
    """Mapping или последовательность пар -> список пар (дубли сохраняются)."""
    if isinstance(parameters, Mapping):
        return [(str(k), str(v)) for k, v in parameters.items()]
    return [(str(k), str(v)) for k, v in parameters]


def serialize_proxy_params(parameters: Params) -> str:
    """
    Сериализует параметры без ``signature``: сортировка по ключу (порядок
    кодовых точек, стабильная для дублей) и склейка ``key=value`` без разделителя.
    """
    candidates = [(k, v) for k, v in _pairs(parameters) if k != SIGNATURE_PARAM]
    candidates.sort(key=lambda pair: pair[0])
    return "".join(f"{k}={v}" for k, v in candidates)


def compute_proxy_signature(parameters: Params, secret: str) -> str:
    message = serialize_proxy_params(parameters)
    return hmac.new(secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_proxy_params(parameters: Params, secret: str) -> List[Tuple[str, str]]:
    """Возвращает пары параметров с добавленной подписью (для тестов и ручной отладки)."""
    pairs = [(k, v) for k, v in _pairs(parameters) if k != SIGNATURE_PARAM]
    pairs.append((SIGNATURE_PARAM, compute_proxy_signature(pairs, secret)))
    return pairs


def verify_proxy_signature(parameters: Params, secret: str | None) -> bool:
    if not secret:
        logger.warning("SHOPIFY_API_SECRET not configured - rejecting request")
        return False

    pairs = _pairs(parameters)
    received = next((v for k, v in pairs if k == SIGNATURE_PARAM), "")
    if not received:
        logger.info("No signature parameter found in request")
        return False

    computed = compute_proxy_signature(pairs, secret)
    is_valid = hmac.compare_digest(computed.encode("utf-8"), received.encode("utf-8"))

    logger.debug(f"Signature check: params={len(pairs) - 1}, valid={is_valid}")
    return is_valid


class ProxySignatureVerifier:
    """Проверка подписи с секретом, заданным при создании."""

    def __init__(self, secret: str | None):
        self._secret = secret or ""

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def verify(self, parameters: Params) -> bool:
        return verify_proxy_signature(parameters, self._secret)

    def __repr__(self) -> str:
        return f"ProxySignatureVerifier(configured={self.configured})"
