# intl_quote/services/shopify_service.py
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from intl_quote.config import DEFAULT_API_VERSION
from intl_quote.services.order_payload import CanonicalOrderRequest

logger = logging.getLogger(__name__)

DRAFT_ORDER_MUTATION = """
mutation draftOrderCreate($input: DraftOrderInput!) {
  draftOrderCreate(input: $input) {
    draftOrder {
      id
      invoiceUrl
      status
      lineItems(first: 5) {
        edges {
          node {
            title
            quantity
            variant {
              id
              price
            }
          }
        }
      }
    }
    userErrors {
      field
      message
    }
  }
}
"""

REQUEST_TIMEOUT = 30


class ShopifyApiError(Exception):
    """Ошибка Admin API Shopify"""

    def __init__(self, message: str, status_code: int = 0, response_text: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text


def normalize_shop_domain(shop: str) -> str:
    """'https://my-shop' -> 'my-shop.myshopify.com'"""
    domain = (shop or "").strip().replace("https://", "").replace("http://", "").rstrip("/")
    if domain and "." not in domain:
        domain = f"{domain}.myshopify.com"
    return domain


@dataclass
class DraftOrderResult:
    draft_order_id: Optional[str] = None
    invoice_url: Optional[str] = None
    status: Optional[str] = None
    line_items: List[Dict[str, Any]] = field(default_factory=list)
    user_errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.user_errors

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "DraftOrderResult":
        """Разбирает data.draftOrderCreate из ответа GraphQL."""
        draft = payload.get("draftOrder") or {}
        edges = (draft.get("lineItems") or {}).get("edges") or []

        line_items = []
        for edge in edges:
            node = (edge or {}).get("node") or {}
            variant = node.get("variant") or {}
            line_items.append({
                "title": node.get("title"),
                "quantity": node.get("quantity"),
                "variantId": variant.get("id"),
                "price": variant.get("price"),
            })

        return cls(
            draft_order_id=draft.get("id"),
            invoice_url=draft.get("invoiceUrl"),
            status=draft.get("status"),
            line_items=line_items,
            user_errors=[
                {"field": err.get("field"), "message": err.get("message")}
                for err in payload.get("userErrors") or []
                if isinstance(err, dict)
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "id": self.draft_order_id,
            "invoiceUrl": self.invoice_url,
            "status": self.status,
            "lineItems": self.line_items,
            "userErrors": self.user_errors,
        }


class DraftOrderClient:
    """
    Создание черновых заказов через Admin GraphQL API.
    Один токен на процесс, без ретраев: ошибка отдаётся вызывающему один раз.
    """

    def __init__(self, access_token: str, api_version: str = DEFAULT_API_VERSION,
                 session: Optional[requests.Session] = None):
        self.access_token = access_token or ""
        self.api_version = api_version or DEFAULT_API_VERSION
        self._session = session or requests.Session()
        self._session.headers.update({
            "Accept": "application/json",
            "User-Agent": "International-Quote-Requests/1.0",
        })

    def graphql_url(self, shop: str) -> str:
        return f"https://{normalize_shop_domain(shop)}/admin/api/{self.api_version}/graphql.json"

    def _graphql(self, shop: str, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        if not self.access_token:
            raise ShopifyApiError("SHOPIFY_ADMIN_ACCESS_TOKEN is not configured")
        if not normalize_shop_domain(shop):
            raise ShopifyApiError("Shop domain is empty")

        url = self.graphql_url(shop)
        logger.debug(f"Making GraphQL request to {url}")

        try:
            response = self._session.post(
                url,
                json={"query": query, "variables": variables},
                headers={"X-Shopify-Access-Token": self.access_token},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.exceptions.Timeout:
            raise ShopifyApiError("Request timeout")
        except requests.exceptions.ConnectionError as e:
            raise ShopifyApiError(f"Connection error: {str(e)}")
        except requests.exceptions.RequestException as e:
            raise ShopifyApiError(f"Request error: {str(e)}")

        if not 200 <= response.status_code < 300:
            raise ShopifyApiError(
                f"Shopify API error: {response.status_code}",
                status_code=response.status_code,
                response_text=response.text[:500],
            )

        try:
            data = response.json()
        except ValueError:
            raise ShopifyApiError(
                "Invalid JSON response from Shopify API",
                status_code=response.status_code,
                response_text=response.text[:500],
            )

        if not isinstance(data, dict):
            raise ShopifyApiError("Malformed GraphQL response", status_code=response.status_code)

        if data.get("errors"):
            raise ShopifyApiError(
                f"GraphQL errors: {data['errors']}",
                status_code=response.status_code,
                response_text=response.text[:500],
            )

        return data.get("data") or {}

    def create_draft_order(self, shop: str, order: CanonicalOrderRequest) -> DraftOrderResult:
        """
        Создаёт черновой заказ.

        Returns:
            DraftOrderResult; непустой user_errors означает частичную неудачу

        Raises:
            ShopifyApiError: сеть, HTTP-статус, ошибки GraphQL
        """
        logger.info(f"Creating draft order for shop: {shop}")
        data = self._graphql(shop, DRAFT_ORDER_MUTATION, {"input": order.to_draft_order_input()})

        payload = data.get("draftOrderCreate")
        if not isinstance(payload, dict):
            raise ShopifyApiError("draftOrderCreate missing in response")

        result = DraftOrderResult.from_payload(payload)
        if result.success:
            logger.info(f"Draft order created: {result.draft_order_id} ({result.status})")
        else:
            logger.warning(f"Draft order rejected: {result.user_errors}")
        return result


def submit_draft_order(client: DraftOrderClient, shop: Optional[str],
                       order: CanonicalOrderRequest) -> Optional[Dict[str, Any]]:
    """
    Граница перехвата ошибок: ничего не пробрасывает.
    None - магазин не указан, отправка пропущена.
    """
    if not shop:
        logger.warning("No shop parameter found, skipping draft order creation")
        return None

    try:
        return client.create_draft_order(shop, order).to_dict()
    except Exception as e:
        logger.error(f"Failed to create draft order: {e}", exc_info=True)
        return {"success": False, "error": str(e)}
