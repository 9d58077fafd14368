# intl_quote/main.py
import asyncio
import json as _json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from intl_quote.config import Settings, load_settings, get_log_level
from intl_quote.services.order_payload import (
    CanonicalOrderRequest,
    FormPayload,
    JsonPayload,
    RawOrderPayload,
    TextPayload,
    INTERNATIONAL_QUOTE_TAGS,
    PROXY_TEST_TAGS,
    normalize_order_payload,
    sample_proxy_order,
)
from intl_quote.services.shopify_service import DraftOrderClient, submit_draft_order
from intl_quote.services.signature import ProxySignatureVerifier

logging.basicConfig(
    level=get_log_level(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("intl_quote.main")

PROXY_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

ORDERS_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def log_event(event: str, **kwargs):
    payload = {"event": event, "timestamp": int(time.time())}
    payload.update(kwargs)
    logger.info(_json.dumps(payload, ensure_ascii=False, default=str))


def _now_iso() -> str:
    """Как Date.toISOString(): 2025-01-01T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _unauthorized() -> JSONResponse:
    return JSONResponse(
        {
            "error": "Unauthorized",
            "message": "Request signature verification failed",
            "verified": False,
            "timestamp": _now_iso(),
        },
        status_code=401,
    )


async def read_order_payload(request: Request) -> RawOrderPayload:
    """Тело запроса -> JsonPayload / FormPayload / TextPayload по Content-Type."""
    content_type = (request.headers.get("content-type") or "").lower()

    if "application/json" in content_type:
        return JsonPayload(await request.json())

    if "application/x-www-form-urlencoded" in content_type or "multipart/form-data" in content_type:
        form = await request.form()
        # файлы из multipart не нужны
        return FormPayload.from_pairs((k, v) for k, v in form.multi_items() if isinstance(v, str))

    body = await request.body()
    return TextPayload(body.decode("utf-8", errors="replace"))


def _payload_echo(payload: RawOrderPayload) -> Any:
    if isinstance(payload, FormPayload):
        return dict(payload.fields)
    if isinstance(payload, JsonPayload):
        return payload.data
    return payload.text


def _orders_message(draft_order: Optional[Dict[str, Any]]) -> str:
    if draft_order is None:
        return "Order payload received; no shop supplied, draft order skipped"
    if draft_order.get("success"):
        return "Order payload received and draft order created"
    return "Order payload received but draft order creation failed"


def create_app(settings: Optional[Settings] = None, draft_orders: Optional[DraftOrderClient] = None) -> FastAPI:
    """
    Собирает приложение. Секрет и клиент Admin API передаются явно,
    из окружения читается только то, что не передано.
    """
    settings = settings or load_settings()
    verifier = ProxySignatureVerifier(settings.api_secret)
    if draft_orders is None:
        draft_orders = DraftOrderClient(settings.admin_token, settings.api_version)

    application = FastAPI(
        title="International Quote Requests",
        description="Заявки на международную доставку -> черновые заказы Shopify",
        version="1.0.0",
    )
    application.state.settings = settings
    application.state.verifier = verifier
    application.state.draft_orders = draft_orders

    logger.info(f"Configured: {settings!r}")

    def _verify(request: Request, source: str) -> bool:
        params = request.query_params.multi_items()
        verified = verifier.verify(params)
        log_event(
            "signature_checked",
            source=source,
            verified=verified,
            shop=request.query_params.get("shop"),
            has_signature=bool(request.query_params.get("signature")),
            has_secret=verifier.configured,
        )
        return verified

    async def _submit(shop: Optional[str], order: CanonicalOrderRequest) -> Optional[Dict[str, Any]]:
        result = await asyncio.to_thread(submit_draft_order, draft_orders, shop, order)
        if result is None:
            return None
        if result.get("success"):
            log_event("draft_order_created", shop=shop, draft_order_id=result.get("id"),
                      status=result.get("status"), invoice_url=result.get("invoiceUrl"))
        else:
            log_event("draft_order_failed", shop=shop, error=result.get("error"),
                      user_errors=result.get("userErrors"))
        return result

    @application.get("/health")
    def health():
        """Проверка состояния сервиса"""
        return {"status": "ok", "timestamp": int(time.time())}

    @application.get("/")
    def root():
        return {
            "service": "International Quote Requests",
            "status": "running",
            "endpoints": {
                "health": "/health",
                "proxy": "/proxy/{path}",
                "orders": "/orders",
            },
        }

    @application.get("/proxy/{path:path}")
    async def proxy_get(path: str, request: Request):
        """Тестовый маршрут App Proxy: создаёт фиксированный черновой заказ."""
        shop = request.query_params.get("shop")
        log_event("proxy_request", method="GET", path=path, shop=shop,
                  user_agent=request.headers.get("user-agent"))

        if not _verify(request, "proxy"):
            return _unauthorized()

        draft_order = await _submit(shop, sample_proxy_order())

        return JSONResponse(
            {
                "message": "App proxy is working!",
                "timestamp": _now_iso(),
                "path": path,
                "queryParams": dict(request.query_params),
                "shop": shop or "unknown",
                "host": request.headers.get("host") or "unknown",
                "userAgent": request.headers.get("user-agent") or "unknown",
                "verified": True,
                "draftOrder": draft_order,
            },
            headers=PROXY_CORS_HEADERS,
        )

    @application.post("/proxy/{path:path}")
    async def proxy_post(path: str, request: Request):
        shop = request.query_params.get("shop")
        log_event("proxy_request", method="POST", path=path, shop=shop,
                  user_agent=request.headers.get("user-agent"))

        if not _verify(request, "proxy"):
            return _unauthorized()

        try:
            payload = await read_order_payload(request)
            order = normalize_order_payload(payload, PROXY_TEST_TAGS)
        except Exception as e:
            logger.error(f"Error reading proxy payload: {e}", exc_info=True)
            return JSONResponse(
                {"success": False, "error": "Failed to process proxy payload", "message": str(e),
                 "timestamp": _now_iso(), "verified": True},
                status_code=500,
            )

        if not order.line_items:
            order = sample_proxy_order()

        draft_order = await _submit(shop, order)

        return JSONResponse(
            {
                "message": "App proxy POST is working!",
                "timestamp": _now_iso(),
                "path": path,
                "method": "POST",
                "body": _payload_echo(payload),
                "queryParams": dict(request.query_params),
                "shop": shop or "unknown",
                "verified": True,
                "draftOrder": draft_order,
            },
            headers=PROXY_CORS_HEADERS,
        )

    @application.post("/orders")
    async def create_order(request: Request):
        """Заявка с витрины -> черновой заказ с тегом International-Quote."""
        shop = request.query_params.get("shop")
        log_event("orders_request", shop=shop, user_agent=request.headers.get("user-agent"),
                  content_length=request.headers.get("content-length"))

        if not _verify(request, "orders"):
            return _unauthorized()

        try:
            payload = await read_order_payload(request)
            order = normalize_order_payload(payload, INTERNATIONAL_QUOTE_TAGS)
        except Exception as e:
            logger.error(f"Error processing order payload: {e}", exc_info=True)
            return JSONResponse(
                {"success": False, "error": "Failed to process order payload", "message": str(e),
                 "timestamp": _now_iso(), "verified": True},
                status_code=500,
            )

        logger.info(f"Parsed order: email={order.email}, line_items={len(order.line_items)}")

        draft_order = await _submit(shop, order)

        return JSONResponse(
            {
                "success": True,
                "message": _orders_message(draft_order),
                "timestamp": _now_iso(),
                "verified": True,
                "orderData": order.to_dict(),
                "draftOrder": draft_order,
            },
            status_code=200,
        )

    @application.api_route("/orders", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def orders_other_methods(request: Request):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=ORDERS_CORS_HEADERS)

        return JSONResponse(
            {"message": "Orders endpoint - use POST to send order data", "method": "POST"},
            status_code=405,
        )

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("intl_quote.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "3000")))
