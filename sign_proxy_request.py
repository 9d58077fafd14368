# sign_proxy_request.py
from __future__ import annotations
import argparse, json, time
from urllib.parse import urlencode

import requests

from intl_quote.services.signature import sign_proxy_params


def build_signed_query(params: dict, secret: str) -> str:
    """Query-строка с подписью App Proxy (как её строит Shopify)."""
    return urlencode(sign_proxy_params(params, secret))


def send(url: str, secret: str, params: dict, form: dict | None = None, timeout: int = 15):
    signed_url = f"{url}?{build_signed_query(params, secret)}"

    print("=== REQUEST ===")
    print("URL:", signed_url)

    if form is None:
        resp = requests.get(signed_url, timeout=timeout)
    else:
        print("Form:", form)
        resp = requests.post(signed_url, data=form, timeout=timeout)

    print("=== RESPONSE ===")
    print("Status:", resp.status_code)
    print("Body:", resp.text)


# ---------- СЦЕНАРИИ ----------

def quote_text_cart() -> dict:
    return {
        "quote[email]": "buyer@example.com",
        "quote[full_name]": "Jane Buyer",
        "quote[shipping_address1]": "1 Harbour St",
        "quote[shipping_city]": "Sydney",
        "quote[shipping_province]": "NSW",
        "quote[shipping_country]": "Australia",
        "quote[shipping_zip]": "2000",
        "quote[Cart]": "2 × Widget $10.00\n1 × Gadget $5.00",
        "quote[cart_total]": "$25.00",
    }


def quote_line_items() -> dict:
    form = quote_text_cart()
    form["quote[cart_line_items]"] = json.dumps(
        [{"variantId": "gid://shopify/ProductVariant/123", "quantity": 3}]
    )
    return form


SCENARIOS = {
    "proxy_get": None,
    "text_cart": quote_text_cart,
    "line_items": quote_line_items,
}


# ---------- CLI ----------

def parse_args():
    p = argparse.ArgumentParser(description="App proxy signed request tester")
    p.add_argument("--url", default="http://127.0.0.1:3000/orders")
    p.add_argument("--secret", default="test_secret", help="SHOPIFY_API_SECRET")
    p.add_argument("--shop", default="example.myshopify.com")
    p.add_argument("--scenario", choices=SCENARIOS.keys(), default="text_cart")
    return p.parse_args()


if __name__ == "__main__":
    args = parse_args()
    query = {
        "shop": args.shop,
        "logged_in_customer_id": "",
        "path_prefix": "/apps/quote",
        "timestamp": str(int(time.time())),
    }
    factory = SCENARIOS[args.scenario]
    send(args.url, args.secret, query, factory() if factory else None)
