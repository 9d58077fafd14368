# tests/test_sign_proxy_request.py
from unittest.mock import patch
from urllib.parse import parse_qsl

from intl_quote.services.signature import verify_proxy_signature
from sign_proxy_request import SCENARIOS, build_signed_query, send


def test_signed_query_verifies_after_decoding():
    query = build_signed_query({"shop": "example.myshopify.com", "path_prefix": "/apps/quote"}, "s3cret")
    pairs = parse_qsl(query, keep_blank_values=True)
    assert pairs[-1][0] == "signature"
    assert verify_proxy_signature(pairs, "s3cret") is True


def test_send_posts_form_to_signed_url():
    form = SCENARIOS["text_cart"]()
    with patch("sign_proxy_request.requests.post") as post_mock:
        send("http://localhost:3000/orders", "s3cret", {"shop": "example.myshopify.com"}, form)

    args, kwargs = post_mock.call_args
    assert args[0].startswith("http://localhost:3000/orders?shop=example.myshopify.com&signature=")
    assert kwargs["data"] == form


def test_send_without_form_uses_get():
    with patch("sign_proxy_request.requests.get") as get_mock:
        send("http://localhost:3000/proxy/test", "s3cret", {"shop": "example.myshopify.com"})
    get_mock.assert_called_once()
