import hashlib
import hmac
from datetime import date

import httpx
import pytest

from app.services import payments
from app.services.payments import PaymentGatewayError, RazorpayClient, payment_signature, signature_matches
from app.services.pricing import InvalidBookingPeriod, booking_amount, booking_days, prorated_amount, to_paise
from app.services.storage import cloudinary_signature

SECRET = "rzp_test_secret"


def test_signature_is_hmac_sha256_of_order_and_payment():
    expected = hmac.new(SECRET.encode(), b"order_1|pay_1", hashlib.sha256).hexdigest()
    assert payment_signature("order_1", "pay_1", SECRET) == expected
    assert payment_signature("order_1", "pay_1", SECRET) == payment_signature("order_1", "pay_1", SECRET)


def test_single_character_mutation_breaks_signature():
    sig = payment_signature("order_ABC", "pay_XYZ", SECRET)
    assert signature_matches("order_ABC", "pay_XYZ", sig, SECRET)
    assert not signature_matches("order_ABD", "pay_XYZ", sig, SECRET)
    assert not signature_matches("order_ABC", "pay_XYy", sig, SECRET)
    assert not signature_matches("order_ABC", "pay_XYZ", sig, SECRET + "x")


def test_prorated_amount():
    assert booking_amount(30000, date(2026, 1, 1), date(2026, 1, 11)) == 10000
    assert prorated_amount(1000, 7) == 234
    assert booking_days(date(2026, 1, 30), date(2026, 3, 1)) == 30


def test_end_must_follow_start():
    with pytest.raises(InvalidBookingPeriod):
        booking_days(date(2026, 1, 5), date(2026, 1, 5))


def test_to_paise():
    assert to_paise(10000) == 1000000
    assert to_paise(99.99) == 9999


def test_unconfigured_gateway_refuses_orders():
    with pytest.raises(PaymentGatewayError):
        RazorpayClient("", "").create_order(100, "INR", "receipt_1")


def _patch_transport(monkeypatch, handler):
    real_client = httpx.Client
    monkeypatch.setattr(payments.httpx, "Client", lambda **kw: real_client(transport=httpx.MockTransport(handler), **kw))


def test_create_order_posts_with_basic_auth(monkeypatch):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = request.content
        return httpx.Response(200, json={"id": "order_123", "amount": 1000000, "currency": "INR"})

    _patch_transport(monkeypatch, handler)
    order = RazorpayClient("rzp_key", SECRET).create_order(1000000, "INR", "receipt_1")
    assert order["id"] == "order_123"
    assert seen["url"] == "https://api.razorpay.com/v1/orders"
    assert seen["auth"].startswith("Basic ")
    assert b'"amount":1000000' in seen["body"].replace(b" ", b"")


def test_create_order_error_status(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(400, json={"error": {"description": "bad"}}))
    with pytest.raises(PaymentGatewayError):
        RazorpayClient("rzp_key", SECRET).create_order(100, "INR", "receipt_1")


def test_cloudinary_signature_sorts_params():
    sig = cloudinary_signature({"timestamp": 1700000000, "folder": "hoardspace"}, "shh")
    expected = hashlib.sha1(b"folder=hoardspace&timestamp=1700000000shh").hexdigest()
    assert sig == expected
