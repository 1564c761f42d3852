"""Razorpay orders and payment signature verification."""
import hashlib
import hmac
import logging

import httpx

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    pass


def payment_signature(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "<order_id>|<payment_id>" keyed with the gateway secret."""
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signature_matches(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    # ordinary str equality, not hmac.compare_digest
    return payment_signature(order_id, payment_id, secret) == signature


class RazorpayClient:
    def __init__(self, key_id: str, key_secret: str, base_url: str = "https://api.razorpay.com/v1", timeout: float = 10.0):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    def create_order(self, amount_paise: int, currency: str, receipt: str) -> dict:
        """Open an order; returns the gateway's order object (``id``, ``amount``, ``currency`` ...)."""
        if not self.configured:
            raise PaymentGatewayError("Razorpay is not configured. Set RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET.")
        payload = {"amount": amount_paise, "currency": currency, "receipt": receipt}
        try:
            with httpx.Client(timeout=self.timeout) as client:
                r = client.post(f"{self.base_url}/orders", auth=(self.key_id, self.key_secret), json=payload)
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Razorpay request failed: {type(e).__name__}: {e}") from e
        if not 200 <= r.status_code < 300:
            logger.error("[Razorpay] Order creation failed: status=%s body=%s", r.status_code, r.text[:500])
            raise PaymentGatewayError(f"Razorpay returned {r.status_code}")
        order = r.json()
        if not order.get("id"):
            raise PaymentGatewayError("Razorpay did not return an order id")
        logger.info("[Razorpay] Created order %s amount=%s %s", order["id"], amount_paise, currency)
        return order
