import os
import hmac
import hashlib
import logging
import time
import requests

logger = logging.getLogger(__name__)

RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_API_URL = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")

CURRENCY = "INR"


class GatewayError(Exception):
    pass


def create_gateway_order(amount: float) -> dict:
    """
    Open an order on the payment gateway for ``amount`` rupees.
    Returns the gateway's order JSON (``id``, ``amount`` in paise, ...).
    """
    if not RAZORPAY_KEY_ID or not RAZORPAY_KEY_SECRET:
        raise GatewayError("Razorpay credentials are not configured")

    payload = {
        "amount": int(round(amount * 100)),  # paise
        "currency": CURRENCY,
        "receipt": f"receipt_order_{int(time.time() * 1000)}",
    }

    try:
        response = requests.post(
            f"{RAZORPAY_API_URL}/orders",
            auth=(RAZORPAY_KEY_ID, RAZORPAY_KEY_SECRET),
            json=payload,
            timeout=15,
        )
    except requests.RequestException as e:
        raise GatewayError(str(e)) from e

    if response.status_code >= 400:
        logger.error(
            "Razorpay order failed | status=%s | response=%s",
            response.status_code,
            response.text,
        )
        raise GatewayError(f"Gateway returned {response.status_code}")

    return response.json()


def expected_signature(gateway_order_id: str, gateway_payment_id: str) -> str:
    message = f"{gateway_order_id}|{gateway_payment_id}".encode("utf-8")
    return hmac.new(
        (RAZORPAY_KEY_SECRET or "").encode("utf-8"),
        message,
        hashlib.sha256,
    ).hexdigest()


def verify_signature(gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    if not RAZORPAY_KEY_SECRET:
        logger.error("Razorpay secret not configured; rejecting signature")
        return False
    return hmac.compare_digest(
        expected_signature(gateway_order_id, gateway_payment_id),
        signature or "",
    )
