# app/core/payment_gateway.py
"""
Razorpay integration through Supabase edge functions.

Order creation is delegated to the `create-razorpay-order` edge function
(it holds the gateway credentials). Signature checking happens here:
Razorpay signs "<order_id>|<payment_id>" with the key secret using
HMAC-SHA256 and sends the hex digest back with the payment.
"""

import hashlib
import hmac
import logging
from typing import Any, Callable

from supabase import Client

from app.core.config import get_settings
from app.core.supabase_client import supabase_public

logger = logging.getLogger(__name__)

settings = get_settings()


class PaymentGatewayError(RuntimeError):
    """The gateway (or the edge function in front of it) failed."""


def sign_payment(gateway_order_id: str, payment_id: str, key_secret: str) -> str:
    message = f"{gateway_order_id}|{payment_id}".encode("utf-8")
    return hmac.new(key_secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_signature(
    gateway_order_id: str,
    payment_id: str,
    signature: str,
    key_secret: str,
) -> bool:
    """Timing-safe check of a Razorpay payment signature."""
    if not (gateway_order_id and payment_id and signature and key_secret):
        return False
    expected = sign_payment(gateway_order_id, payment_id, key_secret)
    return hmac.compare_digest(expected, signature)


class PaymentGateway:
    """
    Thin wrapper over the gateway edge function plus signature checks.
    """

    def __init__(
        self,
        client_factory: Callable[[], Client] = supabase_public,
        key_secret: str | None = None,
        key_id: str | None = None,
    ):
        self._client_factory = client_factory
        self.key_secret = key_secret if key_secret is not None else settings.RAZORPAY_KEY_SECRET
        self.key_id = key_id if key_id is not None else settings.RAZORPAY_KEY_ID

    def create_order(
        self,
        *,
        receipt: str,
        amount_paise: int,
        currency: str,
        notes: dict[str, Any] | None = None,
    ) -> str:
        """
        Ask the gateway for an order and return its id.

        Raises:
            PaymentGatewayError: the function failed or returned no id.
        """
        body = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            response = self._client_factory().functions.invoke(
                settings.GATEWAY_ORDER_FUNCTION,
                invoke_options={"body": body, "responseType": "json"},
            )
        except Exception as e:
            logger.error(f"Gateway order creation failed for {receipt}: {e}")
            raise PaymentGatewayError("Could not create payment order") from e

        gateway_order_id = None
        if isinstance(response, dict):
            gateway_order_id = response.get("id") or response.get("order_id")
        if not gateway_order_id:
            raise PaymentGatewayError("Payment order response had no id")
        return str(gateway_order_id)

    def verify(self, gateway_order_id: str, payment_id: str, signature: str) -> bool:
        if not self.key_secret:
            logger.error("RAZORPAY_KEY_SECRET is not configured; rejecting payment")
            return False
        return verify_signature(gateway_order_id, payment_id, signature, self.key_secret)
