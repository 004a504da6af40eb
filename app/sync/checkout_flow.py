# app/sync/checkout_flow.py
"""
Storefront side of checkout.

    create order -> payment widget -> verify -> clear cart -> confirmation

Each step runs once. A dismissed widget leaves the pending order as it is
and tells the customer; any failure sends them to the failure page with
the message and, when one exists, the order reference.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

from supabase import AsyncClient

from app.core.config import get_settings
from app.core.notifications import Notice
from app.services.cart_rules import failure_notice, login_required_notice
from app.sync.cart_sync import CartLine, CartSynchronizer

logger = logging.getLogger(__name__)

settings = get_settings()

CONFIRMATION_ROUTE = "/order-confirmation/{order_id}"
FAILURE_ROUTE = "/order-failed"

CheckoutStatus = Literal["confirmed", "cancelled", "failed", "blocked", "busy"]


class CheckoutError(RuntimeError):
    """A checkout step failed; the message is shown to the customer."""


class PaymentDismissed(Exception):
    """The customer closed the payment widget without paying."""


@dataclass
class CustomerDetails:
    name: str
    email: str
    phone: str
    shipping_address: dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayOrder:
    order_id: str
    gateway_order_id: str
    amount: int
    currency: str = "INR"
    key_id: str | None = None


@dataclass
class PaymentReceipt:
    gateway_order_id: str
    payment_id: str
    signature: str


@dataclass
class CheckoutResult:
    status: CheckoutStatus
    order_id: str | None = None
    route: str | None = None
    message: str | None = None
    notice: Notice | None = None


class CheckoutApi(Protocol):
    async def create_order(
        self, customer: CustomerDetails, line_items: list[dict[str, Any]]
    ) -> GatewayOrder: ...

    async def verify_payment(self, order_id: str, receipt: PaymentReceipt) -> bool: ...


class PaymentWidget(Protocol):
    async def open(self, order: GatewayOrder, prefill: dict[str, str]) -> PaymentReceipt:
        """Raises PaymentDismissed if the customer closes it."""
        ...


def _pick(data: dict[str, Any], *keys: str):
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


class SupabaseCheckoutApi:
    """Calls the checkout edge functions through the async client."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _invoke(self, name: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            data = await self.client.functions.invoke(
                name, invoke_options={"body": body, "responseType": "json"}
            )
        except Exception as e:
            logger.error(f"Edge function {name} failed: {e}")
            raise CheckoutError(str(e) or f"{name} failed") from e
        if not isinstance(data, dict):
            raise CheckoutError(f"{name} returned an unexpected response")
        if data.get("error"):
            raise CheckoutError(str(data["error"]))
        return data

    async def create_order(
        self, customer: CustomerDetails, line_items: list[dict[str, Any]]
    ) -> GatewayOrder:
        data = await self._invoke(
            settings.CREATE_ORDER_FUNCTION,
            {
                "orderData": {
                    "customer_name": customer.name,
                    "customer_email": customer.email,
                    "customer_phone": customer.phone,
                    "shipping_address": customer.shipping_address,
                },
                "lineItems": line_items,
            },
        )
        order_id = _pick(data, "order_id", "orderId")
        gateway_order_id = _pick(data, "gateway_order_id", "razorpayOrderId", "razorpay_order_id")
        if not order_id or not gateway_order_id:
            raise CheckoutError("Order could not be created")
        return GatewayOrder(
            order_id=str(order_id),
            gateway_order_id=str(gateway_order_id),
            amount=int(_pick(data, "amount") or 0),
            currency=_pick(data, "currency") or settings.CURRENCY,
            key_id=_pick(data, "key_id", "keyId"),
        )

    async def verify_payment(self, order_id: str, receipt: PaymentReceipt) -> bool:
        data = await self._invoke(
            settings.VERIFY_PAYMENT_FUNCTION,
            {
                "order_id": order_id,
                "razorpay_order_id": receipt.gateway_order_id,
                "razorpay_payment_id": receipt.payment_id,
                "razorpay_signature": receipt.signature,
            },
        )
        return bool(data.get("success"))


class CheckoutFlow:
    def __init__(self, api: CheckoutApi, widget: PaymentWidget, cart: CartSynchronizer):
        self.api = api
        self.widget = widget
        self.cart = cart
        self.processing = False

    def line_items(self, lines: list[CartLine]) -> list[dict[str, Any]]:
        items = []
        for line in lines:
            unit_price = self.cart.unit_price(line)
            items.append({
                "product_id": line.product_id,
                "product_name": line.name,
                "product_image": line.image,
                "karat": line.karat,
                "quantity": line.quantity,
                "product_price": unit_price,
                "total_price": unit_price * line.quantity,
            })
        return items

    async def run(self, customer: CustomerDetails) -> CheckoutResult:
        if self.processing:
            return CheckoutResult(status="busy")
        if self.cart.user_id is None:
            notice = login_required_notice("check out")
            self.cart.notifier.notify(notice)
            return CheckoutResult(status="blocked", notice=notice)
        if not self.cart.lines:
            notice = Notice("Cart is Empty", "Add items to your cart before checking out.",
                            variant="destructive")
            self.cart.notifier.notify(notice)
            return CheckoutResult(status="blocked", notice=notice)

        self.processing = True
        try:
            return await self._run(customer)
        finally:
            self.processing = False

    async def _run(self, customer: CustomerDetails) -> CheckoutResult:
        try:
            order = await self.api.create_order(customer, self.line_items(self.cart.lines))
        except Exception as e:
            logger.exception("Checkout: order creation failed")
            return self._failed(str(e) or "Could not create order", None)

        prefill = {"name": customer.name, "email": customer.email, "contact": customer.phone}
        try:
            receipt = await self.widget.open(order, prefill)
        except PaymentDismissed:
            notice = Notice("Payment Cancelled", "You cancelled the payment. Your cart is unchanged.")
            self.cart.notifier.notify(notice)
            return CheckoutResult(status="cancelled", order_id=order.order_id, notice=notice)
        except Exception as e:
            logger.exception(f"Checkout: payment failed for order {order.order_id}")
            return self._failed(str(e) or "Payment failed", order.order_id)

        try:
            verified = await self.api.verify_payment(order.order_id, receipt)
        except Exception as e:
            logger.exception(f"Checkout: verification failed for order {order.order_id}")
            return self._failed(str(e) or "Payment verification failed", order.order_id)
        if not verified:
            return self._failed("Payment verification failed", order.order_id)

        await self.cart.clear()
        notice = Notice("Payment Successful", "Your order has been placed.")
        self.cart.notifier.notify(notice)
        return CheckoutResult(
            status="confirmed",
            order_id=order.order_id,
            route=CONFIRMATION_ROUTE.format(order_id=order.order_id),
            notice=notice,
        )

    def _failed(self, message: str, order_id: str | None) -> CheckoutResult:
        notice = failure_notice(message)
        self.cart.notifier.notify(notice)
        return CheckoutResult(
            status="failed",
            order_id=order_id,
            route=FAILURE_ROUTE,
            message=message,
            notice=notice,
        )
