# app/schemas/order.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.pricing import Karat

OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
PaymentStatus = Literal["pending", "paid", "failed"]


class ShippingAddress(SQLModel):
    model_config = ConfigDict(extra="forbid")

    line1: str
    line2: str | None = None
    city: str
    state: str
    pincode: str

    @field_validator("line1", "city", "state", "pincode")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CheckoutLine(SQLModel):
    """
    A line the customer is buying, with the karat they picked.
    Prices are never taken from the client.
    """

    product_id: uuid.UUID
    quantity: int = Field(gt=0, le=10)
    karat: Karat = "22kt"


class CheckoutCreate(SQLModel):
    """
    Payload for creating an order.

    `items` defaults to the persisted cart (priced in each product's
    primary karat) when omitted.
    """

    model_config = ConfigDict(extra="forbid")

    customer_name: str
    customer_phone: str
    shipping_address: ShippingAddress
    items: list[CheckoutLine] | None = None

    @field_validator("customer_name", "customer_phone")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v


class CheckoutOrderRead(SQLModel):
    """
    What the payment widget needs to open.
    """

    order_id: uuid.UUID
    gateway_order_id: str
    amount: int
    currency: str
    key_id: str | None = None


class PaymentVerify(SQLModel):
    model_config = ConfigDict(extra="forbid")

    gateway_order_id: str
    payment_id: str
    signature: str
    order_id: uuid.UUID


class OrderItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_image: str | None
    karat: str
    quantity: int
    product_price: int
    total_price: int


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    customer_name: str
    customer_email: str
    customer_phone: str | None
    shipping_address: Any = None
    status: OrderStatus
    payment_status: PaymentStatus
    razorpay_order_id: str | None
    subtotal: int
    gst_amount: int
    total_amount: int
    created_at: datetime


class OrderWithItemsRead(OrderRead):
    items: list[OrderItemRead]


class PaymentVerifyResult(SQLModel):
    success: bool
    order: OrderWithItemsRead


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus
