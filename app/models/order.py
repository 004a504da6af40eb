# app/models/order.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Amounts are a snapshot of the prices computed at checkout time and
    never change afterwards, even when the gold rate moves.
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    customer_name: str
    customer_email: str
    customer_phone: str | None = None

    shipping_address: Any = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Address block as submitted at checkout (JSON)",
    )

    # pending | confirmed | shipped | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # pending | paid | failed
    payment_status: str = Field(default="pending", index=True)
    payment_method: str | None = None

    razorpay_order_id: str | None = Field(default=None, index=True)
    razorpay_payment_id: str | None = None

    # Rupees, GST included
    subtotal: int = Field(default=0, description="Sum of line totals before GST")
    gst_amount: int = Field(default=0)
    total_amount: int = Field(description="Final amount charged (GST included)")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order, denormalised so it survives catalog edits.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    product_name: str
    product_image: str | None = None
    karat: str = Field(default="22kt", max_length=8)

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    # GST-inclusive unit price at time of order
    product_price: int
    total_price: int


class Payment(SQLModel, table=True):
    """
    Verified gateway payment for an order.
    """

    __tablename__ = "payments"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str

    amount: int
    currency: str = "INR"
    payment_method: str | None = None
    status: str = "captured"

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
