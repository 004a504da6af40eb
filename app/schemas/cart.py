# app/schemas/cart.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from app.schemas.pricing import PriceBreakdown


class CartItemCreate(SQLModel):
    """
    Payload for adding to cart.

    The stored row is keyed by product alone and the line is shown in the
    product's primary karat. Quantities past the ceiling are clamped, not
    rejected.
    """

    product_id: uuid.UUID
    quantity: int = Field(default=1, gt=0)


class CartItemUpdate(SQLModel):
    """
    Payload for setting the quantity of a cart line.
    Zero (or less) removes the line.
    """

    quantity: int


class CartItemRead(SQLModel):
    """
    Read model for a single cart line, priced at the current gold rate.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    karat: str
    name: str
    image: str
    net_weight: float | None
    making_charge_percentage: float
    stock_quantity: int
    in_stock: bool
    unit_price: PriceBreakdown
    line_total: int
    created_at: datetime


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total_quantity: int
    total_price: int


class NoticeRead(SQLModel):
    title: str
    description: str
    variant: str = "default"


class CartMutationResult(SQLModel):
    """
    Outcome of an add / update / remove: the cart after the change plus the
    message to show and whether the 10-unit ceiling trimmed the request.
    """

    cart: CartSummary
    notice: NoticeRead
    product_id: uuid.UUID
    quantity: int
    capped: bool = False
