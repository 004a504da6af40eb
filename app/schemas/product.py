# app/schemas/product.py
import uuid
from datetime import datetime

from sqlmodel import SQLModel

from app.schemas.pricing import PriceBreakdown


class ProductKaratRead(SQLModel):
    """
    One karat grade of a product with its unit price at the current rate.
    """

    karat: str
    net_weight: float | None
    gross_weight: float | None
    stone_weight: float | None
    stock_quantity: int
    in_stock: bool
    price: PriceBreakdown


class ProductRead(SQLModel):
    """
    Product representation for clients.

    `images` and `available_karats` are already normalised.
    """

    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None
    category: str | None = None
    images: list[str]
    image: str
    available_karats: list[str]
    making_charge_percentage: float
    created_at: datetime
    karats: list[ProductKaratRead] = []
