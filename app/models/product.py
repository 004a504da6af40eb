# app/models/product.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column, UniqueConstraint
from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Jewelry catalog entry.

    Price is never stored: it is derived from the per-karat net weight,
    the making charge percentage and the current gold rate.

    `images` and `available_karats` are loose JSON columns; read them
    through `app.core.parsing` rather than trusting their shape.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=255,
        index=True,
        description="Display name of the piece",
    )

    slug: str = Field(
        max_length=255,
        unique=True,
        index=True,
        description="URL-friendly identifier (unique)",
    )

    description: str | None = Field(
        default=None,
        description="Optional long description",
    )

    category: str | None = Field(
        default=None,
        max_length=50,
        index=True,
    )

    images: Any = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Ordered image URLs (JSON)",
    )

    available_karats: Any = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
        description="Karat grades this piece is made in (JSON)",
    )

    making_charge_percentage: float = Field(
        default=0,
        ge=0,
        description="Making charge as a percentage of gold value",
    )

    is_active: bool = Field(
        default=True,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class ProductKarat(SQLModel, table=True):
    """
    Weights and stock of a product for one karat grade.
    One row per (product, karat).
    """

    __tablename__ = "product_karats"
    __table_args__ = (UniqueConstraint("product_id", "karat"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    # 22kt | 18kt | 14kt | 9kt
    karat: str = Field(max_length=8)

    gross_weight: float | None = None
    stone_weight: float | None = None
    net_weight: float | None = Field(
        default=None,
        description="Grams of gold content",
    )

    stock_quantity: int = Field(
        default=0,
        ge=0,
    )
