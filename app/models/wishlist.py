# app/models/wishlist.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class WishlistItem(SQLModel, table=True):
    """
    A product a user saved for later, in a specific karat.
    Different karats of the same product are distinct entries.
    """

    __tablename__ = "wishlist"
    __table_args__ = (UniqueConstraint("user_id", "product_id", "karat_selected"),)

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    karat_selected: str = Field(max_length=8)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
