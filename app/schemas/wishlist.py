# app/schemas/wishlist.py
import uuid
from datetime import datetime
from typing import Literal

from sqlmodel import SQLModel

from app.schemas.pricing import Karat, PriceBreakdown

WishlistOutcome = Literal["added", "already_in_wishlist", "removed", "not_in_wishlist"]


class WishlistItemCreate(SQLModel):
    product_id: uuid.UUID
    karat_selected: Karat = "22kt"


class WishlistItemRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    karat_selected: str
    name: str
    image: str
    net_weight: float | None
    price: PriceBreakdown
    created_at: datetime


class WishlistMutationResult(SQLModel):
    """
    `outcome` distinguishes a fresh add from a duplicate so the client
    can show "Already in Wishlist" instead of an error.
    """

    outcome: WishlistOutcome
    product_id: uuid.UUID
    karat_selected: str
    count: int
