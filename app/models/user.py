# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Storefront profile mirrored from Supabase Auth.

    `id` is the auth user id (JWT "sub"). Passwords and sessions stay in
    Supabase; this row only carries the contact details used at checkout,
    the application role ("user" | "admin") and the enabled flag admins
    toggle to lock an account out of the cart and checkout.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    full_name: str = Field(max_length=100)
    phone: str | None = Field(default=None, max_length=20)

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    is_enabled: bool = Field(default=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
