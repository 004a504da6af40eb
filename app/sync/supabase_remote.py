# app/sync/supabase_remote.py
"""
Supabase-backed remotes for the sync layer.

All queries run through the async client as the signed-in user, so row
level security limits them to that user's rows.
"""

import logging
from typing import Any

from postgrest.exceptions import APIError
from supabase import AsyncClient

from app.services.cart_rules import MAX_QUANTITY, clamp_add
from app.sync.cart_sync import CartLine
from app.sync.wishlist_sync import WishlistEntry

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

CART_SELECT = (
    "product_id, quantity, created_at, "
    "products(id, name, images, making_charge_percentage, available_karats, "
    "product_karats(karat, net_weight, stock_quantity))"
)
WISHLIST_SELECT = "product_id, karat_selected, created_at, products(id, name, images)"


class SupabaseCartRemote:
    def __init__(self, client: AsyncClient, max_quantity: int = MAX_QUANTITY):
        self.client = client
        self.max_quantity = max_quantity

    def _table(self):
        return self.client.table("cart_items")

    async def fetch_lines(self, user_id: str) -> list[CartLine]:
        res = await (
            self._table()
            .select(CART_SELECT)
            .eq("user_id", user_id)
            .order("created_at")
            .execute()
        )
        lines = []
        for row in res.data or []:
            line = CartLine.from_row(row)
            if line is None:
                logger.warning(f"Skipping cart row without product: {row.get('product_id')}")
                continue
            lines.append(line)
        return lines

    async def add(self, user_id: str, product_id: str, quantity: int) -> int:
        """
        Accumulate onto the stored row (or create it), clamped to the
        maximum. Returns the quantity now stored.
        """
        existing = await (
            self._table()
            .select("quantity")
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .limit(1)
            .execute()
        )
        rows = existing.data or []
        current = int(rows[0]["quantity"]) if rows else 0
        change = clamp_add(current, quantity, self.max_quantity)

        if rows:
            await (
                self._table()
                .update({"quantity": change.quantity})
                .eq("user_id", user_id)
                .eq("product_id", product_id)
                .execute()
            )
        else:
            await self._table().insert(
                {"user_id": user_id, "product_id": product_id, "quantity": change.quantity}
            ).execute()
        return change.quantity

    async def set_quantity(self, user_id: str, product_id: str, quantity: int) -> None:
        await (
            self._table()
            .update({"quantity": min(quantity, self.max_quantity)})
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .execute()
        )

    async def remove(self, user_id: str, product_id: str) -> None:
        await (
            self._table()
            .delete()
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .execute()
        )

    async def clear(self, user_id: str) -> None:
        await self._table().delete().eq("user_id", user_id).execute()


class SupabaseWishlistRemote:
    def __init__(self, client: AsyncClient):
        self.client = client

    def _table(self):
        return self.client.table("wishlist")

    async def fetch_entries(self, user_id: str) -> list[WishlistEntry]:
        res = await (
            self._table()
            .select(WISHLIST_SELECT)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        entries = [WishlistEntry.from_row(row) for row in res.data or []]
        return [e for e in entries if e is not None]

    async def add(self, user_id: str, product_id: str, karat: str) -> bool:
        try:
            await self._table().insert(
                {"user_id": user_id, "product_id": product_id, "karat_selected": karat}
            ).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                return False
            raise
        return True

    async def remove(self, user_id: str, product_id: str, karat: str) -> None:
        await (
            self._table()
            .delete()
            .eq("user_id", user_id)
            .eq("product_id", product_id)
            .eq("karat_selected", karat)
            .execute()
        )


class SupabaseGoldRateSource:
    """Newest gold_price_log row, for `PricingService.refresh_from`."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def __call__(self) -> dict[str, Any] | None:
        res = await (
            self.client.table("gold_price_log")
            .select("kt22_price, kt18_price, created_at")
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
