# app/sync/wishlist_sync.py
"""
Client-side wishlist kept in step with the `wishlist` table.

Entries are keyed by product and karat, so the same piece can be saved in
22kt and 18kt. Adds and removes are optimistic; a failed write undoes the
local change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from app.core.notifications import Notice, Notifier
from app.core.parsing import PLACEHOLDER_IMAGE, first_image
from app.services.cart_rules import failure_notice, login_required_notice
from app.sync.base import MutationResult, MutationState, Synchronizer
from app.sync.realtime import ChannelRegistry

logger = logging.getLogger(__name__)

APPLIED = (MutationState.IDLE, MutationState.OPTIMISTICALLY_APPLIED, MutationState.RECONCILING)


def wishlist_key(product_id: str, karat: str) -> str:
    return f"{product_id}-{karat}"


@dataclass
class WishlistEntry:
    product_id: str
    karat: str = "22kt"
    name: str = ""
    image: str = PLACEHOLDER_IMAGE
    created_at: datetime | str | None = None

    @property
    def key(self) -> str:
        return wishlist_key(self.product_id, self.karat)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "WishlistEntry | None":
        product_id = row.get("product_id")
        if not product_id:
            return None
        product = row.get("products") if isinstance(row.get("products"), dict) else {}
        return cls(
            product_id=str(product_id),
            karat=row.get("karat_selected") or "22kt",
            name=product.get("name") or "",
            image=first_image(product.get("images")),
            created_at=row.get("created_at"),
        )


class WishlistRemote(Protocol):
    async def fetch_entries(self, user_id: str) -> list[WishlistEntry]: ...

    async def add(self, user_id: str, product_id: str, karat: str) -> bool:
        """True when a row was inserted, False when it already existed."""
        ...

    async def remove(self, user_id: str, product_id: str, karat: str) -> None: ...


def _added_notice(name: str) -> Notice:
    return Notice("Added to Wishlist", f"{name or 'Item'} has been added to your wishlist.")


def _already_notice(name: str) -> Notice:
    return Notice("Already in Wishlist", f"{name or 'This item'} is already in your wishlist.")


def _removed_notice(name: str) -> Notice:
    return Notice("Removed from Wishlist", f"{name or 'Item'} has been removed from your wishlist.")


class WishlistSynchronizer(Synchronizer):
    def __init__(
        self,
        remote: WishlistRemote,
        registry: ChannelRegistry,
        notifier: Notifier | None = None,
    ):
        super().__init__(registry, notifier)
        self.remote = remote
        self.entries: list[WishlistEntry] = []

    @property
    def count(self) -> int:
        return len(self.entries)

    def is_in_wishlist(self, product_id: str, karat: str = "22kt") -> bool:
        key = wishlist_key(product_id, karat)
        return any(e.key == key for e in self.entries)

    def is_item_pending(self, product_id: str, karat: str = "22kt") -> bool:
        return self.is_pending(wishlist_key(product_id, karat))

    async def _fetch(self, user_id: str) -> list[WishlistEntry]:
        return await self.remote.fetch_entries(user_id)

    def _replace(self, items: list[WishlistEntry]) -> None:
        self.entries = list(items)

    # ---- mutations ----

    async def add(self, product_id: str, karat: str = "22kt", name: str = "",
                  image: str = PLACEHOLDER_IMAGE) -> MutationResult:
        key = wishlist_key(product_id, karat)
        if self.user_id is None:
            return self._blocked(key)

        if self.is_in_wishlist(product_id, karat):
            return MutationResult(
                key=key,
                states=(MutationState.IDLE, MutationState.SETTLED),
                outcome="already_in_wishlist",
                notice=self._notify(_already_notice(name)),
            )

        user_id = self.user_id
        entry = WishlistEntry(product_id=product_id, karat=karat, name=name, image=image)
        self.entries.insert(0, entry)
        self._begin(key)
        try:
            inserted = await self.remote.add(user_id, product_id, karat)
        except Exception:
            logger.exception(f"Wishlist add failed for {key}")
            self._finish(key)
            if user_id == self.user_id and entry in self.entries:
                self.entries.remove(entry)
            return MutationResult(
                key=key,
                states=APPLIED + (MutationState.ROLLED_BACK,),
                notice=self._notify(failure_notice("Failed to add to wishlist.")),
            )

        self._finish(key)
        if not inserted:
            # the row was there already; the local entry mirrors it
            return MutationResult(
                key=key,
                states=APPLIED + (MutationState.SETTLED,),
                outcome="already_in_wishlist",
                notice=self._notify(_already_notice(name)),
            )
        return MutationResult(
            key=key,
            states=APPLIED + (MutationState.SETTLED,),
            outcome="added",
            notice=self._notify(_added_notice(name)),
        )

    async def remove(self, product_id: str, karat: str = "22kt") -> MutationResult:
        key = wishlist_key(product_id, karat)
        if self.user_id is None:
            return self._blocked(key)

        index = next((i for i, e in enumerate(self.entries) if e.key == key), None)
        if index is None:
            return MutationResult(key=key, outcome="not_in_wishlist")

        user_id = self.user_id
        entry = self.entries.pop(index)
        self._begin(key)
        try:
            await self.remote.remove(user_id, product_id, karat)
        except Exception:
            logger.exception(f"Wishlist remove failed for {key}")
            self._finish(key)
            if user_id == self.user_id and not self.is_in_wishlist(product_id, karat):
                self.entries.insert(min(index, len(self.entries)), entry)
            return MutationResult(
                key=key,
                states=APPLIED + (MutationState.ROLLED_BACK,),
                notice=self._notify(failure_notice("Failed to remove from wishlist.")),
            )

        self._finish(key)
        return MutationResult(
            key=key,
            states=APPLIED + (MutationState.SETTLED,),
            outcome="removed",
            notice=self._notify(_removed_notice(entry.name)),
        )

    async def toggle(self, product_id: str, karat: str = "22kt", name: str = "",
                     image: str = PLACEHOLDER_IMAGE) -> MutationResult:
        if self.is_in_wishlist(product_id, karat):
            return await self.remove(product_id, karat)
        return await self.add(product_id, karat, name, image)

    def _blocked(self, key: str) -> MutationResult:
        return MutationResult(
            key=key,
            states=(MutationState.IDLE, MutationState.BLOCKED),
            notice=self._notify(login_required_notice("add items to wishlist")),
        )
