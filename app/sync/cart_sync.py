# app/sync/cart_sync.py
"""
Client-side cart kept in step with the `cart_items` table.

Every mutation is applied locally first and written in the background;
the line's product id sits in the pending set until the write settles.
A failed write puts the line back the way it was before the mutation.
Realtime change events trigger a full refetch that replaces local state.

There is no per-line queue: two mutations on the same line both go out
and whichever write lands last is what the next refetch shows.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Protocol

from app.core.notifications import Notifier
from app.core.parsing import (
    PLACEHOLDER_IMAGE,
    first_image,
    parse_karats,
    parse_number,
    primary_karat,
)
from app.repositories.gold_rate_repo import GoldRateRepository
from app.services.cart_rules import (
    MAX_QUANTITY,
    added_notice,
    cleared_notice,
    clamp_add,
    clamp_set,
    failure_notice,
    login_required_notice,
    removed_notice,
    updated_notice,
)
from app.services.pricing_service import PricingService
from app.sync.base import MutationResult, MutationState, Synchronizer
from app.sync.realtime import ChannelRegistry

logger = logging.getLogger(__name__)

APPLIED = (MutationState.IDLE, MutationState.OPTIMISTICALLY_APPLIED, MutationState.RECONCILING)


@dataclass
class ProductInfo:
    """What the storefront knows about a product when it is added to the cart."""

    product_id: str
    name: str
    image: str = PLACEHOLDER_IMAGE
    net_weight: float | None = None
    making_charge_percentage: float = 0
    stock_quantity: int = 0
    available_karats: list[str] = field(default_factory=lambda: ["22kt"])


@dataclass
class CartLine:
    product_id: str
    name: str
    quantity: int
    karat: str = "22kt"
    image: str = PLACEHOLDER_IMAGE
    net_weight: float | None = None
    making_charge_percentage: float = 0
    stock_quantity: int = 0
    available_karats: list[str] = field(default_factory=lambda: ["22kt"])

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0

    @classmethod
    def from_product(cls, product: ProductInfo, quantity: int, karat: str) -> "CartLine":
        return cls(
            product_id=product.product_id,
            name=product.name,
            quantity=quantity,
            karat=karat,
            image=product.image,
            net_weight=product.net_weight,
            making_charge_percentage=product.making_charge_percentage,
            stock_quantity=product.stock_quantity,
            available_karats=list(product.available_karats),
        )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CartLine | None":
        """
        Build a line from a `cart_items` row joined with its product and
        the product's karat variants. Weights and stock come from the
        primary karat. Rows whose product is gone are skipped.
        """
        product = row.get("products")
        if not isinstance(product, dict):
            return None
        product_id = row.get("product_id") or product.get("id")
        if not product_id:
            return None

        karats = parse_karats(product.get("available_karats"))
        karat = primary_karat(karats)
        variant = next(
            (
                v for v in product.get("product_karats") or []
                if isinstance(v, dict) and v.get("karat") == karat
            ),
            {},
        )
        quantity = int(parse_number(row.get("quantity"), 1))

        return cls(
            product_id=str(product_id),
            name=product.get("name") or "Product",
            quantity=min(max(quantity, 1), MAX_QUANTITY),
            karat=karat,
            image=first_image(product.get("images")),
            net_weight=parse_number(variant.get("net_weight"), None),
            making_charge_percentage=parse_number(product.get("making_charge_percentage"), 0),
            stock_quantity=int(parse_number(variant.get("stock_quantity"), 0)),
            available_karats=karats,
        )


class CartRemote(Protocol):
    async def fetch_lines(self, user_id: str) -> list[CartLine]: ...

    async def add(self, user_id: str, product_id: str, quantity: int) -> int: ...

    async def set_quantity(self, user_id: str, product_id: str, quantity: int) -> None: ...

    async def remove(self, user_id: str, product_id: str) -> None: ...

    async def clear(self, user_id: str) -> None: ...


class CartSynchronizer(Synchronizer):
    def __init__(
        self,
        remote: CartRemote,
        registry: ChannelRegistry,
        notifier: Notifier | None = None,
        pricing: PricingService | None = None,
        max_quantity: int = MAX_QUANTITY,
    ):
        super().__init__(registry, notifier)
        self.remote = remote
        self.pricing = pricing or PricingService(GoldRateRepository())
        self.max_quantity = max_quantity
        self.lines: list[CartLine] = []

    # ---- reads ----

    def line(self, product_id: str) -> CartLine | None:
        return next((l for l in self.lines if l.product_id == product_id), None)

    @property
    def count(self) -> int:
        return sum(l.quantity for l in self.lines)

    def unit_price(self, line: CartLine) -> int:
        return self.pricing.calculate_price(
            line.net_weight, line.making_charge_percentage, line.karat
        ).total

    def total(self) -> int:
        return sum(self.unit_price(l) * l.quantity for l in self.lines)

    async def _fetch(self, user_id: str) -> list[CartLine]:
        return await self.remote.fetch_lines(user_id)

    def _replace(self, items: list[CartLine]) -> None:
        self.lines = list(items)

    # ---- mutations ----

    async def add_item(
        self, product: ProductInfo, quantity: int = 1, karat: str = "22kt"
    ) -> MutationResult:
        """
        Add units of a product, clamped to the per-line maximum. Adding a
        product already in the cart accumulates onto that line whatever
        karat is passed.
        """
        product_id = product.product_id
        if self.user_id is None:
            return self._blocked(product_id)

        user_id = self.user_id
        snapshot = self._snapshot(product_id)
        change = clamp_add(snapshot.quantity if snapshot else 0, quantity, self.max_quantity)

        if snapshot is not None:
            current = self.line(product_id)
            current.quantity = change.quantity
            current.karat = karat
        else:
            self.lines.append(CartLine.from_product(product, change.quantity, karat))

        return await self._reconcile(
            product_id,
            snapshot,
            self.remote.add(user_id, product_id, change.requested),
            settled=added_notice(product.name, change, self.max_quantity),
            failure=f"Failed to add {product.name} to cart.",
            quantity=change.quantity,
            capped=change.capped,
        )

    async def update_quantity(self, product_id: str, quantity: int) -> MutationResult:
        """Set a line's quantity; zero or less removes it."""
        if self.user_id is None:
            return self._blocked(product_id)

        snapshot = self._snapshot(product_id)
        if snapshot is None:
            return MutationResult(key=product_id)

        change = clamp_set(snapshot.quantity, quantity, self.max_quantity)
        if change.removes_line:
            return await self.remove_item(product_id)

        self.line(product_id).quantity = change.quantity
        return await self._reconcile(
            product_id,
            snapshot,
            self.remote.set_quantity(self.user_id, product_id, change.quantity),
            settled=updated_notice(snapshot.name, change, self.max_quantity),
            failure="Failed to update quantity.",
            quantity=change.quantity,
            capped=change.capped,
        )

    async def remove_item(self, product_id: str) -> MutationResult:
        if self.user_id is None:
            return self._blocked(product_id)

        snapshot = self._snapshot(product_id)
        if snapshot is None:
            return MutationResult(key=product_id)

        position = next(i for i, l in enumerate(self.lines) if l.product_id == product_id)
        del self.lines[position]
        return await self._reconcile(
            product_id,
            snapshot,
            self.remote.remove(self.user_id, product_id),
            settled=removed_notice(snapshot.name),
            failure="Failed to remove item.",
            position=position,
        )

    async def clear(self) -> bool:
        """
        Empty the cart. Not optimistic: the list only empties once the
        write succeeds, and stays as it was if it fails.
        """
        if self.user_id is None:
            self._notify(login_required_notice())
            return False
        user_id = self.user_id
        try:
            await self.remote.clear(user_id)
        except Exception:
            logger.exception(f"Failed to clear cart for {user_id}")
            self._notify(failure_notice("Failed to clear cart."))
            return False
        if user_id == self.user_id:
            self.lines = []
        self._notify(cleared_notice())
        return True

    # ---- internals ----

    def _blocked(self, product_id: str) -> MutationResult:
        notice = self._notify(login_required_notice())
        return MutationResult(
            key=product_id,
            states=(MutationState.IDLE, MutationState.BLOCKED),
            notice=notice,
        )

    def _snapshot(self, product_id: str) -> CartLine | None:
        line = self.line(product_id)
        if line is None:
            return None
        return replace(line, available_karats=list(line.available_karats))

    def _restore(
        self, product_id: str, snapshot: CartLine | None, position: int | None = None
    ) -> None:
        index = next(
            (i for i, l in enumerate(self.lines) if l.product_id == product_id), None
        )
        if snapshot is None:
            if index is not None:
                del self.lines[index]
        elif index is None:
            self.lines.insert(len(self.lines) if position is None else position, snapshot)
        else:
            self.lines[index] = snapshot

    async def _reconcile(
        self,
        product_id: str,
        snapshot: CartLine | None,
        write,
        *,
        settled,
        failure: str,
        quantity: int = 0,
        capped: bool = False,
        position: int | None = None,
    ) -> MutationResult:
        user_id = self.user_id
        self._begin(product_id)
        try:
            await write
        except Exception:
            logger.exception(f"Cart write failed for product {product_id}")
            self._finish(product_id)
            if user_id == self.user_id:
                self._restore(product_id, snapshot, position)
            return MutationResult(
                key=product_id,
                states=APPLIED + (MutationState.ROLLED_BACK,),
                quantity=snapshot.quantity if snapshot else 0,
                notice=self._notify(failure_notice(failure)),
            )

        self._finish(product_id)
        return MutationResult(
            key=product_id,
            states=APPLIED + (MutationState.SETTLED,),
            quantity=quantity,
            capped=capped,
            notice=self._notify(settled),
        )
