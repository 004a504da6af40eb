"""
In-memory stand-ins for Supabase used by the sync tests.
"""
import asyncio
from dataclasses import replace

import pytest

from app.core.notifications import NoticeLog
from app.services.cart_rules import clamp_add
from app.sync.cart_sync import CartLine, CartSynchronizer, ProductInfo
from app.sync.realtime import ChannelRegistry
from app.sync.wishlist_sync import WishlistEntry, WishlistSynchronizer


class FakeRealtimeGateway:
    def __init__(self):
        self.opened: list[str] = []
        self.closed: list[str] = []
        self.callbacks: dict[str, object] = {}
        self.fail_open = False

    async def open(self, topic, table, user_id, on_event):
        await asyncio.sleep(0)
        if self.fail_open:
            raise ConnectionError("socket closed")
        self.opened.append(topic)
        self.callbacks[topic] = on_event
        return topic

    async def close(self, handle):
        self.closed.append(handle)
        self.callbacks.pop(handle, None)

    def emit(self, topic, payload=None):
        self.callbacks[topic](payload or {"eventType": "UPDATE"})


class FakeCartRemote:
    """cart_items rows per user; `fail` names the operations that raise."""

    def __init__(self, catalog: dict[str, ProductInfo]):
        self.catalog = catalog
        self.rows: dict[str, dict[str, CartLine]] = {}
        self.fail: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple] = []

    async def _write(self, name, *args):
        self.calls.append((name, *args))
        if self.gate is not None:
            await self.gate.wait()
        if name in self.fail:
            raise RuntimeError(f"{name} failed")

    def seed(self, user_id, product_id, quantity):
        product = self.catalog[product_id]
        self.rows.setdefault(user_id, {})[product_id] = CartLine.from_product(
            product, quantity, "22kt"
        )

    async def fetch_lines(self, user_id):
        self.calls.append(("fetch", user_id))
        if "fetch" in self.fail:
            raise RuntimeError("fetch failed")
        return [replace(line) for line in self.rows.get(user_id, {}).values()]

    async def add(self, user_id, product_id, quantity):
        await self._write("add", user_id, product_id, quantity)
        lines = self.rows.setdefault(user_id, {})
        current = lines[product_id].quantity if product_id in lines else 0
        change = clamp_add(current, quantity)
        if product_id in lines:
            lines[product_id].quantity = change.quantity
        else:
            lines[product_id] = CartLine.from_product(
                self.catalog[product_id], change.quantity, "22kt"
            )
        return change.quantity

    async def set_quantity(self, user_id, product_id, quantity):
        await self._write("set_quantity", user_id, product_id, quantity)
        self.rows[user_id][product_id].quantity = quantity

    async def remove(self, user_id, product_id):
        await self._write("remove", user_id, product_id)
        self.rows.get(user_id, {}).pop(product_id, None)

    async def clear(self, user_id):
        await self._write("clear", user_id)
        self.rows[user_id] = {}


class FakeWishlistRemote:
    def __init__(self):
        self.rows: dict[str, list[WishlistEntry]] = {}
        self.fail: set[str] = set()
        self.calls: list[tuple] = []

    async def fetch_entries(self, user_id):
        self.calls.append(("fetch", user_id))
        return list(self.rows.get(user_id, []))

    async def add(self, user_id, product_id, karat):
        self.calls.append(("add", user_id, product_id, karat))
        if "add" in self.fail:
            raise RuntimeError("insert failed")
        entries = self.rows.setdefault(user_id, [])
        if any(e.product_id == product_id and e.karat == karat for e in entries):
            return False
        entries.insert(0, WishlistEntry(product_id=product_id, karat=karat))
        return True

    async def remove(self, user_id, product_id, karat):
        self.calls.append(("remove", user_id, product_id, karat))
        if "remove" in self.fail:
            raise RuntimeError("delete failed")
        self.rows[user_id] = [
            e for e in self.rows.get(user_id, [])
            if not (e.product_id == product_id and e.karat == karat)
        ]


@pytest.fixture
def catalog():
    return {
        "ring": ProductInfo(
            product_id="ring",
            name="Lakshmi Ring",
            net_weight=10.0,
            making_charge_percentage=10,
            stock_quantity=5,
        ),
        "bangle": ProductInfo(
            product_id="bangle",
            name="Kada Bangle",
            net_weight=20.0,
            making_charge_percentage=12,
            stock_quantity=2,
            available_karats=["22kt", "18kt"],
        ),
    }


@pytest.fixture
def notices():
    return NoticeLog()


@pytest.fixture
def gateway():
    return FakeRealtimeGateway()


@pytest.fixture
def cart_registry(gateway):
    return ChannelRegistry(gateway, "cart_items", "cart_changes")


@pytest.fixture
def cart_remote(catalog):
    return FakeCartRemote(catalog)


@pytest.fixture
def cart(cart_remote, cart_registry, notices, pricing):
    return CartSynchronizer(cart_remote, cart_registry, notices, pricing)


@pytest.fixture
def wishlist_remote():
    return FakeWishlistRemote()


@pytest.fixture
def wishlist(wishlist_remote, gateway, notices):
    registry = ChannelRegistry(gateway, "wishlist", "wishlist_changes")
    return WishlistSynchronizer(wishlist_remote, registry, notices)
