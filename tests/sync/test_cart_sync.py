"""
Unit Tests: CartSynchronizer

Covers:
- optimistic apply before the write completes, pending set while in flight
- quantity ceiling on add and update, and the notices it produces
- rollback to the pre-mutation line when a write fails
- non-optimistic clear
- realtime events triggering a full refetch that replaces local state
- sign-in / sign-out / account switch and the shared channel
"""

import asyncio

import pytest

from app.sync.base import MutationState, Synchronizer
from app.sync.cart_sync import CartLine, CartSynchronizer


class TestSession:

    @pytest.mark.asyncio
    async def test_sign_in_subscribes_and_fetches(self, cart, cart_remote, cart_registry):
        cart_remote.seed("u1", "ring", 2)

        await cart.set_user("u1")

        assert cart_registry.is_active("u1")
        assert [(l.product_id, l.quantity) for l in cart.lines] == [("ring", 2)]
        assert cart.count == 2

    @pytest.mark.asyncio
    async def test_switching_users_moves_the_channel(self, cart, cart_remote, gateway):
        cart_remote.seed("u1", "ring", 1)
        cart_remote.seed("u2", "bangle", 3)
        await cart.set_user("u1")

        await cart.set_user("u2")

        assert gateway.closed == ["cart_changes_u1"]
        assert gateway.opened == ["cart_changes_u1", "cart_changes_u2"]
        assert [l.product_id for l in cart.lines] == ["bangle"]

    @pytest.mark.asyncio
    async def test_sign_out_clears_and_releases(self, cart, cart_remote, cart_registry):
        cart_remote.seed("u1", "ring", 1)
        await cart.set_user("u1")

        await cart.set_user(None)

        assert cart.lines == []
        assert not cart_registry.is_active("u1")

    @pytest.mark.asyncio
    async def test_two_consumers_share_one_channel(
        self, cart, cart_remote, cart_registry, notices, pricing, gateway
    ):
        badge = CartSynchronizer(cart_remote, cart_registry, notices, pricing)
        await cart.set_user("u1")
        await badge.set_user("u1")

        assert gateway.opened == ["cart_changes_u1"]
        assert cart_registry.listener_count("u1") == 2

        await badge.close()
        assert cart_registry.is_active("u1")

    @pytest.mark.asyncio
    async def test_mutations_while_signed_out_are_blocked(self, cart, cart_remote, catalog, notices):
        result = await cart.add_item(catalog["ring"])

        assert result.state == MutationState.BLOCKED
        assert cart_remote.calls == []
        assert notices.last.title == "Login Required"
        assert not await cart.clear()


class TestAddItem:

    @pytest.mark.asyncio
    async def test_applied_before_write_settles(self, cart, cart_remote, catalog, notices):
        await cart.set_user("u1")
        cart_remote.gate = asyncio.Event()

        task = asyncio.create_task(cart.add_item(catalog["ring"]))
        await asyncio.sleep(0)

        assert cart.line("ring").quantity == 1
        assert cart.is_pending("ring")

        cart_remote.gate.set()
        result = await task

        assert result.ok
        assert result.states == (
            MutationState.IDLE,
            MutationState.OPTIMISTICALLY_APPLIED,
            MutationState.RECONCILING,
            MutationState.SETTLED,
        )
        assert not cart.is_pending("ring")
        assert notices.last.title == "Added to Cart"

    @pytest.mark.asyncio
    async def test_capped_add_reports_what_was_added(self, cart, cart_remote, catalog, notices):
        cart_remote.seed("u1", "ring", 8)
        await cart.set_user("u1")

        result = await cart.add_item(catalog["ring"], quantity=5)

        assert result.quantity == 10
        assert result.capped
        assert notices.last.description.startswith("Only 2 of 5")
        assert cart_remote.rows["u1"]["ring"].quantity == 10

    @pytest.mark.asyncio
    async def test_adding_at_the_limit_is_idempotent(self, cart, cart_remote, catalog, notices):
        cart_remote.seed("u1", "ring", 10)
        await cart.set_user("u1")

        await cart.add_item(catalog["ring"])
        await cart.add_item(catalog["ring"])

        assert cart.line("ring").quantity == 10
        assert cart_remote.rows["u1"]["ring"].quantity == 10
        assert notices.last.title == "Quantity Limit Reached"

    @pytest.mark.asyncio
    async def test_failed_add_of_new_line_removes_it(self, cart, cart_remote, catalog, notices):
        await cart.set_user("u1")
        cart_remote.fail.add("add")

        result = await cart.add_item(catalog["ring"])

        assert result.state == MutationState.ROLLED_BACK
        assert cart.line("ring") is None
        assert not cart.is_pending("ring")
        assert notices.last.title == "Error"
        assert notices.last.is_error

    @pytest.mark.asyncio
    async def test_failed_add_restores_previous_quantity(self, cart, cart_remote, catalog):
        cart_remote.seed("u1", "ring", 3)
        await cart.set_user("u1")
        cart_remote.fail.add("add")

        await cart.add_item(catalog["ring"], quantity=2, karat="18kt")

        line = cart.line("ring")
        assert line.quantity == 3
        assert line.karat == "22kt"

    @pytest.mark.asyncio
    async def test_same_line_writes_are_not_queued(self, cart, cart_remote, catalog):
        await cart.set_user("u1")
        cart_remote.gate = asyncio.Event()

        first = asyncio.create_task(cart.add_item(catalog["ring"]))
        second = asyncio.create_task(cart.add_item(catalog["ring"]))
        await asyncio.sleep(0)

        assert [c[0] for c in cart_remote.calls if c[0] == "add"] == ["add", "add"]
        assert cart.line("ring").quantity == 2

        cart_remote.gate.set()
        await asyncio.gather(first, second)

        assert not cart.is_pending("ring")
        assert cart_remote.rows["u1"]["ring"].quantity == 2


class TestUpdateAndRemove:

    @pytest.mark.asyncio
    async def test_update_above_limit_keeps_ten(self, cart, cart_remote):
        cart_remote.seed("u1", "ring", 2)
        await cart.set_user("u1")

        result = await cart.update_quantity("ring", 14)

        assert result.capped
        assert cart.line("ring").quantity == 10
        assert cart_remote.rows["u1"]["ring"].quantity == 10

    @pytest.mark.asyncio
    async def test_update_to_zero_removes(self, cart, cart_remote, notices):
        cart_remote.seed("u1", "ring", 2)
        await cart.set_user("u1")

        await cart.update_quantity("ring", 0)

        assert cart.line("ring") is None
        assert "ring" not in cart_remote.rows["u1"]
        assert notices.last.title == "Item Removed"

    @pytest.mark.asyncio
    async def test_failed_update_restores_quantity(self, cart, cart_remote, notices):
        cart_remote.seed("u1", "ring", 2)
        await cart.set_user("u1")
        cart_remote.fail.add("set_quantity")

        result = await cart.update_quantity("ring", 6)

        assert result.state == MutationState.ROLLED_BACK
        assert cart.line("ring").quantity == 2
        assert notices.last.description == "Failed to update quantity."

    @pytest.mark.asyncio
    async def test_failed_remove_puts_line_back(self, cart, cart_remote):
        cart_remote.seed("u1", "ring", 1)
        cart_remote.seed("u1", "bangle", 1)
        await cart.set_user("u1")
        cart_remote.fail.add("remove")

        await cart.remove_item("ring")

        assert [l.product_id for l in cart.lines] == ["ring", "bangle"]

    @pytest.mark.asyncio
    async def test_update_of_unknown_line_does_nothing(self, cart, cart_remote):
        await cart.set_user("u1")

        result = await cart.update_quantity("ghost", 3)

        assert result.state == MutationState.IDLE
        assert [c for c in cart_remote.calls if c[0] != "fetch"] == []


class TestClear:

    @pytest.mark.asyncio
    async def test_clear(self, cart, cart_remote, notices):
        cart_remote.seed("u1", "ring", 1)
        await cart.set_user("u1")

        assert await cart.clear()
        assert cart.lines == []
        assert notices.last.title == "Cart Cleared"

    @pytest.mark.asyncio
    async def test_failed_clear_keeps_list(self, cart, cart_remote, notices):
        cart_remote.seed("u1", "ring", 1)
        await cart.set_user("u1")
        cart_remote.fail.add("clear")

        assert not await cart.clear()
        assert [l.product_id for l in cart.lines] == ["ring"]
        assert notices.last.is_error


class TestRealtime:

    @pytest.mark.asyncio
    async def test_change_event_replaces_local_state(self, cart, cart_remote, gateway):
        cart_remote.seed("u1", "ring", 1)
        await cart.set_user("u1")

        # another device edits the cart
        cart_remote.rows["u1"] = {}
        cart_remote.seed("u1", "bangle", 4)
        gateway.emit("cart_changes_u1")
        await cart.drain()

        assert [(l.product_id, l.quantity) for l in cart.lines] == [("bangle", 4)]

    @pytest.mark.asyncio
    async def test_failed_refetch_keeps_stale_list(self, cart, cart_remote, gateway):
        cart_remote.seed("u1", "ring", 1)
        await cart.set_user("u1")
        cart_remote.fail.add("fetch")

        gateway.emit("cart_changes_u1")
        await cart.drain()

        assert [l.product_id for l in cart.lines] == ["ring"]


class TestTotals:

    @pytest.mark.asyncio
    async def test_total_uses_pricing_engine(self, cart, cart_remote):
        cart_remote.seed("u1", "ring", 2)
        await cart.set_user("u1")

        assert cart.total() == 113300

    def test_line_from_joined_row(self):
        row = {
            "product_id": "p1",
            "quantity": 3,
            "products": {
                "id": "p1",
                "name": "Temple Necklace",
                "images": ["n1.jpg", 5],
                "making_charge_percentage": "14",
                "available_karats": ["18kt", "22kt"],
                "product_karats": [
                    {"karat": "18kt", "net_weight": 20, "stock_quantity": 1},
                    {"karat": "22kt", "net_weight": 24.5, "stock_quantity": 0},
                ],
            },
        }

        line = CartLine.from_row(row)

        assert line.karat == "22kt"
        assert line.net_weight == 24.5
        assert line.image == "n1.jpg"
        assert line.making_charge_percentage == 14
        assert not line.in_stock

    def test_row_without_product_is_skipped(self):
        assert CartLine.from_row({"product_id": "p1", "quantity": 1, "products": None}) is None


class TestSynchronizerBase:

    def test_base_cannot_be_instantiated(self, cart_registry):
        with pytest.raises(TypeError):
            Synchronizer(cart_registry)

    def test_subclass_must_fetch_and_replace(self, cart_registry):
        class FetchOnly(Synchronizer):
            async def _fetch(self, user_id):
                return []

        with pytest.raises(TypeError):
            FetchOnly(cart_registry)
