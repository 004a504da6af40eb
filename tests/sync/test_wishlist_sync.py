"""
Unit Tests: WishlistSynchronizer
"""

import pytest

from app.sync.base import MutationState
from app.sync.wishlist_sync import WishlistEntry, wishlist_key


class TestWishlistSynchronizer:

    @pytest.mark.asyncio
    async def test_add(self, wishlist, wishlist_remote, notices):
        await wishlist.set_user("u1")

        result = await wishlist.add("ring", "22kt", name="Lakshmi Ring")

        assert result.outcome == "added"
        assert wishlist.is_in_wishlist("ring", "22kt")
        assert not wishlist.is_item_pending("ring", "22kt")
        assert notices.last.title == "Added to Wishlist"

    @pytest.mark.asyncio
    async def test_karats_are_separate_entries(self, wishlist):
        await wishlist.set_user("u1")

        await wishlist.add("ring", "22kt")
        await wishlist.add("ring", "18kt")

        assert wishlist.count == 2
        assert not wishlist.is_in_wishlist("ring", "14kt")

    @pytest.mark.asyncio
    async def test_local_duplicate_skips_network(self, wishlist, wishlist_remote, notices):
        await wishlist.set_user("u1")
        await wishlist.add("ring", "22kt")
        calls = len(wishlist_remote.calls)

        result = await wishlist.add("ring", "22kt", name="Lakshmi Ring")

        assert result.outcome == "already_in_wishlist"
        assert len(wishlist_remote.calls) == calls
        assert notices.last.title == "Already in Wishlist"

    @pytest.mark.asyncio
    async def test_server_duplicate_is_reported(self, wishlist, wishlist_remote, notices):
        await wishlist.set_user("u1")
        # saved from another device after our last fetch
        wishlist_remote.rows["u1"] = [WishlistEntry(product_id="ring", karat="22kt")]

        result = await wishlist.add("ring", "22kt")

        assert result.outcome == "already_in_wishlist"
        assert wishlist.count == 1
        assert notices.last.title == "Already in Wishlist"

    @pytest.mark.asyncio
    async def test_failed_add_is_rolled_back(self, wishlist, wishlist_remote, notices):
        await wishlist.set_user("u1")
        wishlist_remote.fail.add("add")

        result = await wishlist.add("ring", "22kt")

        assert result.state == MutationState.ROLLED_BACK
        assert not wishlist.is_in_wishlist("ring", "22kt")
        assert notices.last.is_error

    @pytest.mark.asyncio
    async def test_failed_remove_restores_entry(self, wishlist, wishlist_remote):
        wishlist_remote.rows["u1"] = [WishlistEntry(product_id="ring", karat="22kt")]
        await wishlist.set_user("u1")
        wishlist_remote.fail.add("remove")

        await wishlist.remove("ring", "22kt")

        assert wishlist.is_in_wishlist("ring", "22kt")

    @pytest.mark.asyncio
    async def test_toggle(self, wishlist):
        await wishlist.set_user("u1")

        assert (await wishlist.toggle("ring")).outcome == "added"
        assert (await wishlist.toggle("ring")).outcome == "removed"
        assert wishlist.count == 0

    @pytest.mark.asyncio
    async def test_signed_out_is_blocked(self, wishlist, wishlist_remote, notices):
        result = await wishlist.add("ring")

        assert result.state == MutationState.BLOCKED
        assert wishlist_remote.calls == []
        assert notices.last.description == "Please login to add items to wishlist."

    @pytest.mark.asyncio
    async def test_change_event_refetches(self, wishlist, wishlist_remote, gateway):
        await wishlist.set_user("u1")
        wishlist_remote.rows["u1"] = [WishlistEntry(product_id="bangle", karat="18kt")]

        gateway.emit("wishlist_changes_u1")
        await wishlist.drain()

        assert [e.key for e in wishlist.entries] == [wishlist_key("bangle", "18kt")]

    def test_entry_from_row(self):
        entry = WishlistEntry.from_row(
            {
                "product_id": "p1",
                "karat_selected": "18kt",
                "products": {"name": "Jhumka", "images": "j.jpg"},
            }
        )

        assert entry.key == "p1-18kt"
        assert entry.name == "Jhumka"
        assert entry.image == "j.jpg"
