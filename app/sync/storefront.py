# app/sync/storefront.py
"""
Wiring for one signed-in storefront session.

Builds the async Supabase client, one channel registry per watched table,
the cart and wishlist synchronizers and the checkout flow, and moves them
all between users together.
"""

import logging
from dataclasses import dataclass

from supabase import AsyncClient

from app.core.notifications import Notifier, NoticeLog
from app.core.supabase_client import supabase_async
from app.repositories.gold_rate_repo import GoldRateRepository
from app.services.pricing_service import PricingService
from app.sync.cart_sync import CartSynchronizer
from app.sync.checkout_flow import CheckoutFlow, PaymentWidget, SupabaseCheckoutApi
from app.sync.realtime import ChannelRegistry, SupabaseRealtimeGateway
from app.sync.supabase_remote import (
    SupabaseCartRemote,
    SupabaseGoldRateSource,
    SupabaseWishlistRemote,
)
from app.sync.wishlist_sync import WishlistSynchronizer

logger = logging.getLogger(__name__)


def cart_channels(client: AsyncClient) -> ChannelRegistry:
    return ChannelRegistry(SupabaseRealtimeGateway(client), "cart_items", "cart_changes")


def wishlist_channels(client: AsyncClient) -> ChannelRegistry:
    return ChannelRegistry(SupabaseRealtimeGateway(client), "wishlist", "wishlist_changes")


@dataclass
class Storefront:
    client: AsyncClient
    pricing: PricingService
    cart: CartSynchronizer
    wishlist: WishlistSynchronizer
    checkout: CheckoutFlow
    notifier: Notifier

    async def set_user(self, user_id: str | None) -> None:
        await self.refresh_rates()
        await self.cart.set_user(user_id)
        await self.wishlist.set_user(user_id)

    async def refresh_rates(self) -> None:
        await self.pricing.refresh_from(SupabaseGoldRateSource(self.client))

    async def close(self) -> None:
        await self.cart.close()
        await self.wishlist.close()
        await self.cart.registry.close_all()
        await self.wishlist.registry.close_all()


async def connect(
    widget: PaymentWidget,
    access_token: str | None = None,
    notifier: Notifier | None = None,
) -> Storefront:
    """
    Open a storefront session. Call `set_user()` with the auth user id once
    the customer is signed in.
    """
    client = await supabase_async(access_token)
    notifier = notifier or NoticeLog()
    pricing = PricingService(GoldRateRepository())

    cart = CartSynchronizer(SupabaseCartRemote(client), cart_channels(client), notifier, pricing)
    wishlist = WishlistSynchronizer(SupabaseWishlistRemote(client), wishlist_channels(client), notifier)
    checkout = CheckoutFlow(SupabaseCheckoutApi(client), widget, cart)

    logger.info("Storefront session connected")
    return Storefront(
        client=client,
        pricing=pricing,
        cart=cart,
        wishlist=wishlist,
        checkout=checkout,
        notifier=notifier,
    )
