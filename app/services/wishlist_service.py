# app/services/wishlist_service.py
import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.parsing import first_image
from app.models.wishlist import WishlistItem
from app.repositories.product_repo import ProductRepository
from app.repositories.wishlist_repo import WishlistRepository
from app.schemas.wishlist import (
    WishlistItemCreate,
    WishlistItemRead,
    WishlistMutationResult,
)
from app.services.pricing_service import PricingService
from app.services.product_service import ProductService

logger = logging.getLogger(__name__)


class WishlistService:
    """
    Business logic for wishlists.

    A (product, karat) pair appears at most once per user; the unique
    constraint is the source of truth, so a concurrent duplicate insert
    still reports "already_in_wishlist" instead of failing.
    """

    def __init__(
        self,
        repo: WishlistRepository,
        product_repo: ProductRepository,
        pricing: PricingService,
    ):
        self.repo = repo
        self.product_repo = product_repo
        self.pricing = pricing
        self.products = ProductService(product_repo, pricing)

    def list_items(self, session: Session, user_id: uuid.UUID) -> list[WishlistItemRead]:
        items = self.repo.list_for_user(session, user_id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])

        reads: list[WishlistItemRead] = []
        for it in items:
            product = products.get(it.product_id)
            if product is None:
                continue
            variant = self.product_repo.get_karat(session, product.id, it.karat_selected)
            net_weight = variant.net_weight if variant else None
            reads.append(
                WishlistItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    karat_selected=it.karat_selected,
                    name=product.name,
                    image=first_image(product.images),
                    net_weight=net_weight,
                    price=self.pricing.calculate_price(
                        net_weight,
                        product.making_charge_percentage,
                        it.karat_selected,
                    ),
                    created_at=it.created_at,
                )
            )
        return reads

    def add(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: WishlistItemCreate,
    ) -> WishlistMutationResult:
        self.products.get_active_product(session, payload.product_id)

        outcome = "added"
        try:
            self.repo.create(
                session,
                WishlistItem(
                    user_id=user_id,
                    product_id=payload.product_id,
                    karat_selected=payload.karat_selected,
                ),
            )
        except IntegrityError:
            session.rollback()
            logger.info(
                f"Wishlist duplicate for user {user_id}: "
                f"{payload.product_id}/{payload.karat_selected}"
            )
            outcome = "already_in_wishlist"

        return WishlistMutationResult(
            outcome=outcome,
            product_id=payload.product_id,
            karat_selected=payload.karat_selected,
            count=self.repo.count_for_user(session, user_id),
        )

    def remove(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        karat: str,
    ) -> WishlistMutationResult:
        item = self.repo.get_item(session, user_id, product_id, karat)
        outcome = "not_in_wishlist"
        if item:
            self.repo.delete(session, item)
            outcome = "removed"

        return WishlistMutationResult(
            outcome=outcome,
            product_id=product_id,
            karat_selected=karat,
            count=self.repo.count_for_user(session, user_id),
        )

    def toggle(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: WishlistItemCreate,
    ) -> WishlistMutationResult:
        """Remove the entry if present, otherwise add it."""
        if self.repo.get_item(session, user_id, payload.product_id, payload.karat_selected):
            return self.remove(session, user_id, payload.product_id, payload.karat_selected)
        return self.add(session, user_id, payload)
