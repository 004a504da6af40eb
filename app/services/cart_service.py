# app/services/cart_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.notifications import Notice
from app.core.parsing import first_image, primary_karat
from app.models.cart import CartItem
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartMutationResult,
    CartSummary,
    NoticeRead,
)
from app.services import cart_rules
from app.services.pricing_service import PricingService
from app.services.product_service import ProductService


class CartService:
    """
    Business logic for the persisted cart.

    Responsibilities:
      - one row per (user, product); karat is a display choice only
      - clamp every quantity into 1..10 instead of rejecting
      - price lines at the current gold rate for the summary
      - describe each outcome with the notice the customer sees
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        pricing: PricingService,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.pricing = pricing
        self.products = ProductService(product_repo, pricing)

    # ---- internal helpers ----

    def _result(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        quantity: int,
        notice: Notice,
        capped: bool = False,
    ) -> CartMutationResult:
        return CartMutationResult(
            cart=self.get_cart_summary(session, user_id),
            notice=NoticeRead(
                title=notice.title,
                description=notice.description,
                variant=notice.variant,
            ),
            product_id=product_id,
            quantity=quantity,
            capped=capped,
        )

    def _get_line(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartItem:
        item = self.cart_repo.get_item(session, user_id, product_id)
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Item not in cart",
            )
        return item

    # ---- public operations ----

    def get_cart_summary(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> CartSummary:
        """
        Return full cart summary:
          - lines with product details and unit price
          - total_quantity
          - total_price (sum of unit total * quantity)

        Lines whose product vanished from the catalog are skipped.
        """
        items = self.cart_repo.list_for_user(session, user_id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])

        item_reads: list[CartItemRead] = []
        total_qty = 0
        total_price = 0

        for it in items:
            product = products.get(it.product_id)
            if product is None:
                continue

            karat = primary_karat(product.available_karats)
            variant = self.product_repo.get_karat(session, product.id, karat)
            net_weight = variant.net_weight if variant else None
            stock = variant.stock_quantity if variant else 0

            unit_price = self.pricing.calculate_price(
                net_weight, product.making_charge_percentage, karat
            )
            line_total = unit_price.total * it.quantity
            total_qty += it.quantity
            total_price += line_total

            item_reads.append(
                CartItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    quantity=it.quantity,
                    karat=karat,
                    name=product.name,
                    image=first_image(product.images),
                    net_weight=net_weight,
                    making_charge_percentage=product.making_charge_percentage,
                    stock_quantity=stock,
                    in_stock=stock > 0,
                    unit_price=unit_price,
                    line_total=line_total,
                    created_at=it.created_at,
                )
            )

        return CartSummary(
            items=item_reads,
            total_quantity=total_qty,
            total_price=total_price,
        )

    def add_to_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: CartItemCreate,
    ) -> CartMutationResult:
        """
        Add units of a product to the user's cart.

        Rules:
          - product must exist and be active
          - existing line is incremented, never duplicated
          - the result is clamped to 10; the notice says how many were added
        """
        product = self.products.get_active_product(session, payload.product_id)
        existing = self.cart_repo.get_item(session, user_id, payload.product_id)

        change = cart_rules.clamp_add(
            existing.quantity if existing else 0, payload.quantity
        )

        if existing:
            if change.added:
                existing.quantity = change.quantity
                self.cart_repo.update(session, existing)
        else:
            self.cart_repo.create(
                session,
                CartItem(
                    user_id=user_id,
                    product_id=payload.product_id,
                    quantity=change.quantity,
                ),
            )

        return self._result(
            session,
            user_id,
            payload.product_id,
            change.quantity,
            cart_rules.added_notice(product.name, change),
            capped=change.capped,
        )

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartMutationResult:
        """
        Set the quantity of a cart line.

        - quantity <= 0 removes the line
        - quantity > 10 keeps 10 (capped)
        """
        item = self._get_line(session, user_id, product_id)
        product = self.product_repo.get_by_id(session, product_id)
        name = product.name if product else "Item"

        change = cart_rules.clamp_set(item.quantity, payload.quantity)
        if change.removes_line:
            self.cart_repo.delete(session, item)
        else:
            item.quantity = change.quantity
            self.cart_repo.update(session, item)

        return self._result(
            session,
            user_id,
            product_id,
            change.quantity,
            cart_rules.updated_notice(name, change),
            capped=change.capped,
        )

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartMutationResult:
        """
        Remove a product from the cart and return the updated cart.
        """
        item = self._get_line(session, user_id, product_id)
        product = self.product_repo.get_by_id(session, product_id)

        self.cart_repo.delete(session, item)
        return self._result(
            session,
            user_id,
            product_id,
            0,
            cart_rules.removed_notice(product.name if product else "Item"),
        )

    def clear_cart(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        self.cart_repo.clear_user_cart(session, user_id)
        return CartSummary(items=[], total_quantity=0, total_price=0)
