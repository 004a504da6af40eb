# app/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.parsing import first_image, primary_karat
from app.core.payment_gateway import PaymentGateway, PaymentGatewayError
from app.models.order import Order, OrderItem, Payment
from app.models.product import Product, ProductKarat
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import (
    CheckoutCreate,
    CheckoutLine,
    CheckoutOrderRead,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    PaymentVerify,
    PaymentVerifyResult,
)
from app.services.pricing_service import PricingService

logger = logging.getLogger(__name__)

settings = get_settings()

# pending   -> confirmed, cancelled
# confirmed -> shipped, cancelled
# shipped   -> delivered
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": set(),
    "cancelled": set(),
}


class OrderService:
    """
    Checkout, payment verification and order lifecycle.

    Responsibilities:
      - price the lines at checkout time and snapshot them into the order
      - validate products, karats and stock before charging
      - create the gateway order and verify the returned signature
      - deduct stock and clear the cart once payment is verified
      - enforce admin status transitions
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        pricing: PricingService,
        gateway: PaymentGateway,
    ):
        self.order_repo = order_repo
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.pricing = pricing
        self.gateway = gateway

    # -------- Checkout --------

    def _lines_from_cart(self, session: Session, user_id: uuid.UUID) -> list[CheckoutLine]:
        items = self.cart_repo.list_for_user(session, user_id)
        products = self.product_repo.get_many(session, [it.product_id for it in items])
        lines: list[CheckoutLine] = []
        for it in items:
            product = products.get(it.product_id)
            karat = primary_karat(product.available_karats) if product else "22kt"
            lines.append(
                CheckoutLine(product_id=it.product_id, quantity=it.quantity, karat=karat)
            )
        return lines

    def _validate_lines(
        self,
        session: Session,
        lines: list[CheckoutLine],
    ) -> list[tuple[CheckoutLine, Product, ProductKarat]]:
        errors: list[dict[str, str]] = []
        resolved: list[tuple[CheckoutLine, Product, ProductKarat]] = []

        for line in lines:
            product = self.product_repo.get_by_id(session, line.product_id)
            if not product:
                errors.append({"product_id": str(line.product_id), "reason": "Product not found"})
                continue
            if not product.is_active:
                errors.append({"product_id": str(line.product_id), "reason": "Product is inactive"})
                continue

            variant = self.product_repo.get_karat(session, product.id, line.karat)
            if not variant or not variant.net_weight or variant.net_weight <= 0:
                errors.append(
                    {
                        "product_id": str(line.product_id),
                        "reason": f"Not available in {line.karat}",
                    }
                )
                continue

            if line.quantity > variant.stock_quantity:
                errors.append(
                    {
                        "product_id": str(line.product_id),
                        "reason": (
                            f"Insufficient stock (have {variant.stock_quantity}, "
                            f"requested {line.quantity})"
                        ),
                    }
                )
                continue

            resolved.append((line, product, variant))

        if errors:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": "Cart validation failed", "items": errors},
            )
        return resolved

    def create_order(
        self,
        session: Session,
        user: User,
        payload: CheckoutCreate,
    ) -> CheckoutOrderRead:
        """
        Create a pending order and its gateway order.

        Steps:
          1. Take lines from the payload, else from the persisted cart.
          2. Validate each line (product active, karat offered, stock).
          3. Price every line at the current gold rate.
          4. Insert the order and its item snapshots.
          5. Create the gateway order; store its id; commit.

        The order stays `pending` until verify_payment succeeds.
        """
        self.pricing.refresh(session)

        lines = payload.items if payload.items is not None else self._lines_from_cart(session, user.id)
        if not lines:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cart is empty",
            )

        resolved = self._validate_lines(session, lines)

        priced = []
        total_amount = 0
        gst_amount = 0
        for line, product, variant in resolved:
            unit = self.pricing.calculate_price(
                variant.net_weight, product.making_charge_percentage, line.karat
            )
            total_amount += unit.total * line.quantity
            gst_amount += unit.gst * line.quantity
            priced.append((line, product, unit))

        if total_amount <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Total order amount must be positive",
            )

        order = self.order_repo.save_order(
            session,
            Order(
                user_id=user.id,
                customer_name=payload.customer_name,
                customer_email=user.email,
                customer_phone=payload.customer_phone,
                shipping_address=payload.shipping_address.model_dump(),
                status="pending",
                payment_status="pending",
                payment_method="razorpay",
                subtotal=total_amount - gst_amount,
                gst_amount=gst_amount,
                total_amount=total_amount,
            ),
        )
        self.order_repo.create_items(
            session,
            [
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    product_image=first_image(product.images),
                    karat=line.karat,
                    quantity=line.quantity,
                    product_price=unit.total,
                    total_price=unit.total * line.quantity,
                )
                for line, product, unit in priced
            ],
        )

        try:
            gateway_order_id = self.gateway.create_order(
                receipt=str(order.id),
                amount_paise=total_amount * 100,
                currency=settings.CURRENCY,
                notes={"user_id": str(user.id)},
            )
        except PaymentGatewayError as e:
            session.rollback()
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=str(e),
            )

        order.razorpay_order_id = gateway_order_id
        self.order_repo.save_order(session, order)
        session.commit()
        logger.info(f"Order {order.id} created, gateway order {gateway_order_id}")

        return CheckoutOrderRead(
            order_id=order.id,
            gateway_order_id=gateway_order_id,
            amount=total_amount,
            currency=settings.CURRENCY,
            key_id=self.gateway.key_id,
        )

    def verify_payment(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: PaymentVerify,
    ) -> PaymentVerifyResult:
        """
        Check the gateway signature and settle the order.

        On success:
          - order -> confirmed / paid, payment row recorded
          - stock deducted per karat
          - cart cleared
        On a bad signature the order is marked payment_status='failed'
        and 400 is raised. Re-verifying a paid order is a no-op success.
        """
        order = self.order_repo.get_by_id(session, payload.order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        if order.payment_status == "paid":
            return PaymentVerifyResult(success=True, order=self._order_with_items(session, order))

        if order.razorpay_order_id != payload.gateway_order_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Payment does not belong to this order",
            )

        if not self.gateway.verify(payload.gateway_order_id, payload.payment_id, payload.signature):
            order.payment_status = "failed"
            order.updated_at = datetime.now(timezone.utc)
            self.order_repo.save_order(session, order)
            session.commit()
            logger.warning(f"Signature mismatch for order {order.id}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Payment verification failed",
            )

        items = self.order_repo.list_items_for_order(session, order.id)
        for item in items:
            variant = self.product_repo.get_karat(session, item.product_id, item.karat)
            if variant is not None:
                # Paid orders are never undone over stock; floor at zero.
                variant.stock_quantity = max(variant.stock_quantity - item.quantity, 0)
                session.add(variant)

        self.order_repo.create_payment(
            session,
            Payment(
                order_id=order.id,
                razorpay_order_id=payload.gateway_order_id,
                razorpay_payment_id=payload.payment_id,
                razorpay_signature=payload.signature,
                amount=order.total_amount,
                currency=settings.CURRENCY,
                payment_method=order.payment_method,
            ),
        )

        order.status = "confirmed"
        order.payment_status = "paid"
        order.razorpay_payment_id = payload.payment_id
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.save_order(session, order)

        self.cart_repo.clear_user_cart(session, user_id, commit=False)
        session.commit()
        session.refresh(order)

        return PaymentVerifyResult(success=True, order=self._order_with_items(session, order))

    # -------- Reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        return self.order_repo.list_for_user(session, user_id, skip, limit)  # type: ignore[return-value]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        - 404 if order not found or does not belong to this user.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return self._order_with_items(session, order)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status_filter: str | None = None,
    ) -> list[OrderRead]:
        return self.order_repo.list_all(session, skip, limit, status_filter)  # type: ignore[return-value]

    def get_order_admin(self, session: Session, order_id: uuid.UUID) -> OrderWithItemsRead:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return self._order_with_items(session, order)

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> Order:
        """
        Admin-only status change following ALLOWED_TRANSITIONS.
        Setting the current status again is a no-op.

        Raises:
            HTTPException(400): invalid transition
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )

        current = order.status
        new = payload.status
        if current == new:
            return order

        if new not in ALLOWED_TRANSITIONS.get(current, set()):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status transition: {current} -> {new}",
            )

        order.status = new
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.save_order(session, order)
        session.commit()
        session.refresh(order)
        return order

    # -------- Helper DTO builder --------

    def _order_with_items(self, session: Session, order: Order) -> OrderWithItemsRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        return OrderWithItemsRead(
            id=order.id,
            user_id=order.user_id,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            shipping_address=order.shipping_address,
            status=order.status,
            payment_status=order.payment_status,
            razorpay_order_id=order.razorpay_order_id,
            subtotal=order.subtotal,
            gst_amount=order.gst_amount,
            total_amount=order.total_amount,
            created_at=order.created_at,
            items=[
                OrderItemRead(
                    id=it.id,
                    product_id=it.product_id,
                    product_name=it.product_name,
                    product_image=it.product_image,
                    karat=it.karat,
                    quantity=it.quantity,
                    product_price=it.product_price,
                    total_price=it.total_price,
                )
                for it in items
            ],
        )
