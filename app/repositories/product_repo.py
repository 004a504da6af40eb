# app/repositories/product_repo.py
import uuid

from sqlmodel import Session, select

from app.models.product import Product, ProductKarat


class ProductRepository:
    """
    Data access layer for Product & ProductKarat.

    - Pure DB operations (queries).
    - No FastAPI, no business logic.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        category: str | None = None,
    ) -> list[Product]:
        stmt = select(Product)
        if only_active:
            stmt = stmt.where(Product.is_active == True)  # noqa: E712
        if category:
            stmt = stmt.where(Product.category == category)
        stmt = stmt.order_by(Product.created_at.desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def get_many(
        self,
        session: Session,
        product_ids: list[uuid.UUID],
    ) -> dict[uuid.UUID, Product]:
        if not product_ids:
            return {}
        stmt = select(Product).where(Product.id.in_(product_ids))
        return {p.id: p for p in session.exec(stmt).all()}

    # ----- Karat variants -----

    def get_karat(
        self,
        session: Session,
        product_id: uuid.UUID,
        karat: str,
    ) -> ProductKarat | None:
        stmt = select(ProductKarat).where(
            ProductKarat.product_id == product_id,
            ProductKarat.karat == karat,
        )
        return session.exec(stmt).first()

    def list_karats(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductKarat]:
        stmt = select(ProductKarat).where(ProductKarat.product_id == product_id)
        return list(session.exec(stmt).all())
