# app/repositories/wishlist_repo.py
import uuid

from sqlmodel import Session, select

from app.models.wishlist import WishlistItem


class WishlistRepository:
    """
    Data access for the wishlist table, keyed by
    (user_id, product_id, karat_selected).

    `create` lets IntegrityError escape so the service can tell a
    duplicate apart from other failures.
    """

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[WishlistItem]:
        stmt = (
            select(WishlistItem)
            .where(WishlistItem.user_id == user_id)
            .order_by(WishlistItem.created_at.desc())
        )
        return list(session.exec(stmt).all())

    def get_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        product_id: uuid.UUID,
        karat: str,
    ) -> WishlistItem | None:
        stmt = select(WishlistItem).where(
            WishlistItem.user_id == user_id,
            WishlistItem.product_id == product_id,
            WishlistItem.karat_selected == karat,
        )
        return session.exec(stmt).first()

    def count_for_user(self, session: Session, user_id: uuid.UUID) -> int:
        return len(self.list_for_user(session, user_id))

    def create(self, session: Session, item: WishlistItem) -> WishlistItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: WishlistItem) -> None:
        session.delete(item)
        session.commit()
