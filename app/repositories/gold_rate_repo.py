# app/repositories/gold_rate_repo.py
from sqlmodel import Session, select

from app.models.gold_rate import GoldPriceLog


class GoldRateRepository:
    """
    Data access for the gold_price_log table.
    """

    def latest(self, session: Session) -> GoldPriceLog | None:
        stmt = (
            select(GoldPriceLog)
            .order_by(GoldPriceLog.created_at.desc())
            .limit(1)
        )
        return session.exec(stmt).first()

    def create(self, session: Session, row: GoldPriceLog) -> GoldPriceLog:
        session.add(row)
        session.commit()
        session.refresh(row)
        return row
