# app/models/gold_rate.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class GoldPriceLog(SQLModel, table=True):
    """
    Published gold rate per gram.

    Rows are append-only; pricing always reads the newest row.
    """

    __tablename__ = "gold_price_log"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    kt22_price: float = Field(ge=0, description="Rate per gram, 22kt")
    kt18_price: float = Field(ge=0, description="Rate per gram, 18kt")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
    )
