# app/schemas/pricing.py
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field

Karat = Literal["22kt", "18kt", "14kt", "9kt"]


class PriceBreakdown(SQLModel):
    """
    Price of one unit of a line item, in whole rupees.

    `total` is rounded once from the unrounded chain, so it can differ by
    a rupee from gold_price + making_charge + gst.
    """

    total: int = 0
    gold_price: int = 0
    making_charge: int = 0
    gst: int = 0


class GoldRate(SQLModel):
    """
    Current rate per gram. `as_of` is None while the defaults are in use.
    """

    rate_22kt: Decimal
    rate_18kt: Decimal
    as_of: datetime | None = None


class GoldRateCreate(SQLModel):
    """
    Admin payload publishing a new rate.
    """

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    kt22_price: float = Field(gt=0)
    kt18_price: float = Field(gt=0)


class PriceQuote(SQLModel):
    """
    Breakdown plus the inputs and rate it was computed from.
    """

    net_weight: float | None
    making_charge_percentage: float
    karat: str
    rate_per_gram: float
    breakdown: PriceBreakdown
    formatted_total: str


class GoldRateRead(SQLModel):
    """
    Rate as exposed over HTTP.
    """

    rate_22kt: float
    rate_18kt: float
    as_of: datetime | None = None
    is_default: bool
