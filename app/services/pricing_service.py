# app/services/pricing_service.py
import logging
import math
from decimal import Decimal
from typing import Any, Awaitable, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.config import get_settings
from app.core.money import format_inr, round_rupees, to_decimal
from app.core.parsing import parse_number
from app.models.gold_rate import GoldPriceLog
from app.repositories.gold_rate_repo import GoldRateRepository
from app.schemas.pricing import GoldRate, GoldRateCreate, PriceBreakdown, PriceQuote

logger = logging.getLogger(__name__)

settings = get_settings()

HUNDRED = Decimal("100")


def default_rate() -> GoldRate:
    return GoldRate(
        rate_22kt=to_decimal(settings.DEFAULT_RATE_22KT),
        rate_18kt=to_decimal(settings.DEFAULT_RATE_18KT),
        as_of=None,
    )


class PricingService:
    """
    Gold jewelry pricing against a cached per-karat rate.

    Responsibilities:
      - hold the most recently published gold rate (defaults until one loads)
      - refresh it from gold_price_log, keeping the last good rate on failure
      - price a line item: gold value -> making charge -> GST -> total

    Pricing never raises: a missing weight prices at zero and a failed
    refresh leaves the previous rate in effect.
    """

    def __init__(
        self,
        repo: GoldRateRepository,
        gst_rate: float | Decimal | None = None,
    ):
        self.repo = repo
        self.gst_rate = to_decimal(
            settings.GST_RATE if gst_rate is None else gst_rate
        )
        self._rate = default_rate()
        self._loaded = False

    # ---- rate cache ----

    @property
    def rate(self) -> GoldRate:
        return self._rate

    @property
    def is_default_rate(self) -> bool:
        return not self._loaded

    def reset(self) -> None:
        """Go back to the built-in default rates."""
        self._rate = default_rate()
        self._loaded = False

    def load_record(self, record: GoldPriceLog | dict[str, Any] | None) -> GoldRate:
        """
        Apply a gold_price_log row (ORM object or PostgREST dict).

        A zero or unreadable column falls back to that karat's default;
        no row at all keeps the current rate.
        """
        if record is None:
            return self._rate

        if isinstance(record, dict):
            kt22 = record.get("kt22_price")
            kt18 = record.get("kt18_price")
            as_of = record.get("created_at")
        else:
            kt22 = record.kt22_price
            kt18 = record.kt18_price
            as_of = record.created_at

        self._rate = GoldRate(
            rate_22kt=to_decimal(parse_number(kt22, settings.DEFAULT_RATE_22KT)),
            rate_18kt=to_decimal(parse_number(kt18, settings.DEFAULT_RATE_18KT)),
            as_of=as_of,
        )
        self._loaded = True
        return self._rate

    def refresh(self, session: Session) -> GoldRate:
        """
        Reload the newest published rate. Errors are logged and swallowed.
        """
        try:
            record = self.repo.latest(session)
        except SQLAlchemyError:
            logger.exception("Failed to fetch gold rate; keeping current rate")
            return self._rate
        if record is None:
            logger.warning("No gold rate published yet; keeping current rate")
        return self.load_record(record)

    async def refresh_from(
        self,
        fetch_latest: Callable[[], Awaitable[dict[str, Any] | None]],
    ) -> GoldRate:
        """
        Async variant for the storefront sync layer: `fetch_latest` returns
        the newest gold_price_log row as a dict (or None).
        """
        try:
            return self.load_record(await fetch_latest())
        except Exception:
            logger.exception("Failed to fetch gold rate; keeping current rate")
            return self._rate

    def publish(self, session: Session, payload: GoldRateCreate) -> GoldRate:
        """
        Append a new rate row and make it current.
        """
        row = self.repo.create(
            session,
            GoldPriceLog(kt22_price=payload.kt22_price, kt18_price=payload.kt18_price),
        )
        return self.load_record(row)

    # ---- pricing ----

    def price_per_gram(self, karat: str = "22kt") -> Decimal:
        # Only 18kt has its own rate; 14kt, 9kt and unknown grades use 22kt.
        if karat == "18kt":
            return self._rate.rate_18kt
        return self._rate.rate_22kt

    def calculate_price(
        self,
        net_weight: float | Decimal | None,
        making_charge_percentage: float | Decimal = 0,
        karat: str = "22kt",
    ) -> PriceBreakdown:
        """
        Price one unit.

          gold    = net_weight * rate
          making  = gold * making_charge_percentage / 100
          gst     = (gold + making) * GST rate
          total   = round(gold + making + gst)

        Each component is rounded on its own for display; `total` is rounded
        once from the unrounded values. A missing, non-positive or non-finite
        weight prices at zero; a non-finite making charge counts as none.
        """
        if net_weight is None:
            return PriceBreakdown()
        weight = to_decimal(net_weight)
        if not weight.is_finite() or weight <= 0:
            return PriceBreakdown()

        making_pct = to_decimal(making_charge_percentage or 0)
        if not making_pct.is_finite():
            making_pct = Decimal(0)

        gold_value = weight * self.price_per_gram(karat)
        making_value = gold_value * making_pct / HUNDRED
        subtotal = gold_value + making_value
        gst_value = subtotal * self.gst_rate

        return PriceBreakdown(
            total=round_rupees(subtotal + gst_value),
            gold_price=round_rupees(gold_value),
            making_charge=round_rupees(making_value),
            gst=round_rupees(gst_value),
        )

    def quote(
        self,
        net_weight: float | None,
        making_charge_percentage: float = 0,
        karat: str = "22kt",
    ) -> PriceQuote:
        # Echoed inputs must stay JSON-safe; non-finite values price as absent.
        if net_weight is not None and not math.isfinite(net_weight):
            net_weight = None
        if not math.isfinite(making_charge_percentage):
            making_charge_percentage = 0
        breakdown = self.calculate_price(net_weight, making_charge_percentage, karat)
        return PriceQuote(
            net_weight=net_weight,
            making_charge_percentage=making_charge_percentage,
            karat=karat,
            rate_per_gram=float(self.price_per_gram(karat)),
            breakdown=breakdown,
            formatted_total=f"₹{format_inr(breakdown.total)}",
        )
