"""
Unit Tests: PricingService

Covers:
- gold -> making -> GST -> total chain and the worked storefront example
- karat rate selection (only 18kt has its own rate)
- zero/missing and non-finite input guards
- half-up rounding and a total that differs from the sum of its parts
- rate loading, per-karat defaults and failed refreshes
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.schemas.pricing import GoldRateCreate, PriceBreakdown
from app.services.pricing_service import PricingService


class TestCalculatePrice:

    def test_worked_example_22kt(self, pricing):
        price = pricing.calculate_price(10, 10, "22kt")

        assert price.gold_price == 50000
        assert price.making_charge == 5000
        assert price.gst == 1650
        assert price.total == 56650

    def test_18kt_uses_its_own_rate(self, pricing):
        price = pricing.calculate_price(10, 0, "18kt")

        assert price.gold_price == 40900
        assert price.making_charge == 0
        assert price.gst == 1227
        assert price.total == 42127

    @pytest.mark.parametrize("karat", ["14kt", "9kt", "24kt", ""])
    def test_other_karats_fall_back_to_22kt_rate(self, pricing, karat):
        assert pricing.calculate_price(10, 10, karat) == pricing.calculate_price(10, 10, "22kt")

    @pytest.mark.parametrize("weight", [None, 0, -3.5])
    def test_missing_or_non_positive_weight_prices_at_zero(self, pricing, weight):
        assert pricing.calculate_price(weight, 25, "22kt") == PriceBreakdown(
            total=0, gold_price=0, making_charge=0, gst=0
        )

    @pytest.mark.parametrize("weight", [float("nan"), float("inf"), float("-inf"), Decimal("NaN")])
    def test_non_finite_weight_prices_at_zero(self, pricing, weight):
        assert pricing.calculate_price(weight, 10, "22kt") == PriceBreakdown()

    @pytest.mark.parametrize("making", [float("nan"), float("inf")])
    def test_non_finite_making_charge_counts_as_none(self, pricing, making):
        assert pricing.calculate_price(10, making, "22kt") == pricing.calculate_price(10, 0, "22kt")

    def test_zero_breakdowns_are_independent(self, pricing):
        first = pricing.calculate_price(None)
        first.total = 99
        assert pricing.calculate_price(None).total == 0

    def test_halves_round_up(self, pricing):
        # 0.0001 g * 5000 = 0.5 rupees
        price = pricing.calculate_price(0.0001, 0, "22kt")

        assert price.gold_price == 1
        assert price.total == 1

    def test_total_is_rounded_once_from_unrounded_parts(self, pricing):
        # gold 100.4, making 0.4016, gst 3.024048 -> parts 100 + 0 + 3
        price = pricing.calculate_price(0.02008, 0.4, "22kt")

        assert (price.gold_price, price.making_charge, price.gst) == (100, 0, 3)
        assert price.total == 104

    def test_quote_formats_indian_grouping(self, pricing):
        quote = pricing.quote(10, 10, "22kt")

        assert quote.rate_per_gram == 5000
        assert quote.breakdown.total == 56650
        assert quote.formatted_total == "₹56,650"

    def test_quote_with_non_finite_inputs_is_zero_and_json_safe(self, pricing):
        quote = pricing.quote(float("nan"), float("inf"), "22kt")

        assert quote.net_weight is None
        assert quote.making_charge_percentage == 0
        assert quote.breakdown == PriceBreakdown()
        assert quote.formatted_total == "₹0"

    def test_published_rate_must_be_finite(self):
        with pytest.raises(ValidationError):
            GoldRateCreate.model_validate({"kt22_price": float("inf"), "kt18_price": 4900})


class TestRateLoading:

    def test_starts_on_defaults(self, pricing):
        assert pricing.is_default_rate
        assert pricing.rate.rate_22kt == Decimal("5000")
        assert pricing.rate.rate_18kt == Decimal("4090")

    def test_load_record_applies_published_rates(self, pricing):
        pricing.load_record({"kt22_price": 6000, "kt18_price": 4900, "created_at": "2026-10-01T09:30:00+00:00"})

        assert not pricing.is_default_rate
        assert pricing.calculate_price(10, 0, "22kt").total == 61800
        assert pricing.calculate_price(10, 0, "18kt").gold_price == 49000

    def test_zero_or_missing_columns_use_that_karats_default(self, pricing):
        pricing.load_record({"kt22_price": 0, "kt18_price": None})

        assert pricing.rate.rate_22kt == Decimal("5000")
        assert pricing.rate.rate_18kt == Decimal("4090")

    def test_non_finite_columns_use_that_karats_default(self, pricing):
        pricing.load_record({"kt22_price": float("inf"), "kt18_price": "NaN"})

        assert pricing.rate.rate_22kt == Decimal("5000")
        assert pricing.rate.rate_18kt == Decimal("4090")
        assert pricing.calculate_price(10, 10, "22kt").total == 56650

    def test_no_row_keeps_current_rate(self, pricing):
        pricing.load_record({"kt22_price": 6100, "kt18_price": 5000})
        pricing.load_record(None)

        assert pricing.rate.rate_22kt == Decimal("6100")

    def test_refresh_failure_keeps_last_good_rate(self):
        repo = MagicMock()
        repo.latest.side_effect = SQLAlchemyError("connection reset")
        service = PricingService(repo)
        service.load_record({"kt22_price": 6200, "kt18_price": 5100})

        rate = service.refresh(MagicMock())

        assert rate.rate_22kt == Decimal("6200")
        assert service.calculate_price(1, 0, "22kt").gold_price == 6200

    def test_refresh_reads_newest_row(self, session, pricing):
        pricing.publish(session, GoldRateCreate(kt22_price=5500, kt18_price=4500))
        pricing.reset()
        assert pricing.is_default_rate

        pricing.refresh(session)

        assert pricing.rate.rate_22kt == Decimal("5500")
        assert pricing.rate.as_of is not None

    def test_refresh_without_rows_stays_on_defaults(self, session, pricing):
        pricing.refresh(session)

        assert pricing.is_default_rate
        assert pricing.calculate_price(10, 10).total == 56650

    @pytest.mark.asyncio
    async def test_async_refresh_failure_is_logged_not_raised(self, pricing):
        source = AsyncMock(side_effect=RuntimeError("edge down"))

        rate = await pricing.refresh_from(source)

        assert rate.rate_22kt == Decimal("5000")
        source.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_async_refresh_applies_row(self, pricing):
        source = AsyncMock(return_value={"kt22_price": "5800.50", "kt18_price": 4700})

        await pricing.refresh_from(source)

        assert pricing.rate.rate_22kt == Decimal("5800.5")
