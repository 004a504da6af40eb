# app/routers/pricing.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.gold_rate_repo import GoldRateRepository
from app.schemas.pricing import GoldRate, GoldRateCreate, GoldRateRead, PriceQuote
from app.services.pricing_service import PricingService

router = APIRouter(tags=["Pricing"])

# One cached rate per process, shared by every router that prices items.
pricing_service = PricingService(GoldRateRepository())


def refresh_gold_rate(session: Session = Depends(get_session)) -> None:
    """
    Router dependency: load the newest published rate before any route
    that returns prices. A failed lookup keeps the cached rate.
    """
    pricing_service.refresh(session)


def _to_read(rate: GoldRate) -> GoldRateRead:
    return GoldRateRead(
        rate_22kt=float(rate.rate_22kt),
        rate_18kt=float(rate.rate_18kt),
        as_of=rate.as_of,
        is_default=pricing_service.is_default_rate,
    )


@router.get("/gold-rates/latest", response_model=GoldRateRead)
def get_latest_rate(session: Session = Depends(get_session)):
    """
    Latest published gold rate per gram.

    Falls back to the built-in defaults when nothing is published or the
    lookup fails.
    """
    return _to_read(pricing_service.refresh(session))


@router.post(
    "/gold-rates",
    response_model=GoldRateRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def publish_rate(
    payload: GoldRateCreate,
    session: Session = Depends(get_session),
):
    """
    Publish a new gold rate (admin only).
    """
    return _to_read(pricing_service.publish(session, payload))


@router.get("/pricing/quote", response_model=PriceQuote)
def quote(
    net_weight: float | None = None,
    making_charge_percentage: float = 0,
    karat: str = "22kt",
    session: Session = Depends(get_session),
):
    """
    Price an arbitrary weight.

    Only karat=18kt uses the 18kt rate; every other value is priced at 22kt.
    """
    pricing_service.refresh(session)
    return pricing_service.quote(net_weight, making_charge_percentage, karat)
