# app/routers/products.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.routers.pricing import pricing_service, refresh_gold_rate
from app.schemas.pricing import PriceQuote
from app.schemas.product import ProductRead
from app.services.product_service import ProductService

router = APIRouter(
    prefix="/products",
    tags=["Products"],
    dependencies=[Depends(refresh_gold_rate)],
)

repo = ProductRepository()
service = ProductService(repo, pricing_service)


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    category: str | None = None,
):
    """
    List active products.

    - Public endpoint.
    """
    return service.list_products(session, skip=skip, limit=limit, category=category)


@router.get("/{product_id}", response_model=ProductRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get a single product with per-karat weights, stock and price.
    """
    return service.get_product(session, product_id)


@router.get("/{product_id}/price", response_model=PriceQuote)
def price_product(
    product_id: uuid.UUID,
    karat: str = "22kt",
    session: Session = Depends(get_session),
):
    """
    Price one unit of a product in the given karat.
    """
    return service.price_product(session, product_id, karat)
