# app/routers/wishlist.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.product_repo import ProductRepository
from app.repositories.wishlist_repo import WishlistRepository
from app.routers.pricing import pricing_service, refresh_gold_rate
from app.schemas.pricing import Karat
from app.schemas.wishlist import (
    WishlistItemCreate,
    WishlistItemRead,
    WishlistMutationResult,
)
from app.services.wishlist_service import WishlistService

router = APIRouter(
    prefix="/wishlist",
    tags=["Wishlist"],
    dependencies=[Depends(refresh_gold_rate)],
)

service = WishlistService(WishlistRepository(), ProductRepository(), pricing_service)


@router.get("", response_model=list[WishlistItemRead])
def get_my_wishlist(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Current user's wishlist, newest first.
    """
    return service.list_items(session, current_user.id)


@router.post("", response_model=WishlistMutationResult)
def add_to_wishlist(
    payload: WishlistItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    """
    Save a (product, karat) pair. A duplicate answers
    outcome="already_in_wishlist" rather than an error.
    """
    return service.add(session, current_user.id, payload)


@router.post("/toggle", response_model=WishlistMutationResult)
def toggle_wishlist(
    payload: WishlistItemCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.toggle(session, current_user.id, payload)


@router.delete("/{product_id}/{karat}", response_model=WishlistMutationResult)
def remove_from_wishlist(
    product_id: uuid.UUID,
    karat: Karat,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_user),
):
    return service.remove(session, current_user.id, product_id, karat)
