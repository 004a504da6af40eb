# app/services/cart_rules.py
"""
Quantity ceiling and the wording of cart outcomes.

Shared by the server cart service and the client-side cart synchronizer
so both clamp the same way and tell the customer the same thing.
"""

from dataclasses import dataclass

from app.core.config import get_settings
from app.core.notifications import Notice

settings = get_settings()

MAX_QUANTITY = settings.CART_MAX_QUANTITY


@dataclass(frozen=True)
class QuantityChange:
    previous: int
    requested: int
    quantity: int
    capped: bool

    @property
    def added(self) -> int:
        return self.quantity - self.previous

    @property
    def removes_line(self) -> bool:
        return self.quantity <= 0


def clamp_add(current: int, requested: int, limit: int = MAX_QUANTITY) -> QuantityChange:
    """
    Add `requested` units (at least one) to a line holding `current`,
    never going past `limit`.
    """
    requested = max(requested, 1)
    wanted = current + requested
    quantity = min(wanted, limit)
    return QuantityChange(
        previous=current,
        requested=requested,
        quantity=quantity,
        capped=wanted > limit,
    )


def clamp_set(current: int, requested: int, limit: int = MAX_QUANTITY) -> QuantityChange:
    """
    Set a line to `requested` units. Zero or less means removal;
    anything above `limit` keeps exactly `limit`.
    """
    if requested <= 0:
        return QuantityChange(previous=current, requested=requested, quantity=0, capped=False)
    return QuantityChange(
        previous=current,
        requested=requested,
        quantity=min(requested, limit),
        capped=requested > limit,
    )


# ---- notices ----

def added_notice(name: str, change: QuantityChange, limit: int = MAX_QUANTITY) -> Notice:
    if change.capped and change.added == 0:
        return Notice(
            "Quantity Limit Reached",
            f"{name} is already at the maximum of {limit} in your cart.",
        )
    if change.capped:
        return Notice(
            "Quantity Limit Reached",
            f"Only {change.added} of {change.requested} {name} added; "
            f"maximum is {limit} per item.",
        )
    if change.previous == 0:
        return Notice("Added to Cart", f"{name} has been added to your cart.")
    return Notice("Cart Updated", f"{name} quantity increased to {change.quantity}.")


def updated_notice(name: str, change: QuantityChange, limit: int = MAX_QUANTITY) -> Notice:
    if change.removes_line:
        return removed_notice(name)
    if change.capped:
        return Notice(
            "Quantity Limit Reached",
            f"{name} kept at the maximum of {limit}; {change.requested} requested.",
        )
    return Notice("Cart Updated", f"{name} quantity updated to {change.quantity}.")


def removed_notice(name: str) -> Notice:
    return Notice("Item Removed", f"{name} has been removed from your cart.")


def cleared_notice() -> Notice:
    return Notice("Cart Cleared", "All items have been removed from your cart.")


def login_required_notice(action: str = "add items to cart") -> Notice:
    return Notice(
        "Login Required",
        f"Please login to {action}.",
        variant="destructive",
    )


def failure_notice(description: str) -> Notice:
    return Notice("Error", description, variant="destructive")
