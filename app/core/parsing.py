# app/core/parsing.py
"""
Coercion of loosely-typed JSON columns coming back from Supabase.

Rows read through the PostgREST API (and the JSON columns of our own
tables) carry whatever the admin tools wrote into them. These helpers
turn that into the shapes the services expect and never raise.
"""

import math
from typing import Any

PLACEHOLDER_IMAGE = (
    "https://images.unsplash.com/photo-1515562141207-7a88fb7ce338"
    "?w=400&h=400&fit=crop"
)

KARATS = ("22kt", "18kt", "14kt", "9kt")
DEFAULT_KARATS = ["22kt"]


def parse_images(raw: Any) -> list[str]:
    """
    Ordered list of image URLs.

    A bare string is a single image; list elements that are not strings
    are dropped; anything else yields an empty list.
    """
    if isinstance(raw, str):
        return [raw] if raw else []
    if isinstance(raw, (list, tuple)):
        return [item for item in raw if isinstance(item, str) and item]
    return []


def first_image(raw: Any) -> str:
    images = parse_images(raw)
    return images[0] if images else PLACEHOLDER_IMAGE


def parse_karats(raw: Any) -> list[str]:
    """Karat grades a product is offered in; defaults to 22kt only."""
    if isinstance(raw, (list, tuple)):
        karats = [item for item in raw if isinstance(item, str)]
        if karats:
            return karats
    return list(DEFAULT_KARATS)


def primary_karat(raw: Any) -> str:
    """
    Karat used for weights/stock when the caller has not chosen one:
    22kt if offered, else 18kt, else the first listed grade.
    """
    karats = parse_karats(raw)
    for preferred in ("22kt", "18kt"):
        if preferred in karats:
            return preferred
    return karats[0]


def parse_number(raw: Any, default: float = 0) -> float:
    """
    Numeric column that may arrive as int, float, numeric string or null.
    Zero, null, non-finite and unparseable values give `default`.
    """
    if isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value) or value == 0:
        return default
    return value
