from __future__ import annotations

from enum import Enum
from typing import Optional


class Side(str, Enum):
    """Which track a team competes on, or which one a user leans towards."""

    HUMAN = "human"
    AI = "ai"
    NEUTRAL = "neutral"


def parse_side(value) -> Side:
    if isinstance(value, Side):
        return value
    raw = str(value or "").strip().lower()
    try:
        return Side(raw)
    except ValueError:
        raise ValueError(f"Unknown side: {value!r}") from None


def side_matches(wanted: Optional[Side], value: Side) -> bool:
    """Marketplace filter: a human or ai filter keeps that side only, neutral (or none) keeps all."""
    if wanted is None or wanted is Side.NEUTRAL:
        return True
    return value == wanted
