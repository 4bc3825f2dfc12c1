"""Numeric coercion and fixed-precision rounding.

Field values arrive as whatever the user typed (strings) or as numbers
from defaults and snapshots. Every computation goes through ``num`` so a
bad value reads as the fallback instead of raising.
"""

import math
from typing import Any, Optional


def _coerce(value: Any) -> Optional[float]:
    """Convert a raw value to a finite float, or None when not possible."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        result = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        # float() accepts "1_000"; user input should not
        if "_" in text:
            return None
        try:
            result = float(text)
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def num(value: Any, fallback: float = 0) -> float:
    """Coerce a raw value to a number, returning ``fallback`` when it is not one."""
    result = _coerce(value)
    return fallback if result is None else result


def as_num(value: Any, fallback: Optional[float]) -> Optional[float]:
    """Like ``num`` but the fallback may be None (used for optional bounds)."""
    result = _coerce(value)
    return fallback if result is None else result


def round2(value: float) -> float:
    """Round to 2 decimals, half-up on the value scaled by 100.

    Values too large to scale (or not finite) are returned unchanged.
    """
    scaled = value * 100
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / 100
