"""
Value parsing and banding helpers for the recommendation synthesizer.

Option values are strings. Numeric values are read like a lenient integer
parse: the leading integer of the token is used (``"12_months"`` → 12,
``"1-2_months"`` → 1, ``"3500"`` → 3500) and a family-specific default
applies when there is no leading integer.

Bands are declared as ordered ``(upper_bound_exclusive, label)`` pairs with
a final catch-all label, so every integer maps to exactly one band.

All functions here are pure.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Sequence

_LEADING_INT = re.compile(r"^\s*(-?\d+)")


def leading_int(value: Optional[str], default: int) -> int:
    """Return the leading integer of ``value``, or ``default``.

    Args:
        value:   Option value token, e.g. ``"24_months"``.
        default: Used when ``value`` is ``None`` or has no leading digits.
    """
    if value is None:
        return default
    match = _LEADING_INT.match(value)
    if match is None:
        return default
    return int(match.group(1))


def token(value: Optional[str], allowed: Sequence[str], default: str) -> str:
    """Normalize an enum-like option value to one of ``allowed``."""
    if value is None:
        return default
    normalized = value.strip().lower()
    return normalized if normalized in allowed else default


def band(amount: int, bounds: Sequence[tuple[int, str]], top: str) -> str:
    """Map ``amount`` to a band label.

    Args:
        amount: The numeric value.
        bounds: Ascending ``(upper_bound_exclusive, label)`` pairs.
        top:    Label for values at or above the last bound.

    Example::

        band(3500, [(2500, "low"), (4500, "medium")], "high")  # -> "medium"
    """
    for upper, label in bounds:
        if amount < upper:
            return label
    return top


def ceil_div(numerator: int, denominator: int) -> int:
    """Ceiling division; a non-positive denominator is treated as 1."""
    if denominator <= 0:
        denominator = 1
    return -(-numerator // denominator)


def round_half_up(x: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(x + 0.5))


def money(amount: int) -> str:
    """Format whole dollars with thousands separators: ``21000`` → ``"$21,000"``."""
    return f"${amount:,}"
