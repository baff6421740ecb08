"""Argument checks shared by option and helper validation."""

import math
from typing import Any


def is_positive_int(value: Any) -> bool:
    """True for an ``int`` (not a ``bool``) of at least 1."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def is_non_negative_number(value: Any) -> bool:
    """True for a finite ``int`` or ``float`` (not a ``bool``) of at least 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0
