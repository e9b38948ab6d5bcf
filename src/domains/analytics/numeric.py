# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Numeric helpers for aggregate values.

Database drivers hand back aggregate results as Decimal, big integers,
numeric strings or None. Everything that ends up in a report passes through
normalize() so documents only ever contain plain int and float values.
None of these functions raise on dirty input.
"""

import math
from decimal import Decimal
from typing import Any, Iterable

Number = int | float


def normalize(value: Any, default: Number = 0) -> Number:
    """Coerce an aggregate value into a JSON-safe number.

    Args:
        value: Raw value from the data source.
        default: Returned for None and anything unparseable.

    Returns:
        int for integral input, float otherwise.

    Example:
        >>> normalize(Decimal("12.50"))
        12.5
        >>> normalize(None)
        0
        >>> normalize("42")
        42
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else default
    if isinstance(value, Decimal):
        if not value.is_finite():
            return default
        if value == value.to_integral_value():
            return int(value)
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return default
        return parsed if math.isfinite(parsed) else default
    return default


def rounded(value: Any, digits: int = 2) -> Number:
    """Normalize then round to a fixed number of decimal places."""
    number = normalize(value)
    if isinstance(number, int):
        return number
    return round(number, digits)


def ratio(part: Any, whole: Any, digits: int = 2) -> Number:
    """Percentage of part over whole, 0 when whole is zero."""
    denominator = normalize(whole)
    if denominator == 0:
        return 0
    return round(normalize(part) / denominator * 100, digits)


def average(values: Iterable[Any], digits: int = 2) -> Number:
    """Arithmetic mean of normalized values, 0 for an empty input."""
    numbers = [normalize(v) for v in values]
    if not numbers:
        return 0
    return round(sum(numbers) / len(numbers), digits)


def growth_rate(current: Any, previous: Any) -> float:
    """Percentage change from previous to current.

    A zero previous value yields 100 when current is positive and 0
    otherwise.

    Example:
        >>> growth_rate(150, 100)
        50.0
        >>> growth_rate(5, 0)
        100.0
    """
    current_value = normalize(current)
    previous_value = normalize(previous)
    if previous_value == 0:
        return 100.0 if current_value > 0 else 0.0
    return (current_value - previous_value) / previous_value * 100


def percentile(values: Iterable[Any], p: float) -> Number:
    """Nearest-rank percentile.

    Sorts ascending and picks index ceil(p / 100 * n) - 1, clamped to the
    valid range. An empty input yields 0.

    Example:
        >>> percentile([1, 2, 3, 4, 5, 6, 7, 8, 9, 10], 90)
        9
    """
    ordered = sorted(normalize(v) for v in values)
    if not ordered:
        return 0
    index = math.ceil(p / 100 * len(ordered)) - 1
    index = max(0, min(index, len(ordered) - 1))
    return ordered[index]
