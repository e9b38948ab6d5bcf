# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for aggregate value normalization and statistics."""

from decimal import Decimal

import pytest

from src.domains.analytics.numeric import (
    average,
    growth_rate,
    normalize,
    percentile,
    ratio,
    rounded,
)


class TestNormalize:
    """Tests for normalize."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, 0),
            (7, 7),
            (2.5, 2.5),
            (True, 1),
            (Decimal("12.50"), 12.5),
            (Decimal("40.00"), 40),
            ("42", 42),
            (" 3.75 ", 3.75),
            ("12345678901234567890", 12345678901234567890),
        ],
    )
    def test_converts_driver_values(self, value: object, expected: int | float) -> None:
        result = normalize(value)

        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize(
        "value",
        ["not a number", float("nan"), float("inf"), Decimal("NaN"), object(), "inf"],
    )
    def test_unparseable_values_become_default(self, value: object) -> None:
        assert normalize(value) == 0
        assert normalize(value, default=-1) == -1


class TestRatiosAndAverages:
    """Tests for rounded, ratio and average."""

    def test_rounded(self) -> None:
        assert rounded(Decimal("10.456")) == 10.46
        assert rounded("3.14159", 1) == 3.1
        assert rounded(None) == 0

    def test_ratio_is_a_percentage(self) -> None:
        assert ratio(1, 3) == 33.33
        assert ratio(Decimal("5"), "20") == 25.0

    def test_ratio_with_zero_whole(self) -> None:
        assert ratio(10, 0) == 0
        assert ratio(10, None) == 0

    def test_average(self) -> None:
        assert average([1, 2, Decimal("4")]) == 2.33
        assert average([]) == 0


class TestGrowthRate:
    """Tests for growth_rate."""

    def test_increase_and_decrease(self) -> None:
        assert growth_rate(150, 100) == 50.0
        assert growth_rate(50, 100) == -50.0

    def test_zero_previous(self) -> None:
        assert growth_rate(5, 0) == 100.0
        assert growth_rate(0, 0) == 0.0
        assert growth_rate(None, None) == 0.0


class TestPercentile:
    """Tests for nearest-rank percentile."""

    def test_nearest_rank(self) -> None:
        values = list(range(1, 11))

        assert percentile(values, 50) == 5
        assert percentile(values, 90) == 9
        assert percentile(values, 100) == 10

    def test_unsorted_input(self) -> None:
        assert percentile([30, 10, 20], 50) == 20

    def test_single_value_and_empty(self) -> None:
        assert percentile([7], 90) == 7
        assert percentile([], 50) == 0

    def test_low_percentile_clamps_to_first(self) -> None:
        assert percentile([5, 6, 7], 0) == 5
