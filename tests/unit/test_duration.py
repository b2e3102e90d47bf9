"""Tests for reqlife.net.duration.

Covers:
- Millisecond-only output below one second
- sec / min / hr breakdown with truncated whole seconds
- Six significant digits with trailing zeros kept
"""

from __future__ import annotations

import pytest

from reqlife.net.duration import format_duration


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("raw_ms", "expected"),
        [
            (0, "0.00000ms"),
            (4.56789, "4.56789ms"),
            (12.5, "12.5000ms"),
            (999, "999.000ms"),
        ],
    )
    def test_below_one_second_is_ms_only(self, raw_ms: float, expected: str) -> None:
        assert format_duration(raw_ms) == expected

    def test_seconds(self) -> None:
        assert format_duration(1500) == "1sec 500.000ms"
        assert format_duration(59_999) == "59sec 999.000ms"

    def test_minutes(self) -> None:
        assert format_duration(61_000) == "1min 1sec 0.00000ms"
        assert format_duration(125_250) == "2min 5sec 250.000ms"

    def test_hours(self) -> None:
        assert format_duration(3_723_004.5) == "1hr 2min 3sec 4.50000ms"

    def test_whole_seconds_truncate_not_round(self) -> None:
        """999.9ms stays below the one-second boundary."""
        assert format_duration(999.9) == "999.900ms"
        assert format_duration(1999.5) == "1sec 999.500ms"

    @pytest.mark.parametrize(
        ("raw_ms", "units"),
        [
            (500, ()),
            (5_000, ("sec",)),
            (300_000, ("min", "sec")),
            (7_200_000, ("hr", "min", "sec")),
        ],
    )
    def test_larger_units_appear_above_threshold(self, raw_ms: float, units: tuple[str, ...]) -> None:
        text = format_duration(raw_ms)
        for unit in ("hr", "min", "sec"):
            assert (f"{unit} " in text) == (unit in units)
        assert text.endswith("ms")

    def test_tiny_values_use_exponent(self) -> None:
        assert format_duration(0.0000001) == "1.00000e-7ms"

    def test_rounding_carry_keeps_six_digits(self) -> None:
        """A carry into the next power of ten still yields six significant digits."""
        assert format_duration(999.9999) == "1000.00ms"
        assert format_duration(9.999999) == "10.0000ms"
