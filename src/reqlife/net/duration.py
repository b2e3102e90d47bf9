"""Human-readable duration formatting for request diagnostics.

Output looks like "4.56789ms", "3sec 4.56789ms", "2min 3sec 4.56789ms"
or "1hr 2min 3sec 4.56789ms". Used in log fields only.
"""

from __future__ import annotations

ONE_MINUTE_S = 60
ONE_HOUR_S = 60 * 60

_SIGNIFICANT_DIGITS = 6


def _to_precision(value: float, digits: int = _SIGNIFICANT_DIGITS) -> str:
    """Format with ``digits`` significant digits, keeping trailing zeros.

    Fixed notation unless the exponent is below -6 or at least ``digits``,
    matching the common ``toPrecision`` convention.
    """
    if value == 0:
        return "0." + "0" * (digits - 1)
    # Exponent after rounding, so 999.9999 carries into 1000.00
    mantissa, exp = f"{value:.{digits - 1}e}".split("e")
    exponent = int(exp)
    if exponent < -6 or exponent >= digits:
        return f"{mantissa}e{exponent:+d}"
    decimals = max(digits - 1 - exponent, 0)
    return f"{value:.{decimals}f}"


def format_duration(raw_ms: float) -> str:
    """Format a raw millisecond duration.

    Whole seconds are truncated, not rounded; the sub-second remainder is
    rendered with six significant digits.
    """
    whole_seconds = int(int(raw_ms) / 1000)
    milliseconds = f"{_to_precision(raw_ms - whole_seconds * 1000)}ms"

    if whole_seconds < 1:
        return milliseconds

    if whole_seconds < ONE_MINUTE_S:
        return f"{whole_seconds}sec {milliseconds}"

    if whole_seconds < ONE_HOUR_S:
        minutes = whole_seconds // ONE_MINUTE_S
        seconds = whole_seconds % ONE_MINUTE_S
        return f"{minutes}min {seconds}sec {milliseconds}"

    hours = whole_seconds // ONE_HOUR_S
    minutes = whole_seconds % ONE_HOUR_S // ONE_MINUTE_S
    seconds = whole_seconds % ONE_HOUR_S % ONE_MINUTE_S
    return f"{hours}hr {minutes}min {seconds}sec {milliseconds}"
