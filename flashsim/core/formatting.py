"""Display helpers for monetary values and counts."""

import math


def format_usd(value: float) -> str:
    """
    Format as US dollars without cents.

    >>> format_usd(10001000)
    '$10,001,000'
    >>> format_usd(-9000)
    '-$9,000'
    """
    sign = "-" if value < 0 and round(abs(value)) != 0 else ""
    return f"{sign}${abs(value):,.0f}"


def format_number(value: float, max_decimals: int = 2) -> str:
    """
    Thousands separators, up to max_decimals fraction digits, no trailing zeros.

    >>> format_number(83333.3333)
    '83,333.33'
    >>> format_number(10)
    '10'
    """
    text = f"{value:,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


_COMPACT_UNITS = [
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
]


def format_compact(value: float) -> str:
    """
    Compact notation: one fraction digit below ten units, none above.

    >>> format_compact(1_000_000)
    '1M'
    >>> format_compact(16666.67)
    '17K'
    >>> format_compact(1234)
    '1.2K'
    """
    sign = "-" if value < 0 else ""
    magnitude = abs(value)

    for threshold, suffix in _COMPACT_UNITS:
        if magnitude >= threshold:
            scaled = magnitude / threshold
            break
    else:
        threshold, suffix, scaled = 1, "", magnitude

    if scaled < 10:
        scaled = round(scaled, 1)
    else:
        scaled = round(scaled)

    # Rounding may carry into the next unit (999.6K -> 1M)
    if suffix and scaled >= 1000:
        for bigger, bigger_suffix in reversed(_COMPACT_UNITS):
            if bigger > threshold:
                return f"{sign}{format_number(scaled * threshold / bigger, 1)}{bigger_suffix}"

    if math.isclose(scaled, round(scaled)):
        body = f"{int(round(scaled))}"
    else:
        body = f"{scaled:.1f}"
    return f"{sign}{body}{suffix}"


def format_percent(value: float, decimals: int = 0) -> str:
    """
    Format a fraction as a percentage.

    >>> format_percent(0.8)
    '80%'
    """
    return f"{value * 100:.{decimals}f}%"
