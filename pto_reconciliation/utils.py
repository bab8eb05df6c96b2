# pto_reconciliation/utils.py
from __future__ import annotations

import calendar
import math
from typing import Any, Optional


# ------------------------------------------------------------------
# Numerical helpers
# ------------------------------------------------------------------

def round_half_up(x: float) -> int:
    """
    Round to the nearest integer, halves away from zero for positives.

    Python's round() uses banker's rounding; spreadsheet arithmetic does not.
    """
    return int(math.floor(x + 0.5))


def round2(x: float) -> float:
    """Round an hour figure to two decimals (half-up)."""
    return round_half_up(x * 100) / 100


def clip(x: float, low: float, high: float) -> float:
    """Clip numeric value to the closed interval [low, high]."""
    if x != x:  # NaN check
        return low
    return float(min(high, max(low, x)))


def safe_divide(num: float, den: Optional[float], default: float = 0.0) -> float:
    """
    Safe division helper.

    Returns `default` if denominator is zero or invalid.
    """
    if den is None or den == 0 or den != den:
        return default
    return float(num / den)


def safe_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Convert a cell value to float; strings are trimmed first."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return default


def fmt_hours(x: float) -> str:
    """Format an hour figure without trailing zeros (8 -> "8", 4.5 -> "4.5")."""
    return f"{round2(x):g}"


# ------------------------------------------------------------------
# Calendar helpers
# ------------------------------------------------------------------

def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def weekday_sunday0(year: int, month: int, day: int) -> int:
    """Day of week with Sunday=0 .. Saturday=6 (calendar grid column order)."""
    return (calendar.weekday(year, month, day) + 1) % 7


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def one_line(text: str) -> str:
    """Collapse newlines in cell notes so they fit in a single message."""
    return text.replace("\r", " ").replace("\n", " ").strip()
