"""Formatting and conversion utilities."""

import math
from decimal import Decimal, InvalidOperation


def as_decimal(value, *, default: Decimal = Decimal(0)) -> Decimal:
    """Convert value to Decimal, handling the types found in roster JSON and CLI input.

    Non-finite values (NaN, infinities) map to `default`. Unparseable strings raise ValueError.
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, Decimal):
        return value if value.is_finite() else default
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else default
    if isinstance(value, str):
        v = value.strip().rstrip("%")
        try:
            parsed = Decimal(v)
        except InvalidOperation as ex:
            raise ValueError(f"Not a number: {value!r}") from ex
        return parsed if parsed.is_finite() else default
    return as_decimal(float(value), default=default)


def format_apy(apy, *, decimals: int = 2) -> str:
    """Format an APY percentage."""
    return f"{Decimal(apy):.{decimals}f}%"


def format_signed_pct(value, *, decimals: int = 2) -> str:
    """Format a percentage with an explicit sign."""
    d = Decimal(value)
    sign = "+" if d >= 0 else ""
    return f"{sign}{d:.{decimals}f}%"


def format_sol(value, *, decimals: int = 6) -> str:
    """Format a SOL amount."""
    return f"{Decimal(value):.{decimals}f} SOL"


def format_usd(value, *, decimals: int = 2) -> str:
    """Format a USD amount."""
    return f"${Decimal(value):.{decimals}f}"


def format_break_even(days: float) -> str:
    """Format break-even days; unreachable break-even renders as N/A."""
    if math.isinf(days) or math.isnan(days):
        return "N/A"
    return f"{days:.1f}d"


def break_even_json(days: float) -> float | None:
    """Break-even days for JSON output (null when it never breaks even)."""
    if math.isinf(days) or math.isnan(days):
        return None
    return days


def action_marker(passed: bool) -> str:
    """Pass/fail marker used in the reasoning trail."""
    return "✅ PASS" if passed else "❌ FAIL"
