"""Formatting and conversion utilities."""

from datetime import datetime, timezone
from decimal import Decimal

from fairnomics.constants import PRICE_OUTPUT_MULTIPLIER, TOTAL_BASIS_POINTS


def as_int(value, *, default: int = 0) -> int:
    """Convert value to int, handling hex strings and None."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        v = value.strip()
        if v.lower().startswith("0x"):
            return int(v, 16)
        return int(v)
    return int(value)


def format_price(price: int) -> str:
    """1e6-scaled price as dollars: 10 -> "$0.000010"."""
    return f"${Decimal(price) / Decimal(PRICE_OUTPUT_MULTIPLIER):.6f}"


def format_bp(bp: int) -> str:
    """Format basis points as percentage."""
    return f"{(Decimal(bp) / Decimal(100)):.2f}%"


def format_ratio(numerator: int, denominator: int) -> str:
    """5000/9000 -> "55.56%"."""
    if denominator == 0:
        raise ZeroDivisionError("denominator must be > 0")
    return format_bp((2 * numerator * TOTAL_BASIS_POINTS + denominator) // (2 * denominator))


def format_tokens(amount: int, *, decimals: int = 18, symbol: str = "", places: int = 4) -> str:
    value = Decimal(amount) / (Decimal(10) ** decimals)
    s = f"{value:,.{places}f}".rstrip("0").rstrip(".")
    return f"{s} {symbol}".rstrip()


def format_duration(seconds: int) -> str:
    """Compact duration: 7776000 -> "90d", 3660 -> "1h 1m", 45 -> "45s"."""
    if seconds <= 0:
        return "0s"
    days, rem = divmod(int(seconds), 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    parts = [f"{v}{u}" for v, u in ((days, "d"), (hours, "h"), (minutes, "m"), (secs, "s")) if v]
    return " ".join(parts)


def format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def short_address(address: str) -> str:
    if len(address) <= 16:
        return address
    return f"{address[:10]}...{address[-6:]}"


def target_indicator(price: int, target: int) -> str:
    """Emoji for where the price sits relative to a target."""
    if price <= 0:
        return "❔"
    if price >= target:
        return "🟢"
    if price * 2 >= target:
        return "🟡"
    return "🔴"
