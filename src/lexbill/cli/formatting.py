"""Output formatting helpers."""

from decimal import Decimal
from typing import Optional


def format_duration(seconds: int) -> str:
    """Format seconds as H:MM:SS."""
    hours, remainder = divmod(max(0, seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours}:{minutes:02d}:{secs:02d}"


def format_rate(rate: Optional[Decimal]) -> str:
    if rate is None:
        return "-"
    return f"${rate:,.2f}/hr"


def format_money(amount: Optional[Decimal]) -> str:
    if amount is None:
        return "-"
    return f"${amount:,.2f}"
