"""Rate and hours parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

HOURS_MINUTES = re.compile(r"^(\d+):([0-5]\d)$")
MINUTES = re.compile(r"^(\d+)\s*m(in)?$")


def parse_amount(amount_str: str) -> Decimal:
    """Parse a money amount such as a billing rate.

    Handles "250", "250.00", "$250.00", "1,250.00" and a trailing "/hr".

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    cleaned = amount_str.strip().lower()
    if cleaned.endswith("/hr"):
        cleaned = cleaned[:-3]
    cleaned = re.sub(r"[$€£]", "", cleaned).replace(",", "").strip()

    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")


def parse_hours(hours_str: str) -> Decimal:
    """Parse a duration into decimal hours.

    Handles "1.5", "1.5h", "1:30" and "90m".

    Raises:
        ValueError: If the string cannot be parsed
    """
    if not hours_str or not hours_str.strip():
        raise ValueError("Empty hours string")

    cleaned = hours_str.strip().lower()

    match = HOURS_MINUTES.match(cleaned)
    if match:
        hours, minutes = match.groups()
        return Decimal(hours) + Decimal(minutes) / 60

    match = MINUTES.match(cleaned)
    if match:
        return Decimal(match.group(1)) / 60

    if cleaned.endswith("h"):
        cleaned = cleaned[:-1].strip()
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse hours '{hours_str}'")
