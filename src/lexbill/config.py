"""Billing policy configuration.

The policy holds the numbers the engine falls back to when the rate store
has nothing more specific: firm default rate, role default rates, default
multipliers, business hours and the time entry limits. A TOML file can
override any of them::

    firm_default_rate = "275.00"
    business_day_start = "07:30"

    [role_rates]
    PARTNER = "650.00"
    PARALEGAL = "175.00"

    [multipliers]
    weekend = "1.75"
"""

import os
import tomllib
from dataclasses import dataclass, field, replace
from datetime import time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional

from lexbill.domain.errors import ConfigurationError

DEFAULT_ROLE_RATES: dict[str, Decimal] = {
    "PARTNER": Decimal("500.00"),
    "SENIOR_ATTORNEY": Decimal("400.00"),
    "ATTORNEY": Decimal("300.00"),
    "ASSOCIATE": Decimal("250.00"),
    "PARALEGAL": Decimal("150.00"),
    "LEGAL_ASSISTANT": Decimal("100.00"),
}


@dataclass(frozen=True)
class BillingPolicy:
    """Firm-wide billing constants."""

    firm_default_rate: Decimal = Decimal("250.00")
    role_rates: Mapping[str, Decimal] = field(default_factory=lambda: dict(DEFAULT_ROLE_RATES))
    weekend_multiplier: Decimal = Decimal("1.50")
    after_hours_multiplier: Decimal = Decimal("1.25")
    emergency_multiplier: Decimal = Decimal("2.00")
    business_day_start: time = time(8, 0)
    business_day_end: time = time(18, 0)
    max_daily_hours: Decimal = Decimal("16.0")
    time_increment: Decimal = Decimal("0.1")
    min_description_length: int = 10

    def role_rate(self, role: Optional[str]) -> Decimal:
        """Return the default rate for a role, or the firm default."""
        if not role:
            return self.firm_default_rate
        key = role.strip().upper().replace(" ", "_").replace("-", "_")
        return self.role_rates.get(key, self.firm_default_rate)


def _decimal(value: Any, name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ConfigurationError(f"Invalid value for '{name}': {value!r}") from e


def _time(value: Any, name: str) -> time:
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value))
    except ValueError as e:
        raise ConfigurationError(f"Invalid time for '{name}': {value!r}") from e


def policy_from_mapping(data: Mapping[str, Any], base: Optional[BillingPolicy] = None) -> BillingPolicy:
    """Build a policy from a parsed mapping, overriding ``base``."""
    policy = base or BillingPolicy()
    changes: dict[str, Any] = {}

    if "firm_default_rate" in data:
        changes["firm_default_rate"] = _decimal(data["firm_default_rate"], "firm_default_rate")

    if "role_rates" in data:
        role_rates = dict(policy.role_rates)
        for role, rate in data["role_rates"].items():
            role_rates[role.strip().upper()] = _decimal(rate, f"role_rates.{role}")
        changes["role_rates"] = role_rates

    multipliers = data.get("multipliers", {})
    for key in ("weekend", "after_hours", "emergency"):
        if key in multipliers:
            value = _decimal(multipliers[key], f"multipliers.{key}")
            if value < 1:
                raise ConfigurationError(f"Multiplier '{key}' must be at least 1.0")
            changes[f"{key}_multiplier"] = value

    for key in ("business_day_start", "business_day_end"):
        if key in data:
            changes[key] = _time(data[key], key)

    if "max_daily_hours" in data:
        changes["max_daily_hours"] = _decimal(data["max_daily_hours"], "max_daily_hours")
    if "time_increment" in data:
        changes["time_increment"] = _decimal(data["time_increment"], "time_increment")
    if "min_description_length" in data:
        changes["min_description_length"] = int(data["min_description_length"])

    return replace(policy, **changes)


def load_policy(policy_path: Optional[str] = None) -> BillingPolicy:
    """Load the billing policy.

    Args:
        policy_path: Path to a TOML policy file. If None, checks the
            LEXBILL_POLICY environment variable; without either the built-in
            defaults are used.

    Returns:
        BillingPolicy instance

    Raises:
        ConfigurationError: If the file cannot be read or holds bad values
    """
    if policy_path is None:
        policy_path = os.environ.get("LEXBILL_POLICY")

    if policy_path is None:
        return BillingPolicy()

    path = Path(policy_path)
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Could not load policy file '{policy_path}': {e}") from e

    return policy_from_mapping(data)
