"""Tests for domain entities."""

import pytest
from dataclasses import FrozenInstanceError
from datetime import date, datetime
from decimal import Decimal

from lexbill.domain.entities import (
    BillingRate,
    ConversionResult,
    RateType,
    TimeEntryDraft,
    ValidationResult,
)


def _rate(**overrides):
    values = dict(
        id=1,
        tenant_id=1,
        user_id=5,
        legal_case_id=None,
        client_id=None,
        matter_type_id=None,
        rate_amount=Decimal("300.00"),
        rate_type=RateType.STANDARD,
        effective_date=date(2024, 1, 1),
        end_date=None,
        is_active=True,
        created_at=datetime(2024, 1, 1),
    )
    values.update(overrides)
    return BillingRate(**values)


class TestBillingRate:
    """Tests for BillingRate entity."""

    def test_is_scoped(self):
        assert _rate().is_scoped is False
        assert _rate(client_id=7).is_scoped is True
        assert _rate(matter_type_id=3).is_scoped is True
        assert _rate(legal_case_id=12).is_scoped is True

    def test_is_effective_on(self):
        rate = _rate(end_date=date(2024, 6, 30))

        assert rate.is_effective_on(date(2023, 12, 31)) is False
        assert rate.is_effective_on(date(2024, 1, 1)) is True
        assert rate.is_effective_on(date(2024, 6, 30)) is True
        assert rate.is_effective_on(date(2024, 7, 1)) is False
        assert _rate().is_effective_on(date(2030, 1, 1)) is True

    def test_immutability(self):
        """Test that BillingRate entities are immutable."""
        rate = _rate()
        with pytest.raises(FrozenInstanceError):
            rate.rate_amount = Decimal("1.00")


class TestTimeEntryDraft:
    def test_amount(self):
        draft = TimeEntryDraft(
            user_id=5,
            legal_case_id=1,
            date=date(2024, 1, 2),
            hours=Decimal("0.3"),
            rate=Decimal("250.00"),
            description="Telephone conference",
        )

        assert draft.amount == Decimal("75.000")

    def test_amount_without_rate(self):
        draft = TimeEntryDraft(
            user_id=5, legal_case_id=1, date=date(2024, 1, 2), hours=Decimal("1.0"), rate=None, description=None
        )

        assert draft.amount is None


def test_validation_result():
    result = ValidationResult()
    assert result.valid

    result.add_warning("Weekend")
    assert result.valid

    result.add_error("Bad")
    assert not result.valid
    assert result.errors == ["Bad"]


def test_conversion_result_flags():
    result = ConversionResult(timer_id=3, errors=("Timer 3 not found",))

    assert result.stopped is False
    assert result.entry_created is False
