"""Tests for billing rate management."""

import pytest
from datetime import date
from decimal import Decimal

from lexbill.domain.entities import BillingRate, RateType
from lexbill.domain.errors import ConfigurationError, NotFoundError, ValidationError

TENANT = 1
OTHER_TENANT = 2
USER = 5


def test_create_rate_defaults(rate_service):
    """Test a new rate starts today as an active standard rate."""
    rate_id = rate_service.create_rate(TENANT, Decimal("300.00"), user_id=USER)

    rate = rate_service.get_rate(TENANT, rate_id)
    assert isinstance(rate, BillingRate)
    assert rate.rate_amount == Decimal("300.00")
    assert rate.rate_type == RateType.STANDARD
    assert rate.effective_date == date(2024, 1, 2)
    assert rate.end_date is None
    assert rate.is_active is True
    assert rate.is_scoped is False


def test_create_rate_validation(rate_service):
    """Test amount and period problems are reported together."""
    with pytest.raises(ValidationError) as exc_info:
        rate_service.create_rate(
            TENANT, Decimal("0"), effective_date=date(2024, 3, 1), end_date=date(2024, 2, 1)
        )

    assert exc_info.value.messages == [
        "Rate amount must be greater than zero",
        "End date cannot be before effective date",
    ]


def test_overlapping_rate_rejected(rate_service):
    """Test two active rates with the same scope cannot overlap."""
    rate_service.create_rate(
        TENANT, Decimal("300.00"), user_id=USER, effective_date=date(2024, 1, 1), end_date=date(2024, 6, 30)
    )

    with pytest.raises(ValidationError, match="Overlapping billing rate exists for the same period"):
        rate_service.create_rate(TENANT, Decimal("320.00"), user_id=USER, effective_date=date(2024, 6, 1))


def test_adjacent_periods_allowed(rate_service):
    """Test a rate may start the day after another ends."""
    rate_service.create_rate(
        TENANT, Decimal("300.00"), user_id=USER, effective_date=date(2024, 1, 1), end_date=date(2024, 6, 30)
    )
    rate_service.create_rate(TENANT, Decimal("320.00"), user_id=USER, effective_date=date(2024, 7, 1))

    assert len(rate_service.get_rate_history_for_user(TENANT, USER)) == 2


def test_different_scopes_do_not_overlap(rate_service, sample_case):
    """Test overlap only applies to rates with identical scope."""
    rate_service.set_user_rate(TENANT, USER, Decimal("300.00"))
    rate_service.set_case_rate(TENANT, USER, sample_case.id, Decimal("400.00"))
    rate_service.set_client_rate(TENANT, USER, 7, Decimal("350.00"))
    rate_service.create_rate(TENANT, Decimal("275.00"))

    assert len(rate_service.list_rates(TENANT)) == 4


def test_deactivated_rate_does_not_overlap(rate_service):
    """Test an inactive rate no longer blocks a new one."""
    rate_id = rate_service.set_user_rate(TENANT, USER, Decimal("300.00"), effective_date=date(2023, 1, 1))
    rate_service.deactivate_rate(TENANT, rate_id)

    rate_service.set_user_rate(TENANT, USER, Decimal("320.00"))

    assert [rate.rate_amount for rate in rate_service.get_active_rates_for_user(TENANT, USER)] == [
        Decimal("320.00")
    ]


def test_deactivate_sets_end_date(rate_service):
    rate_id = rate_service.set_user_rate(TENANT, USER, Decimal("300.00"), effective_date=date(2023, 1, 1))

    rate_service.deactivate_rate(TENANT, rate_id)

    rate = rate_service.get_rate(TENANT, rate_id)
    assert rate.is_active is False
    assert rate.end_date == date(2024, 1, 2)


def test_update_rate(rate_service):
    rate_id = rate_service.set_user_rate(TENANT, USER, Decimal("300.00"))

    rate = rate_service.update_rate(TENANT, rate_id, rate_amount=Decimal("310.00"), rate_type=RateType.PREMIUM)

    assert rate.rate_amount == Decimal("310.00")
    assert rate.rate_type == RateType.PREMIUM


def test_update_rate_rejects_overlap(rate_service):
    rate_service.set_user_rate(TENANT, USER, Decimal("300.00"), effective_date=date(2024, 1, 1))
    earlier = rate_service.create_rate(
        TENANT, Decimal("280.00"), user_id=USER, effective_date=date(2023, 1, 1), end_date=date(2023, 12, 31)
    )

    with pytest.raises(ValidationError):
        rate_service.update_rate(TENANT, earlier, end_date=date(2024, 3, 1))


def test_case_scope_requires_case(rate_service):
    """Test a case rate must name a case of the tenant."""
    with pytest.raises(NotFoundError):
        rate_service.set_case_rate(TENANT, USER, 404, Decimal("400.00"))


def test_rates_are_tenant_scoped(rate_service):
    rate_id = rate_service.set_user_rate(TENANT, USER, Decimal("300.00"))

    assert rate_service.get_rate(OTHER_TENANT, rate_id) is None
    assert rate_service.list_rates(OTHER_TENANT) == []
    with pytest.raises(NotFoundError):
        rate_service.delete_rate(OTHER_TENANT, rate_id)


def test_requires_tenant(rate_service):
    with pytest.raises(ConfigurationError):
        rate_service.list_rates(None)


def test_delete_rate(rate_service):
    rate_id = rate_service.set_user_rate(TENANT, USER, Decimal("300.00"))

    rate_service.delete_rate(TENANT, rate_id)

    assert rate_service.get_rate(TENANT, rate_id) is None
    with pytest.raises(NotFoundError, match=f"Billing rate {rate_id} not found"):
        rate_service.require_rate(TENANT, rate_id)


def test_effective_rates_for_user(rate_service):
    rate_service.create_rate(
        TENANT, Decimal("280.00"), user_id=USER, effective_date=date(2023, 1, 1), end_date=date(2023, 12, 31)
    )
    rate_service.set_user_rate(TENANT, USER, Decimal("300.00"), effective_date=date(2024, 1, 1))

    effective = rate_service.get_effective_rates_for_user(TENANT, USER, date(2023, 6, 1))

    assert [rate.rate_amount for rate in effective] == [Decimal("280.00")]


def test_most_specific_rate(rate_service, sample_case):
    rate_service.set_matter_rate(TENANT, USER, 3, Decimal("320.00"))
    rate_service.set_client_rate(TENANT, USER, 7, Decimal("350.00"))

    rate = rate_service.get_most_specific_rate(TENANT, USER, client_id=7, matter_type_id=3)

    assert rate.rate_amount == Decimal("350.00")
    assert rate_service.get_most_specific_rate(TENANT, USER) is None


def test_average_rate_by_user(rate_service, sample_case):
    assert rate_service.get_average_rate_by_user(TENANT, USER) == Decimal("0.00")

    rate_service.set_user_rate(TENANT, USER, Decimal("300.00"))
    rate_service.set_case_rate(TENANT, USER, sample_case.id, Decimal("400.00"))
    rate_service.set_client_rate(TENANT, USER, 7, Decimal("333.33"))

    assert rate_service.get_average_rate_by_user(TENANT, USER) == Decimal("344.44")
