"""Tests for per-case rate configurations."""

import pytest
from decimal import Decimal

from lexbill.domain.case_rates import describe_configuration, multiplier_for_scenario
from lexbill.domain.errors import ConflictError, NotFoundError, ValidationError

TENANT = 1
OTHER_TENANT = 2


def test_create_configuration_with_policy_defaults(case_config_service, sample_case):
    """Test unset values come from the billing policy."""
    config_id = case_config_service.create_configuration(TENANT, sample_case.id)

    config = case_config_service.get_configuration(TENANT, config_id)
    assert config.legal_case_id == sample_case.id
    assert config.default_rate == Decimal("250.00")
    assert config.allow_multipliers is True
    assert config.weekend_multiplier == Decimal("1.50")
    assert config.after_hours_multiplier == Decimal("1.25")
    assert config.emergency_multiplier == Decimal("2.00")
    assert config.is_active is True


def test_one_active_configuration_per_case(case_config_service, sample_case):
    case_config_service.create_configuration(TENANT, sample_case.id)

    with pytest.raises(ConflictError, match=f"Rate configuration already exists for case {sample_case.id}"):
        case_config_service.create_configuration(TENANT, sample_case.id, default_rate=Decimal("300.00"))


def test_new_configuration_after_deactivation(case_config_service, sample_case):
    """Test deactivating frees the case for a new configuration."""
    first = case_config_service.create_configuration(TENANT, sample_case.id)
    case_config_service.deactivate_configuration(TENANT, first)

    second = case_config_service.create_configuration(TENANT, sample_case.id, default_rate=Decimal("300.00"))

    assert case_config_service.get_configuration_for_case(TENANT, sample_case.id).id == second
    assert len(case_config_service.list_configurations(TENANT)) == 2
    assert len(case_config_service.list_configurations(TENANT, active_only=True)) == 1


def test_validate_rate_configuration(case_config_service):
    errors = case_config_service.validate_rate_configuration(
        Decimal("0"),
        weekend_multiplier=Decimal("0.90"),
        after_hours_multiplier=Decimal("1.00"),
        emergency_multiplier=Decimal("0.50"),
    )

    assert errors == [
        "Default rate must be greater than zero",
        "Weekend multiplier must be at least 1.0",
        "Emergency multiplier must be at least 1.0",
    ]
    assert case_config_service.validate_rate_configuration(Decimal("100.00")) == []


def test_create_rejects_invalid_values(case_config_service, sample_case):
    with pytest.raises(ValidationError) as exc_info:
        case_config_service.create_configuration(
            TENANT, sample_case.id, default_rate=Decimal("-1"), after_hours_multiplier=Decimal("0.5")
        )

    assert exc_info.value.messages == [
        "Default rate must be greater than zero",
        "After-hours multiplier must be at least 1.0",
    ]


def test_multipliers_limited_to_cents(case_config_service, sample_case):
    """Test a multiplier finer than 0.01 is rejected instead of being truncated on save."""
    with pytest.raises(ValidationError, match="Weekend multiplier must have at most 2 decimal places"):
        case_config_service.create_configuration(
            TENANT, sample_case.id, default_rate=Decimal("200.00"), weekend_multiplier=Decimal("1.125")
        )
    assert case_config_service.get_configuration_for_case(TENANT, sample_case.id) is None

    config_id = case_config_service.create_configuration(
        TENANT, sample_case.id, default_rate=Decimal("200.00"), weekend_multiplier=Decimal("1.500")
    )
    assert case_config_service.get_configuration(TENANT, config_id).weekend_multiplier == Decimal("1.5")

    with pytest.raises(ValidationError, match="Emergency multiplier must have at most 2 decimal places"):
        case_config_service.update_configuration(TENANT, config_id, emergency_multiplier=Decimal("2.005"))


def test_create_for_missing_case(case_config_service):
    with pytest.raises(NotFoundError):
        case_config_service.create_configuration(TENANT, 404)


def test_update_configuration(case_config_service, sample_case):
    config_id = case_config_service.create_configuration(TENANT, sample_case.id)

    config = case_config_service.update_configuration(
        TENANT, config_id, default_rate=Decimal("325.00"), allow_multipliers=False
    )

    assert config.default_rate == Decimal("325.00")
    assert config.allow_multipliers is False
    assert config.weekend_multiplier == Decimal("1.50")


def test_update_rejects_invalid_multiplier(case_config_service, sample_case):
    config_id = case_config_service.create_configuration(TENANT, sample_case.id)

    with pytest.raises(ValidationError, match="Weekend multiplier must be at least 1.0"):
        case_config_service.update_configuration(TENANT, config_id, weekend_multiplier=Decimal("0.75"))


def test_configurations_are_tenant_scoped(case_config_service, sample_case):
    config_id = case_config_service.create_configuration(TENANT, sample_case.id)

    assert case_config_service.get_configuration(OTHER_TENANT, config_id) is None
    with pytest.raises(NotFoundError):
        case_config_service.delete_configuration(OTHER_TENANT, config_id)
    with pytest.raises(NotFoundError):
        case_config_service.get_configuration_for_case(OTHER_TENANT, sample_case.id)


def test_delete_configuration(case_config_service, sample_case):
    config_id = case_config_service.create_configuration(TENANT, sample_case.id)

    case_config_service.delete_configuration(TENANT, config_id)

    assert case_config_service.get_configuration_for_case(TENANT, sample_case.id) is None


def test_get_or_create_default_configuration(case_config_service, sample_case):
    created = case_config_service.get_or_create_default_configuration(TENANT, sample_case.id)
    again = case_config_service.get_or_create_default_configuration(TENANT, sample_case.id)

    assert created.id == again.id
    assert created.default_rate == Decimal("250.00")


def test_sync_with_case_defaults(case_config_service, sample_case):
    """Test syncing creates the configuration, then updates its rate."""
    created = case_config_service.sync_with_case_defaults(TENANT, sample_case.id, Decimal("275.00"))
    assert created.default_rate == Decimal("275.00")

    updated = case_config_service.sync_with_case_defaults(TENANT, sample_case.id, Decimal("290.00"))

    assert updated.id == created.id
    assert updated.default_rate == Decimal("290.00")


def test_average_default_rate(case_config_service, case_service, sample_case):
    assert case_config_service.get_average_default_rate(TENANT) == Decimal("0.00")

    other_case = case_service.create_case(TENANT, "Doe v. Acme")
    case_config_service.create_configuration(TENANT, sample_case.id, default_rate=Decimal("200.00"))
    case_config_service.create_configuration(TENANT, other_case, default_rate=Decimal("301.00"))

    assert case_config_service.get_average_default_rate(TENANT) == Decimal("250.50")


def test_multiplier_for_scenario(case_config_service, sample_case):
    config_id = case_config_service.create_configuration(TENANT, sample_case.id)
    config = case_config_service.get_configuration(TENANT, config_id)

    assert multiplier_for_scenario(config, False, False, False) == Decimal("1")
    assert multiplier_for_scenario(config, True, False, False) == Decimal("1.50")
    assert multiplier_for_scenario(config, True, True, False) == Decimal("1.875")
    assert multiplier_for_scenario(config, True, True, True) == Decimal("2.00")


def test_describe_configuration(case_config_service, sample_case):
    config_id = case_config_service.create_configuration(TENANT, sample_case.id, default_rate=Decimal("300.00"))
    config = case_config_service.get_configuration(TENANT, config_id)

    assert describe_configuration(config) == (
        "$300.00/hr (with multipliers: Weekend 1.50x, After-hours 1.25x, Emergency 2.00x)"
    )

    fixed = case_config_service.update_configuration(TENANT, config_id, allow_multipliers=False)
    assert describe_configuration(fixed) == "$300.00/hr (fixed rate)"
