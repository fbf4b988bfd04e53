"""Case rate configuration domain service."""

import logging
from decimal import Decimal
from typing import Optional, Union

from lexbill.config import BillingPolicy
from lexbill.database.base import Database
from lexbill.domain.cases import CaseService
from lexbill.domain.entities import CaseRateConfiguration, EffectiveRateConfiguration
from lexbill.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    case_configuration_not_found,
    duplicate_case_configuration,
    require_tenant,
)

logger = logging.getLogger(__name__)

ONE = Decimal("1")
HUNDREDTH = Decimal("0.01")


def describe_configuration(config: CaseRateConfiguration) -> str:
    """Human readable summary of a configuration.

    Example: ``$300.00/hr (with multipliers: Weekend 1.50x, After-hours 1.25x, Emergency 2.00x)``
    """
    description = f"${config.default_rate}/hr"
    if config.allow_multipliers:
        description += (
            f" (with multipliers: Weekend {config.weekend_multiplier}x, "
            f"After-hours {config.after_hours_multiplier}x, "
            f"Emergency {config.emergency_multiplier}x)"
        )
    else:
        description += " (fixed rate)"
    return description


def multiplier_for_scenario(
    config: Union[CaseRateConfiguration, EffectiveRateConfiguration],
    is_weekend: bool,
    is_after_hours: bool,
    is_emergency: bool,
) -> Decimal:
    """Combined multiplier a configuration applies in a scenario.

    Emergency replaces the others; weekend and after-hours stack.
    """
    if not config.allow_multipliers:
        return ONE
    if is_emergency:
        return config.emergency_multiplier
    multiplier = ONE
    if is_weekend:
        multiplier *= config.weekend_multiplier
    if is_after_hours:
        multiplier *= config.after_hours_multiplier
    return multiplier


class CaseRateConfigurationService:
    """Service for managing per-case rate configurations."""

    def __init__(self, db: Database, policy: Optional[BillingPolicy] = None):
        """Initialize case rate configuration service.

        Args:
            db: Database instance
            policy: Billing policy supplying default rate and multipliers
        """
        self.db = db
        self.policy = policy or BillingPolicy()
        self.cases = CaseService(db)

    def validate_rate_configuration(
        self,
        default_rate: Optional[Decimal],
        weekend_multiplier: Optional[Decimal] = None,
        after_hours_multiplier: Optional[Decimal] = None,
        emergency_multiplier: Optional[Decimal] = None,
    ) -> list[str]:
        """Check rate and multiplier values.

        Multipliers are stored to 2 decimal places, so finer values are
        rejected rather than rounded.

        Args:
            default_rate: Hourly rate, must be greater than zero
            weekend_multiplier: Optional multiplier, at least 1.0 when given
            after_hours_multiplier: Optional multiplier, at least 1.0 when given
            emergency_multiplier: Optional multiplier, at least 1.0 when given

        Returns:
            List of problems, empty when the values are acceptable
        """
        errors = []
        if default_rate is None or default_rate <= 0:
            errors.append("Default rate must be greater than zero")

        multipliers = {
            "Weekend": weekend_multiplier,
            "After-hours": after_hours_multiplier,
            "Emergency": emergency_multiplier,
        }
        for name, value in multipliers.items():
            if value is None:
                continue
            if value < ONE:
                errors.append(f"{name} multiplier must be at least 1.0")
            elif value != value.quantize(HUNDREDTH):
                errors.append(f"{name} multiplier must have at most 2 decimal places")
        return errors

    def _ensure_valid(self, **values) -> None:
        errors = self.validate_rate_configuration(**values)
        if errors:
            raise ValidationError("; ".join(errors), errors)

    def create_configuration(
        self,
        tenant_id: int,
        legal_case_id: int,
        default_rate: Optional[Decimal] = None,
        allow_multipliers: bool = True,
        weekend_multiplier: Optional[Decimal] = None,
        after_hours_multiplier: Optional[Decimal] = None,
        emergency_multiplier: Optional[Decimal] = None,
    ) -> int:
        """Create the active rate configuration for a case.

        Unset values fall back to the billing policy defaults.

        Args:
            tenant_id: Owning tenant
            legal_case_id: Case to configure
            default_rate: Hourly rate for work on the case
            allow_multipliers: Whether weekend/after-hours/emergency multipliers apply
            weekend_multiplier: Saturday and Sunday multiplier
            after_hours_multiplier: Multiplier outside business hours
            emergency_multiplier: Multiplier for emergency work

        Returns:
            Configuration ID

        Raises:
            NotFoundError: If the case does not exist in the tenant
            ValidationError: If rate or multipliers are out of range
            ConflictError: If the case already has an active configuration
        """
        require_tenant(tenant_id)
        self.cases.require_case(tenant_id, legal_case_id)

        values = {
            "default_rate": default_rate if default_rate is not None else self.policy.firm_default_rate,
            "weekend_multiplier": (
                weekend_multiplier if weekend_multiplier is not None else self.policy.weekend_multiplier
            ),
            "after_hours_multiplier": (
                after_hours_multiplier
                if after_hours_multiplier is not None
                else self.policy.after_hours_multiplier
            ),
            "emergency_multiplier": (
                emergency_multiplier if emergency_multiplier is not None else self.policy.emergency_multiplier
            ),
        }
        self._ensure_valid(**values)

        if self.db.find_case_configuration(tenant_id, legal_case_id) is not None:
            raise ConflictError(duplicate_case_configuration(legal_case_id))

        config_id = self.db.create_case_rate_configuration(
            tenant_id=tenant_id,
            legal_case_id=legal_case_id,
            allow_multipliers=allow_multipliers,
            **values,
        )
        logger.info(
            "Created rate configuration %s for case %s (tenant %s)", config_id, legal_case_id, tenant_id
        )
        return config_id

    def update_configuration(
        self,
        tenant_id: int,
        config_id: int,
        default_rate: Optional[Decimal] = None,
        allow_multipliers: Optional[bool] = None,
        weekend_multiplier: Optional[Decimal] = None,
        after_hours_multiplier: Optional[Decimal] = None,
        emergency_multiplier: Optional[Decimal] = None,
    ) -> CaseRateConfiguration:
        """Update a configuration. Only given values change.

        Returns:
            The updated configuration

        Raises:
            NotFoundError: If the configuration does not exist in the tenant
            ValidationError: If the resulting values are out of range
        """
        existing = self.require_configuration(tenant_id, config_id)
        self._ensure_valid(
            default_rate=default_rate if default_rate is not None else existing.default_rate,
            weekend_multiplier=weekend_multiplier,
            after_hours_multiplier=after_hours_multiplier,
            emergency_multiplier=emergency_multiplier,
        )

        self.db.update_case_rate_configuration(
            tenant_id,
            config_id,
            default_rate=default_rate,
            allow_multipliers=allow_multipliers,
            weekend_multiplier=weekend_multiplier,
            after_hours_multiplier=after_hours_multiplier,
            emergency_multiplier=emergency_multiplier,
        )
        logger.info("Updated rate configuration %s (tenant %s)", config_id, tenant_id)
        return self.require_configuration(tenant_id, config_id)

    def get_configuration(self, tenant_id: int, config_id: int) -> Optional[CaseRateConfiguration]:
        """Get configuration by ID, or None if not found."""
        return self.db.get_case_rate_configuration(require_tenant(tenant_id), config_id)

    def require_configuration(self, tenant_id: int, config_id: int) -> CaseRateConfiguration:
        """Get configuration by ID.

        Raises:
            NotFoundError: If the configuration does not exist in the tenant
        """
        config = self.get_configuration(tenant_id, config_id)
        if config is None:
            raise NotFoundError(case_configuration_not_found(config_id))
        return config

    def get_configuration_for_case(
        self, tenant_id: int, legal_case_id: int
    ) -> Optional[CaseRateConfiguration]:
        """Get the active configuration of a case.

        Raises:
            NotFoundError: If the case does not exist in the tenant
        """
        require_tenant(tenant_id)
        self.cases.require_case(tenant_id, legal_case_id)
        return self.db.find_case_configuration(tenant_id, legal_case_id)

    def list_configurations(self, tenant_id: int, active_only: bool = False) -> list[CaseRateConfiguration]:
        """List configurations of the tenant."""
        return self.db.list_case_rate_configurations(require_tenant(tenant_id), active_only=active_only)

    def deactivate_configuration(self, tenant_id: int, config_id: int) -> None:
        """Deactivate a configuration so the case falls back to policy defaults."""
        self.require_configuration(tenant_id, config_id)
        self.db.update_case_rate_configuration(tenant_id, config_id, is_active=False)
        logger.info("Deactivated rate configuration %s (tenant %s)", config_id, tenant_id)

    def delete_configuration(self, tenant_id: int, config_id: int) -> None:
        """Delete a configuration."""
        self.require_configuration(tenant_id, config_id)
        self.db.delete_case_rate_configuration(tenant_id, config_id)
        logger.info("Deleted rate configuration %s (tenant %s)", config_id, tenant_id)

    def get_or_create_default_configuration(self, tenant_id: int, legal_case_id: int) -> CaseRateConfiguration:
        """Return the case's active configuration, creating one from policy defaults if needed."""
        existing = self.get_configuration_for_case(tenant_id, legal_case_id)
        if existing is not None:
            return existing

        config_id = self.create_configuration(tenant_id, legal_case_id)
        return self.require_configuration(tenant_id, config_id)

    def sync_with_case_defaults(
        self, tenant_id: int, legal_case_id: int, default_rate: Decimal
    ) -> CaseRateConfiguration:
        """Set the case's default rate, creating the configuration if it has none."""
        existing = self.get_configuration_for_case(tenant_id, legal_case_id)
        if existing is None:
            config_id = self.create_configuration(tenant_id, legal_case_id, default_rate=default_rate)
            return self.require_configuration(tenant_id, config_id)
        return self.update_configuration(tenant_id, existing.id, default_rate=default_rate)

    def get_average_default_rate(self, tenant_id: int) -> Decimal:
        """Average default rate of the tenant's active configurations (0 when none)."""
        configs = self.list_configurations(tenant_id, active_only=True)
        if not configs:
            return Decimal("0.00")
        total = sum((config.default_rate for config in configs), Decimal("0"))
        return (total / len(configs)).quantize(Decimal("0.01"))
