"""Billing rate domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from lexbill.database.base import Database
from lexbill.domain.cases import CaseService
from lexbill.domain.clock import Clock, SystemClock
from lexbill.domain.entities import BillingRate, RateType
from lexbill.domain.errors import (
    NotFoundError,
    ValidationError,
    billing_rate_not_found,
    overlapping_billing_rate,
    require_tenant,
)

logger = logging.getLogger(__name__)


class BillingRateService:
    """Service for managing scoped billing rates."""

    def __init__(self, db: Database, clock: Optional[Clock] = None):
        """Initialize billing rate service.

        Args:
            db: Database instance
            clock: Clock used for "today" defaults
        """
        self.db = db
        self.clock = clock or SystemClock()
        self.cases = CaseService(db)

    def _today(self) -> date:
        return self.clock.now().date()

    def _check_structure(
        self, rate_amount: Optional[Decimal], effective_date: date, end_date: Optional[date]
    ) -> None:
        errors = []
        if rate_amount is None or rate_amount <= 0:
            errors.append("Rate amount must be greater than zero")
        if end_date is not None and end_date < effective_date:
            errors.append("End date cannot be before effective date")
        if errors:
            raise ValidationError("; ".join(errors), errors)

    def create_rate(
        self,
        tenant_id: int,
        rate_amount: Decimal,
        effective_date: Optional[date] = None,
        rate_type: RateType = RateType.STANDARD,
        user_id: Optional[int] = None,
        legal_case_id: Optional[int] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
        end_date: Optional[date] = None,
    ) -> int:
        """Create a billing rate.

        Args:
            tenant_id: Owning tenant
            rate_amount: Hourly rate
            effective_date: First day the rate applies (default: today)
            rate_type: Kind of rate
            user_id: Optional user scope (None means firm-wide)
            legal_case_id: Optional case scope
            client_id: Optional client scope
            matter_type_id: Optional matter type scope
            end_date: Optional last day the rate applies

        Returns:
            Rate ID

        Raises:
            ValidationError: If the amount is not positive, the period is
                inverted, or an active rate with the same scope overlaps
            NotFoundError: If a case scope names a case outside the tenant
        """
        require_tenant(tenant_id)
        if effective_date is None:
            effective_date = self._today()
        self._check_structure(rate_amount, effective_date, end_date)

        if legal_case_id is not None:
            self.cases.require_case(tenant_id, legal_case_id)

        if self.db.has_overlapping_rate(
            tenant_id,
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            effective_date=effective_date,
            end_date=end_date,
        ):
            raise ValidationError(overlapping_billing_rate())

        rate_id = self.db.create_billing_rate(
            tenant_id=tenant_id,
            rate_amount=rate_amount,
            rate_type=rate_type,
            effective_date=effective_date,
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            end_date=end_date,
        )
        logger.info(
            "Created %s billing rate %s of %s for user %s (tenant %s)",
            rate_type.value,
            rate_id,
            rate_amount,
            user_id,
            tenant_id,
        )
        return rate_id

    def update_rate(
        self,
        tenant_id: int,
        rate_id: int,
        rate_amount: Optional[Decimal] = None,
        rate_type: Optional[RateType] = None,
        effective_date: Optional[date] = None,
        end_date: Optional[date] = None,
        is_active: Optional[bool] = None,
    ) -> BillingRate:
        """Update a billing rate. Only given values change.

        Returns:
            The updated rate

        Raises:
            NotFoundError: If the rate does not exist in the tenant
            ValidationError: If the result is invalid or overlaps another rate
        """
        existing = self.require_rate(tenant_id, rate_id)

        new_amount = rate_amount if rate_amount is not None else existing.rate_amount
        new_effective = effective_date if effective_date is not None else existing.effective_date
        new_end = end_date if end_date is not None else existing.end_date
        new_active = is_active if is_active is not None else existing.is_active
        self._check_structure(new_amount, new_effective, new_end)

        if new_active and self.db.has_overlapping_rate(
            tenant_id,
            user_id=existing.user_id,
            legal_case_id=existing.legal_case_id,
            client_id=existing.client_id,
            matter_type_id=existing.matter_type_id,
            effective_date=new_effective,
            end_date=new_end,
            exclude_rate_id=rate_id,
        ):
            raise ValidationError(overlapping_billing_rate())

        self.db.update_billing_rate(
            tenant_id,
            rate_id,
            rate_amount=rate_amount,
            rate_type=rate_type,
            effective_date=effective_date,
            end_date=end_date,
            is_active=is_active,
        )
        logger.info("Updated billing rate %s (tenant %s)", rate_id, tenant_id)
        return self.require_rate(tenant_id, rate_id)

    def get_rate(self, tenant_id: int, rate_id: int) -> Optional[BillingRate]:
        """Get billing rate by ID, or None if not found."""
        return self.db.get_billing_rate(require_tenant(tenant_id), rate_id)

    def require_rate(self, tenant_id: int, rate_id: int) -> BillingRate:
        """Get billing rate by ID.

        Raises:
            NotFoundError: If the rate does not exist in the tenant
        """
        rate = self.get_rate(tenant_id, rate_id)
        if rate is None:
            raise NotFoundError(billing_rate_not_found(rate_id))
        return rate

    def list_rates(
        self,
        tenant_id: int,
        user_id: Optional[int] = None,
        legal_case_id: Optional[int] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
        rate_type: Optional[RateType] = None,
        active_only: bool = False,
    ) -> list[BillingRate]:
        """List billing rates, newest effective date first."""
        return self.db.list_billing_rates(
            require_tenant(tenant_id),
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            rate_type=rate_type,
            active_only=active_only,
        )

    def get_active_rates_for_user(self, tenant_id: int, user_id: int) -> list[BillingRate]:
        """Active rates of a user."""
        return self.list_rates(tenant_id, user_id=user_id, active_only=True)

    def get_rate_history_for_user(self, tenant_id: int, user_id: int) -> list[BillingRate]:
        """Every rate of a user, active or not, newest first."""
        return self.list_rates(tenant_id, user_id=user_id)

    def get_effective_rates_for_user(
        self, tenant_id: int, user_id: int, on_date: Optional[date] = None
    ) -> list[BillingRate]:
        """Active rates of a user whose period covers ``on_date`` (default: today)."""
        on_date = on_date or self._today()
        return [
            rate for rate in self.get_active_rates_for_user(tenant_id, user_id) if rate.is_effective_on(on_date)
        ]

    def deactivate_rate(self, tenant_id: int, rate_id: int, end_date: Optional[date] = None) -> None:
        """Deactivate a rate and close its period.

        Args:
            tenant_id: Owning tenant
            rate_id: Rate to deactivate
            end_date: Last day of the rate (default: today)
        """
        self.require_rate(tenant_id, rate_id)
        end_date = end_date or self._today()
        self.db.update_billing_rate(tenant_id, rate_id, is_active=False, end_date=end_date)
        logger.info("Deactivated billing rate %s as of %s (tenant %s)", rate_id, end_date, tenant_id)

    def delete_rate(self, tenant_id: int, rate_id: int) -> None:
        """Delete a billing rate."""
        self.require_rate(tenant_id, rate_id)
        self.db.delete_billing_rate(tenant_id, rate_id)
        logger.info("Deleted billing rate %s (tenant %s)", rate_id, tenant_id)

    def set_user_rate(
        self,
        tenant_id: int,
        user_id: int,
        rate_amount: Decimal,
        rate_type: RateType = RateType.STANDARD,
        effective_date: Optional[date] = None,
    ) -> int:
        """Create the user's base rate (no case, client or matter scope)."""
        return self.create_rate(
            tenant_id, rate_amount, effective_date=effective_date, rate_type=rate_type, user_id=user_id
        )

    def set_case_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: int,
        rate_amount: Decimal,
        rate_type: RateType = RateType.STANDARD,
        effective_date: Optional[date] = None,
    ) -> int:
        """Create a rate for the user on one case."""
        return self.create_rate(
            tenant_id,
            rate_amount,
            effective_date=effective_date,
            rate_type=rate_type,
            user_id=user_id,
            legal_case_id=legal_case_id,
        )

    def set_client_rate(
        self,
        tenant_id: int,
        user_id: int,
        client_id: int,
        rate_amount: Decimal,
        rate_type: RateType = RateType.STANDARD,
        effective_date: Optional[date] = None,
    ) -> int:
        """Create a rate for the user on all cases of one client."""
        return self.create_rate(
            tenant_id,
            rate_amount,
            effective_date=effective_date,
            rate_type=rate_type,
            user_id=user_id,
            client_id=client_id,
        )

    def set_matter_rate(
        self,
        tenant_id: int,
        user_id: int,
        matter_type_id: int,
        rate_amount: Decimal,
        rate_type: RateType = RateType.STANDARD,
        effective_date: Optional[date] = None,
    ) -> int:
        """Create a rate for the user on one matter type."""
        return self.create_rate(
            tenant_id,
            rate_amount,
            effective_date=effective_date,
            rate_type=rate_type,
            user_id=user_id,
            matter_type_id=matter_type_id,
        )

    def get_most_specific_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: Optional[int] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
        on_date: Optional[date] = None,
    ) -> Optional[BillingRate]:
        """Most specific scoped rate matching the request on a date."""
        return self.db.find_most_specific_rate(
            require_tenant(tenant_id),
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            on_date=on_date or self._today(),
        )

    def get_average_rate_by_user(self, tenant_id: int, user_id: int) -> Decimal:
        """Average amount of the user's active rates (0 when none)."""
        rates = self.get_active_rates_for_user(tenant_id, user_id)
        if not rates:
            return Decimal("0.00")
        total = sum((rate.rate_amount for rate in rates), Decimal("0"))
        return (total / len(rates)).quantize(Decimal("0.01"))
