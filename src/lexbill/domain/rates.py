"""Rate resolution engine.

Picks one hourly rate for a piece of work and applies the day-of-week and
time-of-day multipliers of the case's rate configuration.

The base rate is the first hit of this waterfall:

1. a rate scoped to exactly the case and the user,
2. the most specific rate whose case, client and matter type scope matches
   the request (case beats client beats matter type, a user match breaks
   ties, then the most recent effective date),
3. the user's unscoped base rate,
4. the default rate of the user's role,
5. the firm default.

Multipliers: emergency work gets the emergency multiplier only; otherwise
weekend and after-hours multipliers stack. A configuration with multipliers
disabled leaves the base rate untouched. Every computed rate is rounded to
cents after the full product.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from lexbill.config import BillingPolicy
from lexbill.database.base import Database
from lexbill.domain.case_rates import multiplier_for_scenario
from lexbill.domain.cases import CaseService
from lexbill.domain.clock import Clock, SystemClock
from lexbill.domain.entities import EffectiveRateConfiguration
from lexbill.domain.errors import require_tenant

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def quantize_rate(amount: Decimal) -> Decimal:
    """Round a money amount to cents, halves away from zero."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RateQuote:
    """Rate a timer would get at a given moment."""

    base_rate: Decimal
    effective_rate: Decimal
    multiplier: Decimal
    is_weekend: bool
    is_after_hours: bool
    is_emergency: bool
    configuration: EffectiveRateConfiguration


class RateEngine:
    """Resolves base rates and applies multipliers."""

    def __init__(
        self,
        db: Database,
        policy: Optional[BillingPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize rate engine.

        Args:
            db: Database instance (rate and case configuration store)
            policy: Billing policy with firm, role and multiplier defaults
            clock: Clock used when no explicit moment is given
        """
        self.db = db
        self.policy = policy or BillingPolicy()
        self.clock = clock or SystemClock()
        self.cases = CaseService(db)

    def is_weekend(self, on_date: date) -> bool:
        """Saturday or Sunday."""
        return on_date.weekday() >= 5

    def is_after_hours(self, time_of_day: time) -> bool:
        """Strictly before the business day starts or strictly after it ends."""
        return time_of_day < self.policy.business_day_start or time_of_day > self.policy.business_day_end

    # Case configuration getters
    def get_effective_configuration(
        self, tenant_id: int, legal_case_id: Optional[int] = None
    ) -> EffectiveRateConfiguration:
        """Resolve the multiplier settings for a case.

        The case's active configuration when it has one, otherwise the
        policy defaults with multipliers allowed.

        Raises:
            ConfigurationError: If tenant_id is None
            NotFoundError: If the case does not exist in the tenant
        """
        require_tenant(tenant_id)
        config = None
        if legal_case_id is not None:
            self.cases.require_case(tenant_id, legal_case_id)
            config = self.db.find_case_configuration(tenant_id, legal_case_id)

        if config is None:
            return EffectiveRateConfiguration(
                legal_case_id=legal_case_id,
                default_rate=self.policy.firm_default_rate,
                allow_multipliers=True,
                weekend_multiplier=self.policy.weekend_multiplier,
                after_hours_multiplier=self.policy.after_hours_multiplier,
                emergency_multiplier=self.policy.emergency_multiplier,
                from_case_configuration=False,
            )

        return EffectiveRateConfiguration(
            legal_case_id=legal_case_id,
            default_rate=config.default_rate,
            allow_multipliers=config.allow_multipliers,
            weekend_multiplier=config.weekend_multiplier,
            after_hours_multiplier=config.after_hours_multiplier,
            emergency_multiplier=config.emergency_multiplier,
            from_case_configuration=True,
        )

    def get_default_rate_for_case(self, tenant_id: int, legal_case_id: int) -> Decimal:
        return self.get_effective_configuration(tenant_id, legal_case_id).default_rate

    def allows_multipliers(self, tenant_id: int, legal_case_id: int) -> bool:
        return self.get_effective_configuration(tenant_id, legal_case_id).allow_multipliers

    def get_weekend_multiplier(self, tenant_id: int, legal_case_id: int) -> Decimal:
        return self.get_effective_configuration(tenant_id, legal_case_id).weekend_multiplier

    def get_after_hours_multiplier(self, tenant_id: int, legal_case_id: int) -> Decimal:
        return self.get_effective_configuration(tenant_id, legal_case_id).after_hours_multiplier

    def get_emergency_multiplier(self, tenant_id: int, legal_case_id: int) -> Decimal:
        return self.get_effective_configuration(tenant_id, legal_case_id).emergency_multiplier

    # Base rate
    def resolve_base_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: Optional[int] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
        on_date: Optional[date] = None,
        role: Optional[str] = None,
    ) -> Decimal:
        """Walk the rate waterfall and return the first hit.

        Client and matter type default to the case's own when a case is given.

        Args:
            tenant_id: Tenant whose rates are consulted
            user_id: User doing the work
            legal_case_id: Optional case the work is for
            client_id: Optional client override
            matter_type_id: Optional matter type override
            on_date: Date of the work (default: today)
            role: Optional role name for the role default step

        Returns:
            Hourly base rate before multipliers

        Raises:
            ConfigurationError: If tenant_id is None
            NotFoundError: If the case does not exist in the tenant
        """
        require_tenant(tenant_id)
        on_date = on_date or self.clock.now().date()

        if legal_case_id is not None:
            legal_case = self.cases.require_case(tenant_id, legal_case_id)
            if client_id is None:
                client_id = legal_case.client_id
            if matter_type_id is None:
                matter_type_id = legal_case.matter_type_id

            case_rate = self.db.find_case_specific_rate(tenant_id, legal_case_id, user_id)
            if case_rate is not None:
                logger.debug("Case-specific rate %s for user %s on case %s", case_rate.id, user_id, legal_case_id)
                return case_rate.rate_amount

        scoped_rate = self.db.find_most_specific_rate(
            tenant_id,
            user_id=user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            on_date=on_date,
        )
        if scoped_rate is not None:
            logger.debug("Scoped rate %s for user %s", scoped_rate.id, user_id)
            return scoped_rate.rate_amount

        user_rate = self.db.find_active_user_rate(tenant_id, user_id, on_date=on_date)
        if user_rate is not None:
            logger.debug("User base rate %s for user %s", user_rate.id, user_id)
            return user_rate.rate_amount

        if role:
            logger.debug("Role default rate for user %s (%s)", user_id, role)
            return self.policy.role_rate(role)

        logger.debug("Firm default rate for user %s", user_id)
        return self.policy.firm_default_rate

    def resolve_timer_base_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: int,
        requested_rate: Optional[Decimal] = None,
        on_date: Optional[date] = None,
        role: Optional[str] = None,
    ) -> Decimal:
        """Base rate for a new timer.

        An explicit rate wins (rounded to cents), then the default rate of the
        case's active configuration, then the waterfall.
        """
        if requested_rate is not None:
            return quantize_rate(requested_rate)

        configuration = self.get_effective_configuration(tenant_id, legal_case_id)
        if configuration.from_case_configuration:
            return configuration.default_rate

        return self.resolve_base_rate(tenant_id, user_id, legal_case_id, on_date=on_date, role=role)

    # Multipliers
    def apply_multipliers(
        self,
        base_rate: Decimal,
        when: datetime,
        is_emergency: bool,
        configuration: EffectiveRateConfiguration,
    ) -> Decimal:
        """Apply the configuration's multipliers for a moment in time."""
        multiplier = multiplier_for_scenario(
            configuration,
            is_weekend=self.is_weekend(when.date()),
            is_after_hours=self.is_after_hours(when.time()),
            is_emergency=is_emergency,
        )
        return quantize_rate(base_rate * multiplier)

    def calculate_effective_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: Optional[int] = None,
        when: Optional[datetime] = None,
        is_emergency: bool = False,
        role: Optional[str] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
    ) -> Decimal:
        """Waterfall base rate with multipliers applied for ``when`` (default: now)."""
        when = when or self.clock.now()
        base_rate = self.resolve_base_rate(
            tenant_id,
            user_id,
            legal_case_id=legal_case_id,
            client_id=client_id,
            matter_type_id=matter_type_id,
            on_date=when.date(),
            role=role,
        )
        configuration = self.get_effective_configuration(tenant_id, legal_case_id)
        return self.apply_multipliers(base_rate, when, is_emergency, configuration)

    def preview_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: int,
        when: Optional[datetime] = None,
        is_emergency: bool = False,
        rate: Optional[Decimal] = None,
        apply_multipliers: bool = True,
        role: Optional[str] = None,
    ) -> RateQuote:
        """Quote the rate a timer started at ``when`` would get."""
        when = when or self.clock.now()
        configuration = self.get_effective_configuration(tenant_id, legal_case_id)
        base_rate = self.resolve_timer_base_rate(
            tenant_id, user_id, legal_case_id, requested_rate=rate, on_date=when.date(), role=role
        )

        weekend = self.is_weekend(when.date())
        after_hours = self.is_after_hours(when.time())
        if apply_multipliers:
            multiplier = multiplier_for_scenario(configuration, weekend, after_hours, is_emergency)
            effective_rate = quantize_rate(base_rate * multiplier)
        else:
            multiplier = Decimal("1")
            effective_rate = base_rate

        return RateQuote(
            base_rate=base_rate,
            effective_rate=effective_rate,
            multiplier=multiplier,
            is_weekend=weekend,
            is_after_hours=after_hours,
            is_emergency=is_emergency,
            configuration=configuration,
        )
