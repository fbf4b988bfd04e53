"""Domain model entities for lexbill.

These are pure data classes representing timers, rates and time entries,
independent of the database schema. Services and the store exchange these
objects so the billing rules never depend on ORM state.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class RateType(str, Enum):
    """Kind of billing rate."""

    STANDARD = "STANDARD"
    PREMIUM = "PREMIUM"
    DISCOUNTED = "DISCOUNTED"
    EMERGENCY = "EMERGENCY"
    PRO_BONO = "PRO_BONO"


class TimeEntryStatus(str, Enum):
    """Approval status of a time entry."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    BILLED = "BILLED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class LegalCase:
    """Legal case (matter) owned by one tenant."""

    id: int
    tenant_id: int
    title: str
    case_number: Optional[str]
    client_id: Optional[int]
    matter_type_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class ActiveTimer:
    """Running or paused timer for one user on one case.

    ``started_at`` marks the start of the current running segment only;
    ``accumulated_seconds`` holds the completed segments.
    """

    id: int
    tenant_id: int
    user_id: int
    legal_case_id: int
    started_at: datetime
    accumulated_seconds: int
    running: bool
    hourly_rate: Decimal
    base_rate: Decimal
    apply_multipliers: bool
    is_emergency: bool
    description: Optional[str]
    work_type: Optional[str]
    tags: tuple[str, ...]
    version: int
    created_at: datetime
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class TimerSession:
    """Immutable record of a stopped timer."""

    id: int
    tenant_id: int
    user_id: int
    legal_case_id: int
    description: Optional[str]
    started_at: datetime
    ended_at: datetime
    total_duration_seconds: int
    hourly_rate: Optional[Decimal]
    converted_to_time_entry: bool
    time_entry_id: Optional[int] = None


@dataclass(frozen=True)
class BillingRate:
    """Hourly rate scoped to any combination of user, case, client and matter type."""

    id: int
    tenant_id: int
    user_id: Optional[int]
    legal_case_id: Optional[int]
    client_id: Optional[int]
    matter_type_id: Optional[int]
    rate_amount: Decimal
    rate_type: RateType
    effective_date: date
    end_date: Optional[date]
    is_active: bool
    created_at: datetime

    @property
    def is_scoped(self) -> bool:
        """True when the rate is tied to a case, client or matter type."""
        return any(
            value is not None
            for value in (self.legal_case_id, self.client_id, self.matter_type_id)
        )

    def is_effective_on(self, on_date: date) -> bool:
        """Check whether the rate period covers ``on_date``."""
        if self.effective_date > on_date:
            return False
        return self.end_date is None or self.end_date >= on_date


@dataclass(frozen=True)
class CaseRateConfiguration:
    """Per-case rate override with multiplier settings."""

    id: int
    tenant_id: int
    legal_case_id: int
    default_rate: Decimal
    allow_multipliers: bool
    weekend_multiplier: Decimal
    after_hours_multiplier: Decimal
    emergency_multiplier: Decimal
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class EffectiveRateConfiguration:
    """Multiplier settings in force for one rate computation.

    Built from the active case configuration when one exists, otherwise
    from the billing policy defaults.
    """

    legal_case_id: Optional[int]
    default_rate: Decimal
    allow_multipliers: bool
    weekend_multiplier: Decimal
    after_hours_multiplier: Decimal
    emergency_multiplier: Decimal
    from_case_configuration: bool


@dataclass(frozen=True)
class TimeEntryDraft:
    """Candidate time entry awaiting validation and persistence."""

    user_id: int
    legal_case_id: int
    date: date
    hours: Optional[Decimal]
    rate: Optional[Decimal]
    description: Optional[str]
    status: TimeEntryStatus = TimeEntryStatus.DRAFT
    billable: bool = True

    @property
    def amount(self) -> Optional[Decimal]:
        if self.hours is None or self.rate is None:
            return None
        return self.hours * self.rate


@dataclass(frozen=True)
class TimeEntry:
    """Persisted time entry."""

    id: int
    tenant_id: int
    user_id: int
    legal_case_id: int
    date: date
    hours: Decimal
    rate: Optional[Decimal]
    description: Optional[str]
    status: TimeEntryStatus
    billable: bool
    created_at: datetime


@dataclass
class ValidationResult:
    """Outcome of time entry validation."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting one timer into a time entry.

    A conversion can stop the timer yet fail to create the entry; in that
    case ``session`` is set while ``time_entry`` is None and ``errors``
    explains the rejection.
    """

    timer_id: Optional[int]
    session: Optional[TimerSession] = None
    draft: Optional[TimeEntryDraft] = None
    time_entry: Optional[TimeEntry] = None
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def stopped(self) -> bool:
        return self.session is not None

    @property
    def entry_created(self) -> bool:
        return self.time_entry is not None
