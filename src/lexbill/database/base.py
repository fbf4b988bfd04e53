"""Abstract database interface.

Every operation takes the tenant id and filters by it; a row owned by
another tenant behaves exactly like a missing row.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
from lexbill.domain.entities import (
    ActiveTimer,
    BillingRate,
    CaseRateConfiguration,
    LegalCase,
    RateType,
    TimeEntry,
    TimeEntryStatus,
    TimerSession,
)


class Database(ABC):
    """Abstract database interface for lexbill."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Legal case operations
    @abstractmethod
    def create_legal_case(
        self,
        tenant_id: int,
        title: str,
        case_number: Optional[str] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
    ) -> int:
        """Create a legal case. Returns case ID."""
        pass

    @abstractmethod
    def get_legal_case(self, tenant_id: int, case_id: int) -> Optional[LegalCase]:
        """Get legal case by ID within a tenant."""
        pass

    @abstractmethod
    def list_legal_cases(self, tenant_id: int) -> list[LegalCase]:
        """List all cases of a tenant."""
        pass

    # Billing rate operations
    @abstractmethod
    def create_billing_rate(
        self,
        tenant_id: int,
        rate_amount: Decimal,
        rate_type: RateType,
        effective_date: date,
        user_id: Optional[int] = None,
        legal_case_id: Optional[int] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
        end_date: Optional[date] = None,
        is_active: bool = True,
    ) -> int:
        """Create a billing rate. Returns rate ID."""
        pass

    @abstractmethod
    def get_billing_rate(self, tenant_id: int, rate_id: int) -> Optional[BillingRate]:
        """Get billing rate by ID."""
        pass

    @abstractmethod
    def update_billing_rate(
        self,
        tenant_id: int,
        rate_id: int,
        rate_amount: Optional[Decimal] = None,
        rate_type: Optional[RateType] = None,
        effective_date: Optional[date] = None,
        end_date: Optional[date] = None,
        is_active: Optional[bool] = None,
        clear_end_date: bool = False,
    ) -> None:
        """Update billing rate fields."""
        pass

    @abstractmethod
    def delete_billing_rate(self, tenant_id: int, rate_id: int) -> None:
        """Delete a billing rate."""
        pass

    @abstractmethod
    def list_billing_rates(
        self,
        tenant_id: int,
        user_id: Optional[int] = None,
        legal_case_id: Optional[int] = None,
        client_id: Optional[int] = None,
        matter_type_id: Optional[int] = None,
        rate_type: Optional[RateType] = None,
        active_only: bool = False,
    ) -> list[BillingRate]:
        """List billing rates, newest effective date first.

        Each filter narrows the result only when given.
        """
        pass

    @abstractmethod
    def find_active_user_rate(
        self, tenant_id: int, user_id: int, on_date: Optional[date] = None
    ) -> Optional[BillingRate]:
        """Find the user's active unscoped rate.

        With ``on_date`` only rates in effect on that date qualify; the most
        recent effective date wins.
        """
        pass

    @abstractmethod
    def find_case_specific_rate(
        self, tenant_id: int, legal_case_id: int, user_id: int
    ) -> Optional[BillingRate]:
        """Find the active rate scoped to exactly this case and user."""
        pass

    @abstractmethod
    def find_most_specific_rate(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: Optional[int],
        client_id: Optional[int],
        matter_type_id: Optional[int],
        on_date: date,
    ) -> Optional[BillingRate]:
        """Find the most specific scoped rate effective on ``on_date``."""
        pass

    @abstractmethod
    def has_overlapping_rate(
        self,
        tenant_id: int,
        user_id: Optional[int],
        legal_case_id: Optional[int],
        client_id: Optional[int],
        matter_type_id: Optional[int],
        effective_date: date,
        end_date: Optional[date],
        exclude_rate_id: Optional[int] = None,
    ) -> bool:
        """Check for an active rate with the same scope and an overlapping period."""
        pass

    # Case rate configuration operations
    @abstractmethod
    def create_case_rate_configuration(
        self,
        tenant_id: int,
        legal_case_id: int,
        default_rate: Decimal,
        allow_multipliers: bool,
        weekend_multiplier: Decimal,
        after_hours_multiplier: Decimal,
        emergency_multiplier: Decimal,
        is_active: bool = True,
    ) -> int:
        """Create a case rate configuration. Returns configuration ID.

        Raises:
            ConflictError: If the case already has an active configuration
        """
        pass

    @abstractmethod
    def get_case_rate_configuration(
        self, tenant_id: int, config_id: int
    ) -> Optional[CaseRateConfiguration]:
        """Get case rate configuration by ID."""
        pass

    @abstractmethod
    def find_case_configuration(
        self, tenant_id: int, legal_case_id: int
    ) -> Optional[CaseRateConfiguration]:
        """Find the active configuration for a case."""
        pass

    @abstractmethod
    def list_case_rate_configurations(
        self, tenant_id: int, active_only: bool = False
    ) -> list[CaseRateConfiguration]:
        """List case rate configurations."""
        pass

    @abstractmethod
    def update_case_rate_configuration(
        self,
        tenant_id: int,
        config_id: int,
        default_rate: Optional[Decimal] = None,
        allow_multipliers: Optional[bool] = None,
        weekend_multiplier: Optional[Decimal] = None,
        after_hours_multiplier: Optional[Decimal] = None,
        emergency_multiplier: Optional[Decimal] = None,
        is_active: Optional[bool] = None,
    ) -> None:
        """Update case rate configuration fields."""
        pass

    @abstractmethod
    def delete_case_rate_configuration(self, tenant_id: int, config_id: int) -> None:
        """Delete a case rate configuration."""
        pass

    # Active timer operations
    @abstractmethod
    def create_active_timer(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: int,
        started_at: datetime,
        hourly_rate: Decimal,
        base_rate: Decimal,
        apply_multipliers: bool,
        is_emergency: bool,
        description: Optional[str] = None,
        work_type: Optional[str] = None,
        tags: Sequence[str] = (),
    ) -> ActiveTimer:
        """Create a running timer.

        Raises:
            ConflictError: If the user already has a timer for the case
        """
        pass

    @abstractmethod
    def get_active_timer(self, tenant_id: int, timer_id: int) -> Optional[ActiveTimer]:
        """Get active timer by ID."""
        pass

    @abstractmethod
    def find_active_timer_for_case(
        self, tenant_id: int, user_id: int, legal_case_id: int
    ) -> Optional[ActiveTimer]:
        """Find the user's timer (running or paused) for a case."""
        pass

    @abstractmethod
    def list_active_timers(
        self, tenant_id: int, user_id: Optional[int] = None, running: Optional[bool] = None
    ) -> list[ActiveTimer]:
        """List timers, optionally filtered by user and running state."""
        pass

    @abstractmethod
    def update_active_timer(
        self,
        tenant_id: int,
        timer_id: int,
        expected_version: int,
        updated_at: datetime,
        started_at: Optional[datetime] = None,
        accumulated_seconds: Optional[int] = None,
        running: Optional[bool] = None,
        hourly_rate: Optional[Decimal] = None,
        description: Optional[str] = None,
    ) -> Optional[ActiveTimer]:
        """Apply changes if the row still has ``expected_version``.

        Returns:
            The updated timer, or None if the row is gone or was changed
            by someone else in the meantime
        """
        pass

    @abstractmethod
    def close_active_timer(
        self,
        tenant_id: int,
        timer_id: int,
        expected_version: int,
        ended_at: datetime,
        total_duration_seconds: int,
    ) -> Optional[TimerSession]:
        """Delete the timer and write its session in one transaction.

        Returns:
            The written session, or None if the row is gone or was changed
            by someone else in the meantime
        """
        pass

    @abstractmethod
    def delete_active_timer(self, tenant_id: int, timer_id: int) -> bool:
        """Delete a timer without writing a session. Returns True if deleted."""
        pass

    @abstractmethod
    def count_active_timers(self, tenant_id: int, running: Optional[bool] = None) -> int:
        """Count timers of a tenant."""
        pass

    # Timer session operations
    @abstractmethod
    def get_timer_session(self, tenant_id: int, session_id: int) -> Optional[TimerSession]:
        """Get timer session by ID."""
        pass

    @abstractmethod
    def list_timer_sessions(
        self,
        tenant_id: int,
        user_id: Optional[int] = None,
        converted: Optional[bool] = None,
    ) -> list[TimerSession]:
        """List timer sessions, most recently ended first."""
        pass

    @abstractmethod
    def mark_session_converted(
        self, tenant_id: int, session_id: int, time_entry_id: Optional[int]
    ) -> None:
        """Flag a session as converted and link the created time entry."""
        pass

    # Time entry operations
    @abstractmethod
    def create_time_entry(
        self,
        tenant_id: int,
        user_id: int,
        legal_case_id: int,
        date: date,
        hours: Decimal,
        rate: Optional[Decimal],
        description: Optional[str],
        status: TimeEntryStatus = TimeEntryStatus.DRAFT,
        billable: bool = True,
    ) -> int:
        """Create a time entry. Returns entry ID."""
        pass

    @abstractmethod
    def get_time_entry(self, tenant_id: int, entry_id: int) -> Optional[TimeEntry]:
        """Get time entry by ID."""
        pass

    @abstractmethod
    def list_time_entries(
        self,
        tenant_id: int,
        user_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        legal_case_id: Optional[int] = None,
    ) -> list[TimeEntry]:
        """List time entries with optional filters."""
        pass

    @abstractmethod
    def get_total_hours(self, tenant_id: int, user_id: int, on_date: date) -> Decimal:
        """Sum of hours the user recorded on a date."""
        pass
