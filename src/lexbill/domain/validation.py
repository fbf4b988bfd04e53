"""Time entry validation rules."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, Protocol

from lexbill.config import BillingPolicy
from lexbill.domain.clock import Clock, SystemClock
from lexbill.domain.entities import TimeEntryDraft, ValidationResult

logger = logging.getLogger(__name__)


class HolidayCalendar(Protocol):
    """Tells whether a date is a firm holiday."""

    def is_holiday(self, on_date: date) -> bool: ...


class TimeEntryValidator:
    """Checks a time entry against the firm's billing rules.

    Every rule is evaluated and every violation reported. Weekend and
    holiday work only produces a warning.

    ``has_overlapping_entries`` and ``can_user_work_on_case`` are extension
    points: by default entries never overlap and every user may work on
    every case. Subclass to plug in real checks.
    """

    def __init__(
        self,
        policy: Optional[BillingPolicy] = None,
        clock: Optional[Clock] = None,
        holiday_calendar: Optional[HolidayCalendar] = None,
    ):
        self.policy = policy or BillingPolicy()
        self.clock = clock or SystemClock()
        self.holiday_calendar = holiday_calendar

    def validate(self, entry: TimeEntryDraft, existing_daily_hours: Decimal = Decimal("0")) -> ValidationResult:
        """Validate a time entry.

        Args:
            entry: Entry to check
            existing_daily_hours: Hours the user already recorded on the entry's date

        Returns:
            ValidationResult with all errors and warnings
        """
        result = ValidationResult()

        if self.exceeds_max_daily_hours(entry, existing_daily_hours):
            total = self.total_daily_hours(entry, existing_daily_hours)
            result.add_error(
                f"Exceeds maximum daily hours ({self.policy.max_daily_hours}). "
                f"Total daily hours would be: {total}"
            )

        if not self.is_valid_time_increment(entry):
            minutes = int(self.policy.time_increment * 60)
            result.add_error(
                f"Time must be in {minutes}-minute ({self.policy.time_increment} hour) increments. "
                f"Current: {entry.hours}"
            )

        if not self.has_adequate_description(entry):
            result.add_error(
                f"Description must be at least {self.policy.min_description_length} characters "
                "for billing purposes"
            )

        if self.has_overlapping_entries(entry):
            result.add_error("Time entry overlaps with existing entry for the same date and time period")

        if self.requires_special_approval(entry):
            result.add_warning("Weekend or holiday work may require pre-approval from management")

        if not self.can_user_work_on_case(entry.user_id, entry.legal_case_id):
            result.add_error("User is not authorized to work on this case")

        if entry.date > self.clock.now().date():
            result.add_error("Cannot create time entries for future dates")

        if entry.rate is not None and entry.rate <= 0:
            result.add_error("Billing rate must be greater than zero")

        logger.debug(
            "Validated entry for user %s on case %s: %s errors, %s warnings",
            entry.user_id,
            entry.legal_case_id,
            len(result.errors),
            len(result.warnings),
        )
        return result

    def total_daily_hours(self, entry: TimeEntryDraft, existing_daily_hours: Decimal) -> Decimal:
        return existing_daily_hours + (entry.hours or Decimal("0"))

    def exceeds_max_daily_hours(self, entry: TimeEntryDraft, existing_daily_hours: Decimal) -> bool:
        return self.total_daily_hours(entry, existing_daily_hours) > self.policy.max_daily_hours

    def is_valid_time_increment(self, entry: TimeEntryDraft) -> bool:
        if entry.hours is None:
            return False
        return entry.hours % self.policy.time_increment == 0

    def has_adequate_description(self, entry: TimeEntryDraft) -> bool:
        return entry.description is not None and len(entry.description.strip()) >= self.policy.min_description_length

    def requires_special_approval(self, entry: TimeEntryDraft) -> bool:
        """Weekend or holiday work."""
        if entry.date.weekday() >= 5:
            return True
        return self.holiday_calendar is not None and self.holiday_calendar.is_holiday(entry.date)

    def has_overlapping_entries(self, entry: TimeEntryDraft) -> bool:
        # Entries carry no start/end times, so nothing can overlap
        return False

    def can_user_work_on_case(self, user_id: int, legal_case_id: int) -> bool:
        return True
