"""Time entry domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from lexbill.config import BillingPolicy
from lexbill.database.base import Database
from lexbill.domain.cases import CaseService
from lexbill.domain.clock import Clock
from lexbill.domain.entities import TimeEntry, TimeEntryDraft, ValidationResult
from lexbill.domain.errors import NotFoundError, ValidationError, require_tenant, time_entry_not_found
from lexbill.domain.validation import TimeEntryValidator

logger = logging.getLogger(__name__)


class TimeEntryService:
    """Service for validating and recording time entries."""

    def __init__(
        self,
        db: Database,
        validator: Optional[TimeEntryValidator] = None,
        policy: Optional[BillingPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize time entry service.

        Args:
            db: Database instance
            validator: Validator to run before persisting (built from policy and clock if None)
            policy: Billing policy for the default validator
            clock: Clock for the default validator
        """
        self.db = db
        self.validator = validator or TimeEntryValidator(policy=policy, clock=clock)
        self.cases = CaseService(db)

    def validate_time_entry(self, tenant_id: int, draft: TimeEntryDraft) -> ValidationResult:
        """Validate a draft against the user's hours already recorded that day."""
        require_tenant(tenant_id)
        existing_hours = self.db.get_total_hours(tenant_id, draft.user_id, draft.date)
        return self.validator.validate(draft, existing_hours)

    def create_time_entry(self, tenant_id: int, draft: TimeEntryDraft) -> TimeEntry:
        """Validate and persist a time entry.

        Args:
            tenant_id: Tenant context
            draft: Entry to record

        Returns:
            The persisted entry

        Raises:
            NotFoundError: If the case does not exist in the tenant
            ValidationError: If any rule is violated; ``messages`` lists them all
        """
        require_tenant(tenant_id)
        self.cases.require_case(tenant_id, draft.legal_case_id)

        result = self.validate_time_entry(tenant_id, draft)
        if not result.valid:
            raise ValidationError("; ".join(result.errors), result.errors)
        for warning in result.warnings:
            logger.warning("Time entry for user %s on %s: %s", draft.user_id, draft.date, warning)

        entry_id = self.db.create_time_entry(
            tenant_id=tenant_id,
            user_id=draft.user_id,
            legal_case_id=draft.legal_case_id,
            date=draft.date,
            hours=draft.hours,
            rate=draft.rate,
            description=draft.description,
            status=draft.status,
            billable=draft.billable,
        )
        logger.info(
            "Recorded time entry %s: %sh at %s for user %s on case %s (tenant %s)",
            entry_id,
            draft.hours,
            draft.rate,
            draft.user_id,
            draft.legal_case_id,
            tenant_id,
        )
        return self.require_time_entry(tenant_id, entry_id)

    def get_time_entry(self, tenant_id: int, entry_id: int) -> Optional[TimeEntry]:
        """Get time entry by ID, or None if not found."""
        return self.db.get_time_entry(require_tenant(tenant_id), entry_id)

    def require_time_entry(self, tenant_id: int, entry_id: int) -> TimeEntry:
        entry = self.get_time_entry(tenant_id, entry_id)
        if entry is None:
            raise NotFoundError(time_entry_not_found(entry_id))
        return entry

    def list_time_entries(
        self,
        tenant_id: int,
        user_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        legal_case_id: Optional[int] = None,
    ) -> list[TimeEntry]:
        """List time entries, newest first.

        Args:
            tenant_id: Tenant context
            user_id: Optional user filter
            start_date: Optional start date (inclusive)
            end_date: Optional end date (inclusive)
            legal_case_id: Optional case filter

        Returns:
            List of time entries
        """
        return self.db.list_time_entries(
            require_tenant(tenant_id),
            user_id=user_id,
            start_date=start_date,
            end_date=end_date,
            legal_case_id=legal_case_id,
        )

    def get_total_hours(self, tenant_id: int, user_id: int, on_date: date) -> Decimal:
        """Hours a user recorded on a date."""
        return self.db.get_total_hours(require_tenant(tenant_id), user_id, on_date)
