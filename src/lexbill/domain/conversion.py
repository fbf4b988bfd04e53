"""Timer to time entry conversion."""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from lexbill.config import BillingPolicy
from lexbill.database.base import Database
from lexbill.domain.clock import Clock, SystemClock
from lexbill.domain.entities import ConversionResult, TimeEntryDraft, TimerSession
from lexbill.domain.errors import (
    DomainError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    require_tenant,
    timer_not_found,
    timer_session_not_found,
)
from lexbill.domain.time_entry import TimeEntryService
from lexbill.domain.timer import TimerService

logger = logging.getLogger(__name__)

SECONDS_PER_TENTH = 360


def hours_from_seconds(seconds: int) -> Decimal:
    """Billable hours for worked seconds, rounded up to the next tenth.

    1 to 360 seconds bill as 0.1 hours, 361 seconds as 0.2 hours.
    """
    tenths = -(-max(0, seconds) // SECONDS_PER_TENTH)
    return (Decimal(tenths) / 10).quantize(Decimal("0.1"))


class TimerConversionService:
    """Turns timers into draft time entries."""

    def __init__(
        self,
        db: Database,
        timer_service: Optional[TimerService] = None,
        time_entry_service: Optional[TimeEntryService] = None,
        clock: Optional[Clock] = None,
        policy: Optional[BillingPolicy] = None,
    ):
        """Initialize conversion service.

        Args:
            db: Database instance
            timer_service: Service used to stop timers
            time_entry_service: Service that validates and records entries
            clock: Clock supplying the entry date
            policy: Billing policy for services built here
        """
        self.db = db
        self.clock = clock or SystemClock()
        self.timers = timer_service or TimerService(db, clock=self.clock, policy=policy)
        self.time_entries = time_entry_service or TimeEntryService(db, policy=policy, clock=self.clock)

    def convert_timer(
        self, tenant_id: int, user_id: int, timer_id: int, description: Optional[str] = None
    ) -> ConversionResult:
        """Stop a timer and record its time as a draft entry.

        The timer is stopped even when the entry is rejected; the result then
        carries the session and the validation errors.

        Args:
            tenant_id: Tenant context
            user_id: Owner of the timer
            timer_id: Timer to convert
            description: Entry description (default: the timer's)

        Returns:
            ConversionResult

        Raises:
            NotFoundError: If the timer does not exist in the tenant
            ForbiddenError: If the timer belongs to another user
        """
        require_tenant(tenant_id)
        self.timers.get_user_timer(tenant_id, user_id, timer_id)

        session = self.timers.stop_timer(tenant_id, user_id, timer_id)
        if session is None:
            # Stopped by someone else between the read and the stop
            raise NotFoundError(timer_not_found(timer_id))

        return self._record(tenant_id, timer_id, session, description)

    def convert_session(
        self, tenant_id: int, user_id: int, session_id: int, description: Optional[str] = None
    ) -> ConversionResult:
        """Record an already stopped, unconverted session as a draft entry.

        Raises:
            NotFoundError: If the session does not exist in the tenant
            ForbiddenError: If the session belongs to another user
            ValidationError: If the session was already converted
        """
        require_tenant(tenant_id)
        session = self.db.get_timer_session(tenant_id, session_id)
        if session is None:
            raise NotFoundError(timer_session_not_found(session_id))
        if session.user_id != user_id:
            raise ForbiddenError(f"Timer session {session_id} does not belong to user {user_id}")
        if session.converted_to_time_entry:
            raise ValidationError(f"Timer session {session_id} was already converted")

        return self._record(tenant_id, None, session, description)

    def _record(
        self,
        tenant_id: int,
        timer_id: Optional[int],
        session: TimerSession,
        description: Optional[str],
    ) -> ConversionResult:
        draft = TimeEntryDraft(
            user_id=session.user_id,
            legal_case_id=session.legal_case_id,
            date=self.clock.now().date(),
            hours=hours_from_seconds(session.total_duration_seconds),
            rate=session.hourly_rate,
            description=description if description is not None else session.description,
        )

        validation = self.time_entries.validate_time_entry(tenant_id, draft)
        errors = list(validation.errors)
        entry = None
        if validation.valid:
            try:
                entry = self.time_entries.create_time_entry(tenant_id, draft)
            except ValidationError as e:
                errors = e.messages

        if entry is None:
            logger.warning(
                "Session %s stopped but time entry rejected: %s", session.id, "; ".join(errors)
            )
            return ConversionResult(
                timer_id=timer_id,
                session=session,
                draft=draft,
                errors=tuple(errors),
                warnings=tuple(validation.warnings),
            )

        self.db.mark_session_converted(tenant_id, session.id, entry.id)
        logger.info("Converted session %s into time entry %s (%sh)", session.id, entry.id, entry.hours)
        return ConversionResult(
            timer_id=timer_id,
            session=self.db.get_timer_session(tenant_id, session.id),
            draft=draft,
            time_entry=entry,
            warnings=tuple(validation.warnings),
        )

    def convert_timers(
        self, tenant_id: int, user_id: int, timer_ids: Iterable[int], description: Optional[str] = None
    ) -> list[ConversionResult]:
        """Convert several timers; one failing does not stop the rest."""
        require_tenant(tenant_id)
        results = []
        for timer_id in timer_ids:
            try:
                results.append(self.convert_timer(tenant_id, user_id, timer_id, description))
            except DomainError as e:
                logger.warning("Could not convert timer %s: %s", timer_id, e)
                results.append(ConversionResult(timer_id=timer_id, errors=(str(e),)))
        return results
