"""Timer domain service.

A timer is Running or Paused while it exists and Stopped once its row is
gone. ``started_at`` is the start of the current running segment; finished
segments live in ``accumulated_seconds``. Pausing folds the current segment
into the accumulator before flipping the state, so paused time is never
counted and no segment is counted twice.

Every mutation is a read-modify-write against the timer's row version. A
write that loses a race re-reads the timer and tries again.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from lexbill.config import BillingPolicy
from lexbill.database.base import Database
from lexbill.domain.clock import Clock, SystemClock
from lexbill.domain.entities import ActiveTimer, TimerSession
from lexbill.domain.errors import (
    ConcurrencyError,
    ConflictError,
    DomainError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
    duplicate_active_timer,
    require_tenant,
    timer_not_found,
    timer_not_owned,
)
from lexbill.domain.rates import RateEngine

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds between two moments, never negative."""
    return max(0, int((end - start).total_seconds()))


def current_duration_seconds(timer: ActiveTimer, now: datetime) -> int:
    """Worked seconds of a timer up to ``now``, excluding paused time."""
    if not timer.running:
        return timer.accumulated_seconds
    return timer.accumulated_seconds + elapsed_seconds(timer.started_at, now)


@dataclass(frozen=True)
class StartTimerRequest:
    """Parameters for starting a timer."""

    legal_case_id: int
    description: Optional[str] = None
    rate: Optional[Decimal] = None
    apply_multipliers: bool = True
    is_emergency: bool = False
    work_type: Optional[str] = None
    tags: Sequence[str] = ()
    role: Optional[str] = None


@dataclass
class StopAllResult:
    """Outcome of stopping every timer of a user."""

    sessions: list[TimerSession] = field(default_factory=list)
    failures: list[tuple[int, str]] = field(default_factory=list)


class TimerService:
    """Service for the timer lifecycle."""

    def __init__(
        self,
        db: Database,
        rate_engine: Optional[RateEngine] = None,
        clock: Optional[Clock] = None,
        policy: Optional[BillingPolicy] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        """Initialize timer service.

        Args:
            db: Database instance
            rate_engine: Engine resolving the timer's rate (built from db if None)
            clock: Clock for segment boundaries
            policy: Billing policy for the default rate engine
            max_retries: Attempts for a versioned write before giving up
        """
        self.db = db
        self.clock = clock or SystemClock()
        self.rate_engine = rate_engine or RateEngine(db, policy=policy, clock=self.clock)
        self.max_retries = max_retries

    def get_user_timer(self, tenant_id: int, user_id: int, timer_id: int) -> ActiveTimer:
        """Get a timer that must belong to ``user_id``.

        Raises:
            NotFoundError: If the timer does not exist in the tenant
            ForbiddenError: If the timer belongs to another user
        """
        timer = self.db.get_active_timer(tenant_id, timer_id)
        if timer is None:
            raise NotFoundError(timer_not_found(timer_id))
        if timer.user_id != user_id:
            raise ForbiddenError(timer_not_owned(timer_id, user_id))
        return timer

    def _mutate(
        self,
        tenant_id: int,
        user_id: int,
        timer_id: int,
        change: Callable[[ActiveTimer, datetime], Optional[dict]],
    ) -> ActiveTimer:
        """Apply ``change`` under the row version, retrying lost races.

        ``change`` returns the columns to write, or None when the timer is
        already in the requested state.
        """
        require_tenant(tenant_id)
        for _ in range(self.max_retries):
            timer = self.get_user_timer(tenant_id, user_id, timer_id)
            now = self.clock.now()
            values = change(timer, now)
            if values is None:
                return timer

            updated = self.db.update_active_timer(
                tenant_id, timer_id, expected_version=timer.version, updated_at=now, **values
            )
            if updated is not None:
                return updated
            logger.debug("Timer %s changed concurrently, retrying", timer_id)

        raise ConcurrencyError(f"Timer {timer_id} kept changing; gave up after {self.max_retries} attempts")

    def start_timer(self, tenant_id: int, user_id: int, request: StartTimerRequest) -> ActiveTimer:
        """Start a timer for a user on a case.

        Args:
            tenant_id: Tenant context
            user_id: User the timer belongs to
            request: Case, description and rate options

        Returns:
            The running timer

        Raises:
            ConfigurationError: If tenant_id is None
            NotFoundError: If the case does not exist in the tenant
            ValidationError: If an explicit rate is not positive
            ConflictError: If the user already has a timer for the case
        """
        require_tenant(tenant_id)
        if request.rate is not None and request.rate <= 0:
            raise ValidationError("Billing rate must be greater than zero")

        configuration = self.rate_engine.get_effective_configuration(tenant_id, request.legal_case_id)

        if self.db.find_active_timer_for_case(tenant_id, user_id, request.legal_case_id) is not None:
            raise ConflictError(duplicate_active_timer(user_id, request.legal_case_id))

        now = self.clock.now()
        base_rate = self.rate_engine.resolve_timer_base_rate(
            tenant_id,
            user_id,
            request.legal_case_id,
            requested_rate=request.rate,
            on_date=now.date(),
            role=request.role,
        )
        hourly_rate = base_rate
        if request.apply_multipliers:
            hourly_rate = self.rate_engine.apply_multipliers(base_rate, now, request.is_emergency, configuration)

        timer = self.db.create_active_timer(
            tenant_id=tenant_id,
            user_id=user_id,
            legal_case_id=request.legal_case_id,
            started_at=now,
            hourly_rate=hourly_rate,
            base_rate=base_rate,
            apply_multipliers=request.apply_multipliers,
            is_emergency=request.is_emergency,
            description=request.description,
            work_type=request.work_type,
            tags=tuple(request.tags),
        )
        logger.info(
            "Started timer %s for user %s on case %s at %s/hr (tenant %s)",
            timer.id,
            user_id,
            request.legal_case_id,
            hourly_rate,
            tenant_id,
        )
        return timer

    def pause_timer(self, tenant_id: int, user_id: int, timer_id: int) -> ActiveTimer:
        """Pause a running timer. Pausing a paused timer changes nothing.

        Raises:
            NotFoundError: If the timer does not exist in the tenant
            ForbiddenError: If the timer belongs to another user
            ConcurrencyError: If the timer kept changing underneath
        """

        def pause(timer: ActiveTimer, now: datetime) -> Optional[dict]:
            if not timer.running:
                logger.warning("Timer %s is already paused", timer.id)
                return None
            return {
                "accumulated_seconds": timer.accumulated_seconds + elapsed_seconds(timer.started_at, now),
                "running": False,
                "started_at": now,
            }

        timer = self._mutate(tenant_id, user_id, timer_id, pause)
        logger.info("Paused timer %s at %ss (tenant %s)", timer_id, timer.accumulated_seconds, tenant_id)
        return timer

    def resume_timer(self, tenant_id: int, user_id: int, timer_id: int) -> ActiveTimer:
        """Resume a paused timer. Resuming a running timer changes nothing.

        When the timer applies multipliers its rate is recomputed for the
        moment of resumption.

        Raises:
            NotFoundError: If the timer does not exist in the tenant
            ForbiddenError: If the timer belongs to another user
            ConcurrencyError: If the timer kept changing underneath
        """

        def resume(timer: ActiveTimer, now: datetime) -> Optional[dict]:
            if timer.running:
                logger.warning("Timer %s is already running", timer.id)
                return None
            values: dict = {"running": True, "started_at": now}
            if timer.apply_multipliers:
                configuration = self.rate_engine.get_effective_configuration(tenant_id, timer.legal_case_id)
                rate = self.rate_engine.apply_multipliers(timer.base_rate, now, timer.is_emergency, configuration)
                if rate != timer.hourly_rate:
                    logger.info("Timer %s rate changed from %s to %s", timer.id, timer.hourly_rate, rate)
                    values["hourly_rate"] = rate
            return values

        timer = self._mutate(tenant_id, user_id, timer_id, resume)
        logger.info("Resumed timer %s (tenant %s)", timer_id, tenant_id)
        return timer

    def update_timer_description(
        self, tenant_id: int, user_id: int, timer_id: int, description: str
    ) -> ActiveTimer:
        """Replace a timer's description."""
        return self._mutate(tenant_id, user_id, timer_id, lambda timer, now: {"description": description})

    def stop_timer(self, tenant_id: int, user_id: int, timer_id: int) -> Optional[TimerSession]:
        """Stop a timer and record its session.

        Stopping a timer that no longer exists is not an error.

        Returns:
            The written session, or None if the timer was already stopped

        Raises:
            ForbiddenError: If the timer belongs to another user
            ConcurrencyError: If the timer kept changing underneath
        """
        require_tenant(tenant_id)
        for _ in range(self.max_retries):
            timer = self.db.get_active_timer(tenant_id, timer_id)
            if timer is None:
                logger.warning("Timer %s is already stopped", timer_id)
                return None
            if timer.user_id != user_id:
                raise ForbiddenError(timer_not_owned(timer_id, user_id))

            now = self.clock.now()
            session = self.db.close_active_timer(
                tenant_id,
                timer_id,
                expected_version=timer.version,
                ended_at=now,
                total_duration_seconds=current_duration_seconds(timer, now),
            )
            if session is not None:
                logger.info(
                    "Stopped timer %s after %ss, session %s (tenant %s)",
                    timer_id,
                    session.total_duration_seconds,
                    session.id,
                    tenant_id,
                )
                return session
            logger.debug("Timer %s changed concurrently, retrying stop", timer_id)

        raise ConcurrencyError(f"Timer {timer_id} kept changing; gave up after {self.max_retries} attempts")

    def stop_all_timers(self, tenant_id: int, user_id: int) -> StopAllResult:
        """Stop every timer of a user, running or paused.

        A timer that fails to stop is logged and reported without stopping
        the others.
        """
        result = StopAllResult()
        for timer in self.get_active_timers(tenant_id, user_id):
            try:
                session = self.stop_timer(tenant_id, user_id, timer.id)
            except DomainError as e:
                logger.warning("Could not stop timer %s: %s", timer.id, e)
                result.failures.append((timer.id, str(e)))
                continue
            if session is not None:
                result.sessions.append(session)
        return result

    def delete_timer(self, tenant_id: int, user_id: int, timer_id: int) -> None:
        """Discard a timer without recording a session.

        Raises:
            NotFoundError: If the timer does not exist in the tenant
            ForbiddenError: If the timer belongs to another user
        """
        require_tenant(tenant_id)
        self.get_user_timer(tenant_id, user_id, timer_id)
        if self.db.delete_active_timer(tenant_id, timer_id):
            logger.info("Deleted timer %s (tenant %s)", timer_id, tenant_id)

    # Queries
    def get_active_timer(self, tenant_id: int, timer_id: int) -> ActiveTimer:
        """Get timer by ID.

        Raises:
            NotFoundError: If the timer does not exist in the tenant
        """
        timer = self.db.get_active_timer(require_tenant(tenant_id), timer_id)
        if timer is None:
            raise NotFoundError(timer_not_found(timer_id))
        return timer

    def get_active_timers(self, tenant_id: int, user_id: int) -> list[ActiveTimer]:
        """Running and paused timers of a user."""
        return self.db.list_active_timers(require_tenant(tenant_id), user_id=user_id)

    def get_all_active_timers(self, tenant_id: int) -> list[ActiveTimer]:
        """Running timers across the tenant."""
        return self.db.list_active_timers(require_tenant(tenant_id), running=True)

    def get_active_timer_for_case(self, tenant_id: int, user_id: int, legal_case_id: int) -> Optional[ActiveTimer]:
        return self.db.find_active_timer_for_case(require_tenant(tenant_id), user_id, legal_case_id)

    def has_active_timer(self, tenant_id: int, user_id: int) -> bool:
        return len(self.get_active_timers(tenant_id, user_id)) > 0

    def has_active_timer_for_case(self, tenant_id: int, user_id: int, legal_case_id: int) -> bool:
        return self.get_active_timer_for_case(tenant_id, user_id, legal_case_id) is not None

    def get_total_active_timers_count(self, tenant_id: int) -> int:
        """Number of running timers in the tenant."""
        return self.db.count_active_timers(require_tenant(tenant_id), running=True)

    def get_long_running_timers(self, tenant_id: int, hours: float = 8) -> list[ActiveTimer]:
        """Running timers whose worked time exceeds ``hours``."""
        threshold = int(hours * 3600)
        now = self.clock.now()
        return [
            timer
            for timer in self.get_all_active_timers(tenant_id)
            if current_duration_seconds(timer, now) > threshold
        ]

    def current_duration_seconds(self, timer: ActiveTimer) -> int:
        """Worked seconds of a timer up to now."""
        return current_duration_seconds(timer, self.clock.now())

    # Sessions
    def list_timer_sessions(
        self, tenant_id: int, user_id: Optional[int] = None, converted: Optional[bool] = None
    ) -> list[TimerSession]:
        """Recorded sessions, most recently ended first."""
        return self.db.list_timer_sessions(require_tenant(tenant_id), user_id=user_id, converted=converted)

    def get_unconverted_sessions(self, tenant_id: int, user_id: int) -> list[TimerSession]:
        """Sessions of a user not yet turned into time entries."""
        return self.list_timer_sessions(tenant_id, user_id=user_id, converted=False)
