"""Tests for the timer lifecycle."""

import pytest
from datetime import datetime
from decimal import Decimal

from lexbill.domain.errors import (
    ConcurrencyError,
    ConfigurationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from lexbill.domain.timer import StartTimerRequest, current_duration_seconds, elapsed_seconds

TENANT = 1
OTHER_TENANT = 2
USER = 5
OTHER_USER = 6


def _start(timer_service, case_id, **kwargs):
    return timer_service.start_timer(TENANT, USER, StartTimerRequest(legal_case_id=case_id, **kwargs))


def test_start_timer_uses_firm_default_in_business_hours(timer_service, sample_case, clock):
    """Test a timer without any rates starts at the firm default."""
    timer = _start(timer_service, sample_case.id, description="Review pleadings")

    assert timer.running is True
    assert timer.accumulated_seconds == 0
    assert timer.started_at == clock.now()
    assert timer.hourly_rate == Decimal("250.00")
    assert timer.base_rate == Decimal("250.00")
    assert timer.description == "Review pleadings"
    assert timer.user_id == USER
    assert timer.tenant_id == TENANT


def test_start_timer_keeps_work_type_and_tags(timer_service, sample_case):
    """Test optional labels are stored on the timer."""
    timer = _start(timer_service, sample_case.id, work_type="RESEARCH", tags=("motion", "urgent"))

    assert timer.work_type == "RESEARCH"
    assert timer.tags == ("motion", "urgent")


def test_start_timer_after_hours_applies_multiplier(timer_service, sample_case, clock):
    """Test a timer started in the evening carries the after-hours multiplier."""
    clock.set(datetime(2024, 1, 2, 19, 0, 0))

    timer = _start(timer_service, sample_case.id)

    assert timer.base_rate == Decimal("250.00")
    assert timer.hourly_rate == Decimal("312.50")


def test_start_timer_without_multipliers(timer_service, sample_case, clock):
    """Test opting out of multipliers keeps the base rate."""
    clock.set(datetime(2024, 1, 6, 22, 0, 0))

    timer = _start(timer_service, sample_case.id, apply_multipliers=False)

    assert timer.hourly_rate == Decimal("250.00")
    assert timer.apply_multipliers is False


def test_start_timer_explicit_rate(timer_service, sample_case):
    """Test an explicit rate overrides rate resolution."""
    timer = _start(timer_service, sample_case.id, rate=Decimal("180.00"))

    assert timer.hourly_rate == Decimal("180.00")


def test_start_timer_explicit_rate_rounded_to_cents(timer_service, sample_case, clock):
    """Test the rate reported at start is the rate stored and billed."""
    timer = _start(timer_service, sample_case.id, rate=Decimal("123.456"), apply_multipliers=False)

    assert timer.hourly_rate == Decimal("123.46")
    assert timer.base_rate == Decimal("123.46")
    assert timer_service.get_active_timer(TENANT, timer.id).hourly_rate == timer.hourly_rate

    clock.advance(600)
    session = timer_service.stop_timer(TENANT, USER, timer.id)
    assert session.hourly_rate == Decimal("123.46")


def test_start_timer_rejects_non_positive_rate(timer_service, sample_case):
    """Test an explicit rate of zero is rejected."""
    with pytest.raises(ValidationError, match="Billing rate must be greater than zero"):
        _start(timer_service, sample_case.id, rate=Decimal("0"))


def test_start_timer_unknown_case(timer_service):
    """Test starting a timer on a missing case fails."""
    with pytest.raises(NotFoundError, match="Case 999 not found"):
        _start(timer_service, 999)


def test_start_timer_requires_tenant(timer_service, sample_case):
    """Test a missing tenant context is a configuration error."""
    with pytest.raises(ConfigurationError, match="Tenant context required"):
        timer_service.start_timer(None, USER, StartTimerRequest(legal_case_id=sample_case.id))


def test_start_second_timer_for_same_case_conflicts(timer_service, sample_case):
    """Test one user cannot run two timers on one case."""
    _start(timer_service, sample_case.id)

    with pytest.raises(ConflictError, match="already has an active timer"):
        _start(timer_service, sample_case.id)


def test_paused_timer_still_blocks_new_timer(timer_service, sample_case):
    """Test a paused timer counts as active for the case."""
    timer = _start(timer_service, sample_case.id)
    timer_service.pause_timer(TENANT, USER, timer.id)

    with pytest.raises(ConflictError):
        _start(timer_service, sample_case.id)


def test_other_user_can_time_same_case(timer_service, sample_case):
    """Test different users may time the same case at once."""
    _start(timer_service, sample_case.id)
    other = timer_service.start_timer(TENANT, OTHER_USER, StartTimerRequest(legal_case_id=sample_case.id))

    assert other.user_id == OTHER_USER


def test_pause_resume_does_not_count_paused_time(timer_service, sample_case, clock):
    """Test paused time is excluded and no segment is counted twice."""
    timer = _start(timer_service, sample_case.id)

    clock.advance(600)
    paused = timer_service.pause_timer(TENANT, USER, timer.id)
    assert paused.running is False
    assert paused.accumulated_seconds == 600

    clock.advance(3600)
    resumed = timer_service.resume_timer(TENANT, USER, timer.id)
    assert resumed.running is True
    assert resumed.started_at == clock.now()
    assert resumed.accumulated_seconds == 600

    clock.advance(300)
    session = timer_service.stop_timer(TENANT, USER, timer.id)

    assert session.total_duration_seconds == 900


def test_pause_twice_is_noop(timer_service, sample_case, clock):
    """Test pausing a paused timer leaves it unchanged."""
    timer = _start(timer_service, sample_case.id)
    clock.advance(120)
    first = timer_service.pause_timer(TENANT, USER, timer.id)

    clock.advance(500)
    second = timer_service.pause_timer(TENANT, USER, timer.id)

    assert second.accumulated_seconds == 120
    assert second.version == first.version


def test_resume_running_timer_is_noop(timer_service, sample_case, clock):
    """Test resuming a running timer does not reset its segment."""
    timer = _start(timer_service, sample_case.id)
    clock.advance(60)

    resumed = timer_service.resume_timer(TENANT, USER, timer.id)

    assert resumed.started_at == timer.started_at
    assert resumed.version == timer.version


def test_resume_recomputes_rate(timer_service, sample_case, clock):
    """Test resuming after hours switches to the after-hours rate."""
    timer = _start(timer_service, sample_case.id)
    assert timer.hourly_rate == Decimal("250.00")
    timer_service.pause_timer(TENANT, USER, timer.id)

    clock.set(datetime(2024, 1, 2, 19, 0, 0))
    resumed = timer_service.resume_timer(TENANT, USER, timer.id)

    assert resumed.hourly_rate == Decimal("312.50")
    assert resumed.base_rate == Decimal("250.00")


def test_resume_without_multipliers_keeps_rate(timer_service, sample_case, clock):
    """Test timers that opted out of multipliers keep their rate on resume."""
    timer = _start(timer_service, sample_case.id, apply_multipliers=False)
    timer_service.pause_timer(TENANT, USER, timer.id)

    clock.set(datetime(2024, 1, 2, 19, 0, 0))
    resumed = timer_service.resume_timer(TENANT, USER, timer.id)

    assert resumed.hourly_rate == Decimal("250.00")


def test_stop_records_one_session(timer_service, sample_case, clock):
    """Test stopping writes a session and removes the timer."""
    timer = _start(timer_service, sample_case.id, description="Draft complaint")
    clock.advance(1800)

    session = timer_service.stop_timer(TENANT, USER, timer.id)

    assert session.total_duration_seconds == 1800
    assert session.hourly_rate == Decimal("250.00")
    assert session.description == "Draft complaint"
    assert session.started_at == timer.created_at
    assert session.ended_at == clock.now()
    assert session.converted_to_time_entry is False
    assert timer_service.has_active_timer(TENANT, USER) is False
    assert len(timer_service.list_timer_sessions(TENANT, user_id=USER)) == 1


def test_stop_twice_returns_none(timer_service, sample_case, clock):
    """Test stopping an already stopped timer does nothing."""
    timer = _start(timer_service, sample_case.id)
    clock.advance(60)
    timer_service.stop_timer(TENANT, USER, timer.id)

    assert timer_service.stop_timer(TENANT, USER, timer.id) is None
    assert len(timer_service.list_timer_sessions(TENANT)) == 1


def test_stop_paused_timer_uses_accumulated_time(timer_service, sample_case, clock):
    """Test a paused timer stops with only its accumulated time."""
    timer = _start(timer_service, sample_case.id)
    clock.advance(240)
    timer_service.pause_timer(TENANT, USER, timer.id)
    clock.advance(7200)

    session = timer_service.stop_timer(TENANT, USER, timer.id)

    assert session.total_duration_seconds == 240


def test_timer_invisible_to_other_tenant(timer_service, sample_case):
    """Test a timer cannot be reached from another tenant."""
    timer = _start(timer_service, sample_case.id)

    with pytest.raises(NotFoundError):
        timer_service.pause_timer(OTHER_TENANT, USER, timer.id)
    with pytest.raises(NotFoundError):
        timer_service.get_active_timer(OTHER_TENANT, timer.id)
    assert timer_service.stop_timer(OTHER_TENANT, USER, timer.id) is None
    assert timer_service.get_active_timers(OTHER_TENANT, USER) == []


def test_other_user_cannot_touch_timer(timer_service, sample_case):
    """Test timers are owned by the user who started them."""
    timer = _start(timer_service, sample_case.id)

    with pytest.raises(ForbiddenError):
        timer_service.pause_timer(TENANT, OTHER_USER, timer.id)
    with pytest.raises(ForbiddenError):
        timer_service.stop_timer(TENANT, OTHER_USER, timer.id)
    with pytest.raises(ForbiddenError):
        timer_service.delete_timer(TENANT, OTHER_USER, timer.id)


def test_pause_missing_timer(timer_service):
    """Test pausing a timer that does not exist."""
    with pytest.raises(NotFoundError, match="Timer 42 not found"):
        timer_service.pause_timer(TENANT, USER, 42)


def test_stop_all_timers(timer_service, case_service, sample_case, clock):
    """Test every timer of the user is stopped, paused ones included."""
    other_case = case_service.create_case(TENANT, "Doe v. Acme")
    first = _start(timer_service, sample_case.id)
    second = _start(timer_service, other_case)
    clock.advance(300)
    timer_service.pause_timer(TENANT, USER, second.id)
    timer_service.start_timer(TENANT, OTHER_USER, StartTimerRequest(legal_case_id=sample_case.id))

    result = timer_service.stop_all_timers(TENANT, USER)

    assert len(result.sessions) == 2
    assert result.failures == []
    assert {session.legal_case_id for session in result.sessions} == {sample_case.id, other_case}
    assert timer_service.get_active_timers(TENANT, USER) == []
    assert len(timer_service.get_active_timers(TENANT, OTHER_USER)) == 1
    assert first.id not in [timer.id for timer in timer_service.get_active_timers(TENANT, USER)]


def test_delete_timer_writes_no_session(timer_service, sample_case):
    """Test discarding a timer leaves no session behind."""
    timer = _start(timer_service, sample_case.id)

    timer_service.delete_timer(TENANT, USER, timer.id)

    assert timer_service.has_active_timer_for_case(TENANT, USER, sample_case.id) is False
    assert timer_service.list_timer_sessions(TENANT) == []


def test_update_description(timer_service, sample_case):
    """Test replacing a timer's description bumps its version."""
    timer = _start(timer_service, sample_case.id, description="Call")

    updated = timer_service.update_timer_description(TENANT, USER, timer.id, "Call with opposing counsel")

    assert updated.description == "Call with opposing counsel"
    assert updated.version > timer.version


def test_queries(timer_service, case_service, sample_case, clock):
    """Test active timer queries and counts."""
    other_case = case_service.create_case(TENANT, "Doe v. Acme")
    running = _start(timer_service, sample_case.id)
    paused = _start(timer_service, other_case)
    timer_service.pause_timer(TENANT, USER, paused.id)

    assert len(timer_service.get_active_timers(TENANT, USER)) == 2
    assert [timer.id for timer in timer_service.get_all_active_timers(TENANT)] == [running.id]
    assert timer_service.get_total_active_timers_count(TENANT) == 1
    assert timer_service.get_active_timer_for_case(TENANT, USER, other_case).id == paused.id
    assert timer_service.has_active_timer_for_case(TENANT, OTHER_USER, sample_case.id) is False


def test_long_running_timers(timer_service, case_service, sample_case, clock):
    """Test timers past the threshold are reported."""
    _start(timer_service, sample_case.id)
    clock.advance(hours=4)
    other_case = case_service.create_case(TENANT, "Doe v. Acme")
    _start(timer_service, other_case)
    clock.advance(hours=5)

    long_running = timer_service.get_long_running_timers(TENANT, hours=8)

    assert [timer.legal_case_id for timer in long_running] == [sample_case.id]


def test_unconverted_sessions(timer_service, sample_case, clock):
    """Test stopped sessions are listed as unconverted."""
    timer = _start(timer_service, sample_case.id)
    clock.advance(60)
    session = timer_service.stop_timer(TENANT, USER, timer.id)

    assert [s.id for s in timer_service.get_unconverted_sessions(TENANT, USER)] == [session.id]


def test_lost_races_give_up(timer_service, sample_case, temp_db, monkeypatch):
    """Test a write that keeps losing its version check raises ConcurrencyError."""
    timer = _start(timer_service, sample_case.id)
    calls = []

    def always_stale(*args, **kwargs):
        calls.append(args)
        return None

    monkeypatch.setattr(temp_db, "update_active_timer", always_stale)

    with pytest.raises(ConcurrencyError):
        timer_service.pause_timer(TENANT, USER, timer.id)
    assert len(calls) == timer_service.max_retries


def test_lost_race_is_retried(timer_service, sample_case, temp_db, monkeypatch, clock):
    """Test a single lost race is retried against the fresh row."""
    timer = _start(timer_service, sample_case.id)
    clock.advance(100)
    original = temp_db.update_active_timer
    attempts = []

    def stale_once(*args, **kwargs):
        attempts.append(kwargs["expected_version"])
        if len(attempts) == 1:
            return None
        return original(*args, **kwargs)

    monkeypatch.setattr(temp_db, "update_active_timer", stale_once)

    paused = timer_service.pause_timer(TENANT, USER, timer.id)

    assert len(attempts) == 2
    assert paused.accumulated_seconds == 100


def test_duration_helpers(timer_service, sample_case, clock):
    """Test worked time helpers ignore negative spans."""
    start = datetime(2024, 1, 2, 9, 0, 0)
    assert elapsed_seconds(start, datetime(2024, 1, 2, 9, 1, 30)) == 90
    assert elapsed_seconds(start, datetime(2024, 1, 2, 8, 0, 0)) == 0

    timer = _start(timer_service, sample_case.id)
    clock.advance(45)
    assert timer_service.current_duration_seconds(timer) == 45
    assert current_duration_seconds(timer, clock.now()) == 45
