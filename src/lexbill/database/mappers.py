"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic so the billing services never see
ORM instances.
"""

from lexbill.domain import entities as domain
from lexbill.database.models import (
    ActiveTimer as ORMActiveTimer,
    BillingRate as ORMBillingRate,
    CaseRateConfiguration as ORMCaseRateConfiguration,
    LegalCase as ORMLegalCase,
    TimeEntry as ORMTimeEntry,
    TimerSession as ORMTimerSession,
)


def legal_case_to_domain(orm_case: ORMLegalCase) -> domain.LegalCase:
    """Convert SQLAlchemy LegalCase model to domain LegalCase entity."""
    return domain.LegalCase(
        id=orm_case.id,
        tenant_id=orm_case.tenant_id,
        title=orm_case.title,
        case_number=orm_case.case_number,
        client_id=orm_case.client_id,
        matter_type_id=orm_case.matter_type_id,
        created_at=orm_case.created_at,
    )


def billing_rate_to_domain(orm_rate: ORMBillingRate) -> domain.BillingRate:
    """Convert SQLAlchemy BillingRate model to domain BillingRate entity."""
    return domain.BillingRate(
        id=orm_rate.id,
        tenant_id=orm_rate.tenant_id,
        user_id=orm_rate.user_id,
        legal_case_id=orm_rate.legal_case_id,
        client_id=orm_rate.client_id,
        matter_type_id=orm_rate.matter_type_id,
        rate_amount=orm_rate.rate_amount,
        rate_type=domain.RateType(orm_rate.rate_type),
        effective_date=orm_rate.effective_date,
        end_date=orm_rate.end_date,
        is_active=orm_rate.is_active,
        created_at=orm_rate.created_at,
    )


def case_rate_configuration_to_domain(
    orm_config: ORMCaseRateConfiguration,
) -> domain.CaseRateConfiguration:
    """Convert SQLAlchemy CaseRateConfiguration model to domain entity."""
    return domain.CaseRateConfiguration(
        id=orm_config.id,
        tenant_id=orm_config.tenant_id,
        legal_case_id=orm_config.legal_case_id,
        default_rate=orm_config.default_rate,
        allow_multipliers=orm_config.allow_multipliers,
        weekend_multiplier=orm_config.weekend_multiplier,
        after_hours_multiplier=orm_config.after_hours_multiplier,
        emergency_multiplier=orm_config.emergency_multiplier,
        is_active=orm_config.is_active,
        created_at=orm_config.created_at,
        updated_at=orm_config.updated_at,
    )


def active_timer_to_domain(orm_timer: ORMActiveTimer) -> domain.ActiveTimer:
    """Convert SQLAlchemy ActiveTimer model to domain ActiveTimer entity."""
    return domain.ActiveTimer(
        id=orm_timer.id,
        tenant_id=orm_timer.tenant_id,
        user_id=orm_timer.user_id,
        legal_case_id=orm_timer.legal_case_id,
        started_at=orm_timer.started_at,
        accumulated_seconds=orm_timer.accumulated_seconds,
        running=orm_timer.running,
        hourly_rate=orm_timer.hourly_rate,
        base_rate=orm_timer.base_rate,
        apply_multipliers=orm_timer.apply_multipliers,
        is_emergency=orm_timer.is_emergency,
        description=orm_timer.description,
        work_type=orm_timer.work_type,
        tags=tuple(orm_timer.tags or ()),
        version=orm_timer.version,
        created_at=orm_timer.created_at,
        updated_at=orm_timer.updated_at,
    )


def timer_session_to_domain(orm_session: ORMTimerSession) -> domain.TimerSession:
    """Convert SQLAlchemy TimerSession model to domain TimerSession entity."""
    return domain.TimerSession(
        id=orm_session.id,
        tenant_id=orm_session.tenant_id,
        user_id=orm_session.user_id,
        legal_case_id=orm_session.legal_case_id,
        description=orm_session.description,
        started_at=orm_session.started_at,
        ended_at=orm_session.ended_at,
        total_duration_seconds=orm_session.total_duration_seconds,
        hourly_rate=orm_session.hourly_rate,
        converted_to_time_entry=orm_session.converted_to_time_entry,
        time_entry_id=orm_session.time_entry_id,
    )


def time_entry_to_domain(orm_entry: ORMTimeEntry) -> domain.TimeEntry:
    """Convert SQLAlchemy TimeEntry model to domain TimeEntry entity."""
    return domain.TimeEntry(
        id=orm_entry.id,
        tenant_id=orm_entry.tenant_id,
        user_id=orm_entry.user_id,
        legal_case_id=orm_entry.legal_case_id,
        date=orm_entry.date,
        hours=orm_entry.hours,
        rate=orm_entry.rate,
        description=orm_entry.description,
        status=domain.TimeEntryStatus(orm_entry.status),
        billable=orm_entry.billable,
        created_at=orm_entry.created_at,
    )
