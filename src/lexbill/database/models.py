"""SQLAlchemy models for lexbill database."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    DateTime,
    Date,
    Numeric,
    Boolean,
    JSON,
    Enum,
    Index,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from lexbill.domain.entities import RateType, TimeEntryStatus

Base = declarative_base()


class LegalCase(Base):
    """Legal case model."""

    __tablename__ = "legal_cases"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    title = Column(String, nullable=False)
    case_number = Column(String(100), nullable=True)
    client_id = Column(Integer, nullable=True)
    matter_type_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)


class BillingRate(Base):
    """Scoped billing rate model."""

    __tablename__ = "billing_rates"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    legal_case_id = Column(Integer, nullable=True)
    client_id = Column(Integer, nullable=True)
    matter_type_id = Column(Integer, nullable=True)
    rate_amount = Column(Numeric(10, 2), nullable=False)
    rate_type = Column(Enum(RateType), default=RateType.STANDARD, nullable=False)
    effective_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (Index("ix_billing_rates_tenant_user", "tenant_id", "user_id"),)


class CaseRateConfiguration(Base):
    """Per-case rate configuration model."""

    __tablename__ = "case_rate_configurations"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False)
    legal_case_id = Column(Integer, nullable=False)
    default_rate = Column(Numeric(10, 2), nullable=False)
    allow_multipliers = Column(Boolean, default=True, nullable=False)
    weekend_multiplier = Column(Numeric(5, 2), nullable=False)
    after_hours_multiplier = Column(Numeric(5, 2), nullable=False)
    emergency_multiplier = Column(Numeric(5, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Only one active configuration per case
    __table_args__ = (
        Index(
            "uq_active_case_rate",
            "tenant_id",
            "legal_case_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )


class ActiveTimer(Base):
    """Running or paused timer model."""

    __tablename__ = "active_timers"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False)
    legal_case_id = Column(Integer, nullable=False)
    started_at = Column(DateTime, nullable=False)
    accumulated_seconds = Column(Integer, default=0, nullable=False)
    running = Column(Boolean, default=True, nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    base_rate = Column(Numeric(10, 2), nullable=False)
    apply_multipliers = Column(Boolean, default=True, nullable=False)
    is_emergency = Column(Boolean, default=False, nullable=False)
    description = Column(String, nullable=True)
    work_type = Column(String(50), nullable=True)
    tags = Column(JSON, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # One timer per user and case within a tenant
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", "legal_case_id", name="uq_timer_tenant_user_case"),
    )


class TimerSession(Base):
    """Completed timer session model."""

    __tablename__ = "timer_sessions"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    legal_case_id = Column(Integer, nullable=False)
    description = Column(String, nullable=True)
    started_at = Column(DateTime, nullable=False)
    ended_at = Column(DateTime, nullable=False)
    total_duration_seconds = Column(Integer, nullable=False)
    hourly_rate = Column(Numeric(10, 2), nullable=True)
    converted_to_time_entry = Column(Boolean, default=False, nullable=False)
    time_entry_id = Column(Integer, nullable=True)


class TimeEntry(Base):
    """Time entry model."""

    __tablename__ = "time_entries"

    id = Column(Integer, primary_key=True)
    tenant_id = Column(Integer, nullable=False)
    user_id = Column(Integer, nullable=False)
    legal_case_id = Column(Integer, nullable=False)
    date = Column(Date, nullable=False)
    hours = Column(Numeric(6, 2), nullable=False)
    rate = Column(Numeric(10, 2), nullable=True)
    description = Column(String, nullable=True)
    status = Column(Enum(TimeEntryStatus), default=TimeEntryStatus.DRAFT, nullable=False)
    billable = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    __table_args__ = (Index("ix_time_entries_tenant_user_date", "tenant_id", "user_id", "date"),)


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
