"""Shared pytest fixtures for lexbill tests."""

import tempfile
import os
from datetime import datetime
import pytest

from lexbill.config import BillingPolicy
from lexbill.database.factories import create_sqlite_database
from lexbill.domain.billing_rates import BillingRateService
from lexbill.domain.case_rates import CaseRateConfigurationService
from lexbill.domain.cases import CaseService
from lexbill.domain.clock import FixedClock
from lexbill.domain.conversion import TimerConversionService
from lexbill.domain.rates import RateEngine
from lexbill.domain.time_entry import TimeEntryService
from lexbill.domain.timer import TimerService

TENANT = 1
OTHER_TENANT = 2
USER = 5
OTHER_USER = 6


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    """Clock fixed at Tuesday 2024-01-02 09:00, inside business hours."""
    return FixedClock(datetime(2024, 1, 2, 9, 0, 0))


@pytest.fixture
def policy():
    """Default billing policy."""
    return BillingPolicy()


@pytest.fixture
def case_service(temp_db):
    """Create a CaseService with a temporary database."""
    return CaseService(temp_db)


@pytest.fixture
def rate_service(temp_db, clock):
    """Create a BillingRateService with a temporary database."""
    return BillingRateService(temp_db, clock=clock)


@pytest.fixture
def case_config_service(temp_db, policy):
    """Create a CaseRateConfigurationService with a temporary database."""
    return CaseRateConfigurationService(temp_db, policy=policy)


@pytest.fixture
def rate_engine(temp_db, policy, clock):
    """Create a RateEngine with a temporary database."""
    return RateEngine(temp_db, policy=policy, clock=clock)


@pytest.fixture
def timer_service(temp_db, rate_engine, clock):
    """Create a TimerService with a temporary database."""
    return TimerService(temp_db, rate_engine=rate_engine, clock=clock)


@pytest.fixture
def time_entry_service(temp_db, policy, clock):
    """Create a TimeEntryService with a temporary database."""
    return TimeEntryService(temp_db, policy=policy, clock=clock)


@pytest.fixture
def conversion_service(temp_db, timer_service, time_entry_service, clock):
    """Create a TimerConversionService wired to the other services."""
    return TimerConversionService(
        temp_db, timer_service=timer_service, time_entry_service=time_entry_service, clock=clock
    )


@pytest.fixture
def sample_case(case_service):
    """Create a sample case for client 7, matter type 3."""
    case_id = case_service.create_case(
        TENANT, "Smith v. Jones", case_number="2024-CV-001", client_id=7, matter_type_id=3
    )
    return case_service.get_case(TENANT, case_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
