"""
Pytest fixtures for the case ledger test suite.

Provides:
- Structured logging configured for the whole session and a captured_logs
  fixture returning parsed JSON records
- A deterministic clock pinned to 2024-01-15 09:00 UTC
- Settings in USD with the default due-soon window
- In-memory and SQLite-backed repositories and services over them
"""

import json
import logging
from io import StringIO

import pytest

from ledger_config import LedgerSettings
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_services.case_ledger_service import CaseLedgerService
from ledger_services.repository import InMemoryCaseRepository
from ledger_services.sql_repository import SqlAlchemyCaseRepository

from tests.builders import NOW


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture ledger_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.update_pricing(...)
            logs = captured_logs()
            assert any(r["message"] == "case_mutation_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("ledger_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and settings
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock pinned to NOW."""
    return DeterministicClock(NOW)


@pytest.fixture
def settings():
    return LedgerSettings(default_currency="USD", due_soon_days=3, max_conflict_retries=3)


# =============================================================================
# Repositories and services
# =============================================================================


@pytest.fixture
def memory_repository():
    return InMemoryCaseRepository()


@pytest.fixture
def sqlite_session_factory():
    """Fresh in-memory SQLite database with all ledger tables."""
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


@pytest.fixture
def sql_repository(sqlite_session_factory):
    return SqlAlchemyCaseRepository(sqlite_session_factory)


@pytest.fixture
def service(memory_repository, deterministic_clock, settings):
    return CaseLedgerService(memory_repository, deterministic_clock, settings)


@pytest.fixture
def sql_service(sql_repository, deterministic_clock, settings):
    return CaseLedgerService(sql_repository, deterministic_clock, settings)

