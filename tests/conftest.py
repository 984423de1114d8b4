"""
Pytest fixtures for the sales-ops test suite.

Provides:
- Structured logging setup and a ``captured_logs`` fixture
- Deterministic clocks
- The default pipeline stages and an isolated configuration store
- An in-memory SQLite database for the SQLAlchemy alert-state store
- Record factories for leads, projects and commissions
"""

import json
import logging
from datetime import date, datetime, timezone
from io import StringIO

import pytest

from salesops_config import PipelineConfigStore, load_default_pipeline
from salesops_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from salesops_kernel.domain.clock import DeterministicClock
from salesops_kernel.domain.records import (
    Commission,
    CommissionStatus,
    Lead,
    LeadStatus,
    Project,
)
from salesops_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

TEST_TENANT_ID = "tenant-test"
TEST_NOW = datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
TEST_TODAY = TEST_NOW.date()


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
    Capture salesops logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            service.run_sla_pass(projects, tenant_id="acme")
            logs = captured_logs()
            assert any(r["message"] == "sla_pass_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("salesops")
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
# Time
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def today() -> date:
    return TEST_TODAY


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def stages():
    """The packaged six-stage pipeline."""
    return load_default_pipeline().stages


@pytest.fixture
def config_store() -> PipelineConfigStore:
    """A store with no saved edits, isolated from the process default."""
    return PipelineConfigStore()


@pytest.fixture
def tenant_id() -> str:
    return TEST_TENANT_ID


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def sqlite_session_factory():
    """Fresh in-memory SQLite schema per test."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()


# =============================================================================
# Record factories
# =============================================================================


@pytest.fixture
def make_lead():
    counter = {"n": 0}

    def _make(status=LeadStatus.QUALIFIED, estimated_bill=200, **kwargs) -> Lead:
        counter["n"] += 1
        kwargs.setdefault("lead_id", f"lead-{counter['n']}")
        return Lead(status=status, estimated_bill=estimated_bill, **kwargs)

    return _make


@pytest.fixture
def make_project():
    counter = {"n": 0}

    def _make(stage="SITE_SURVEY", **kwargs) -> Project:
        counter["n"] += 1
        kwargs.setdefault("project_id", f"proj-{counter['n']}")
        kwargs.setdefault("lead_id", f"lead-{counter['n']}")
        return Project(stage=stage, **kwargs)

    return _make


@pytest.fixture
def make_commission():
    counter = {"n": 0}

    def _make(amount_usd=1000, status=CommissionStatus.PENDING, **kwargs) -> Commission:
        counter["n"] += 1
        kwargs.setdefault("commission_id", f"comm-{counter['n']}")
        kwargs.setdefault("lead_id", f"lead-{counter['n']}")
        return Commission(amount_usd=amount_usd, status=status, **kwargs)

    return _make
