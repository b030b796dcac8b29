"""Test configuration and fixtures."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from railway_ledger.core.config import Settings
from railway_ledger.core.database import Base, create_session_factory
from railway_ledger.main import LedgerContext
from railway_ledger.models import *  # noqa: F403 - Import all models
from railway_ledger.schemas.booking import BookingRequest, Gender, Rider
from railway_ledger.schemas.service import Service
from railway_ledger.services.snapshot_service import SnapshotStore

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite:///:memory:"

JOURNEY_DATE = "12/25/2025"


class ScriptedPaymentGateway:
    """Payment gateway returning queued outcomes, approving once the queue is empty."""

    def __init__(self, outcomes=None, default: bool = True):
        self.outcomes = list(outcomes or [])
        self.default = default
        self.charges: list[Decimal] = []
        self.refunds: list[Decimal] = []

    def attempt_payment(self, amount: Decimal) -> bool:
        self.charges.append(amount)
        if self.outcomes:
            return self.outcomes.pop(0)
        return self.default

    def issue_refund(self, amount: Decimal) -> None:
        self.refunds.append(amount)


@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create tables
    Base.metadata.create_all(engine)

    yield engine

    # Drop tables
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Create a test session factory."""
    return create_session_factory(test_engine)


@pytest.fixture(scope="function")
def snapshot_store(session_factory):
    return SnapshotStore(session_factory)


@pytest.fixture
def payments():
    """Payment gateway approving every charge unless told otherwise."""
    return ScriptedPaymentGateway()


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated to an in-memory database and temp files."""
    return Settings(
        _env_file=None,
        database_url=TEST_DATABASE_URL,
        reference_counter_path=tmp_path / "pnr_counter.txt",
        transaction_log_path=tmp_path / "transactions.log",
        environment="test",
    )


@pytest.fixture
def ledger_context(test_settings, payments):
    """Ledger context seeded with the default catalog and accounts."""
    context = LedgerContext(test_settings, payments=payments)
    yield context
    context.close()


@pytest.fixture
def coordinator(ledger_context):
    return ledger_context.coordinator


@pytest.fixture
def sample_service():
    """Small service for component tests."""
    return Service(
        id="T100",
        name="Test Local",
        source="Alpha",
        destination="Beta",
        total_seats=10,
        base_fare=Decimal("20.00"),
    )


@pytest.fixture
def make_riders():
    """Factory building ``count`` distinct riders."""

    def _make(count: int) -> list[Rider]:
        return [
            Rider(name=f"Rider {index}", age=20 + index, gender=Gender.OTHER)
            for index in range(1, count + 1)
        ]

    return _make


@pytest.fixture
def make_request(make_riders):
    """Factory building a booking request, by default for ET001 on 12/25/2025."""

    def _make(seats: int = 1, service_id: str = "ET001", journey_date: str = JOURNEY_DATE) -> BookingRequest:
        return BookingRequest(service_id=service_id, journey_date=journey_date, riders=make_riders(seats))

    return _make
