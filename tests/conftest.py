# =============================================================================
# File: tests/conftest.py
# Description: Shared fixtures - handler dependencies over in-memory fakes
# =============================================================================

from __future__ import annotations

import pytest

import app.event.command_handlers  # noqa: F401  registers command handlers
import app.event.query_handlers  # noqa: F401  registers query handlers
from app.config.event_config import EventLimitsConfig
from app.config.reliability_config import AggregateLockConfig, LockBackend, RetryConfig
from app.event.lifecycle import LifecycleEngine
from app.event.registration import RegistrationEngine
from app.infra.cqrs.command_bus import CommandBus
from app.infra.cqrs.decorators import auto_register_all_handlers
from app.infra.cqrs.handler_dependencies import HandlerDependencies
from app.infra.cqrs.query_bus import QueryBus
from app.infra.reliability.aggregate_lock import AggregateLockManager
from app.services.application.dual_write_coordinator import DualWriteCoordinator
from app.services.infrastructure.reconciliation_service import ReconciliationService

from tests.fakes.fake_document_store import FakeDocumentStore
from tests.fakes.fake_image_ingestion import FakeImageIngestion
from tests.fakes.fake_ledger import FakeLedger
from tests.support import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limits() -> EventLimitsConfig:
    return EventLimitsConfig()


@pytest.fixture
def ledger() -> FakeLedger:
    fake = FakeLedger()
    fake.add_ngo(7, 8, 9)
    return fake


@pytest.fixture
def documents() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def lock_manager() -> AggregateLockManager:
    return AggregateLockManager(AggregateLockConfig(backend=LockBackend.LOCAL, max_wait_ms=2000))


@pytest.fixture
def lifecycle(clock) -> LifecycleEngine:
    return LifecycleEngine(clock)


@pytest.fixture
def coordinator(ledger, documents, lifecycle, lock_manager, limits, clock) -> DualWriteCoordinator:
    return DualWriteCoordinator(
        ledger=ledger,
        documents=documents,
        lifecycle=lifecycle,
        lock_manager=lock_manager,
        limits=limits,
        clock=clock,
        conflict_retry=RetryConfig(max_attempts=3, initial_delay_ms=1, max_delay_ms=5, jitter=False),
    )


@pytest.fixture
def reconciliation(ledger, documents, lifecycle, lock_manager, clock) -> ReconciliationService:
    return ReconciliationService(ledger, documents, lifecycle, lock_manager, clock)


@pytest.fixture
def deps(ledger, documents, coordinator, lifecycle, lock_manager, limits, clock, reconciliation) -> HandlerDependencies:
    return HandlerDependencies(
        ledger=ledger,
        documents=documents,
        image_ingestion=FakeImageIngestion(),
        coordinator=coordinator,
        lifecycle=lifecycle,
        registration=RegistrationEngine(limits, clock),
        lock_manager=lock_manager,
        reconciliation=reconciliation,
        limits=limits,
        clock=clock,
    )


@pytest.fixture
def command_bus(deps) -> CommandBus:
    bus = CommandBus()
    auto_register_all_handlers(bus, QueryBus(), deps)
    return bus


@pytest.fixture
def query_bus(deps) -> QueryBus:
    bus = QueryBus()
    auto_register_all_handlers(CommandBus(), bus, deps)
    return bus
