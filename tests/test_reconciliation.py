# =============================================================================
# File: tests/test_reconciliation.py
# Description: Drift detection and repair between ledger and document store
# =============================================================================

import asyncio
from datetime import timedelta

import pytest

from app.event.aggregate import EventAggregate
from app.event.commands import DeleteAggregateCommand
from app.event.enums import AggregateKind
from app.event.exceptions import DualWriteFailure
from app.services.infrastructure.reconciliation_service import ReconciliationService

from tests.support import NGO_7, create_event, create_mega_event, event_fields

EVENT = AggregateKind.EVENT


@pytest.mark.asyncio
async def test_consistent_stores_report_clean(command_bus, reconciliation, clock):
    await create_event(command_bus, clock)
    await create_mega_event(command_bus, clock)

    reports = await reconciliation.reconcile_all()

    assert set(reports) == {"event", "mega_event"}
    assert all(r.clean for r in reports.values())
    assert reports["event"].checked == 1


@pytest.mark.asyncio
async def test_stale_mirror_is_rewritten(command_bus, ledger, reconciliation, clock):
    view = await create_event(command_bus, clock)
    ledger.with_title(EVENT, view.ledger_id, "Old Title")

    report = await reconciliation.reconcile(EVENT)

    assert report.mirrors_repaired == [view.id]
    assert ledger.core(EVENT, view.ledger_id).title == "Beach Cleanup"


@pytest.mark.asyncio
async def test_document_without_ledger_row_is_soft_deleted(command_bus, ledger, documents, reconciliation, clock):
    view = await create_event(command_bus, clock)
    ledger.drop_core(EVENT, view.ledger_id)
    clock.advance(minutes=5)

    report = await reconciliation.reconcile(EVENT)

    assert report.documents_soft_deleted == [view.id]
    stored = documents.stored(EVENT, view.id)
    assert stored.active is False
    assert stored.state == "cancelled"
    assert stored.history[-1].reason == "ledger row missing"
    assert stored.history[-1].acting_user_id == "system:reconciliation"

    again = await reconciliation.reconcile(EVENT)
    assert again.clean


@pytest.mark.asyncio
async def test_reconciliation_finishes_interrupted_delete(command_bus, ledger, documents, reconciliation, clock):
    view = await create_event(command_bus, clock)
    documents.configure_failure("save", OSError("mongo down"))
    with pytest.raises(DualWriteFailure):
        await command_bus.send(DeleteAggregateCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id))
    documents.clear_failure("save")
    clock.advance(minutes=5)

    report = await reconciliation.reconcile(EVENT)

    assert report.documents_soft_deleted == [view.id]
    assert documents.stored(EVENT, view.id).active is False


@pytest.mark.asyncio
async def test_document_without_ledger_id_is_reported(documents, reconciliation, clock):
    orphan = EventAggregate(id="orphan-1", **event_fields(clock))
    documents.put(orphan)

    report = await reconciliation.reconcile(EVENT)

    assert report.documents_without_ledger_id == ["orphan-1"]
    assert documents.stored(EVENT, "orphan-1").active is True


@pytest.mark.asyncio
async def test_ledger_row_without_document_is_reported(command_bus, documents, reconciliation, clock):
    view = await create_event(command_bus, clock)
    await documents.delete(EVENT, view.id)

    report = await reconciliation.reconcile(EVENT)

    assert report.ledger_rows_without_document == [view.ledger_id]
    assert not report.clean


@pytest.mark.asyncio
async def test_repair_errors_are_collected(command_bus, ledger, reconciliation, clock):
    view = await create_event(command_bus, clock)
    ledger.with_title(EVENT, view.ledger_id, "Old Title")
    ledger.configure_failure("update_core", OSError("pg down"))

    report = await reconciliation.reconcile(EVENT)

    assert report.mirrors_repaired == []
    assert len(report.errors) == 1
    assert report.errors[0].startswith(view.id)


@pytest.mark.asyncio
async def test_background_loop_runs_and_stops(command_bus, ledger, reconciliation, clock):
    view = await create_event(command_bus, clock)
    ledger.with_title(EVENT, view.ledger_id, "Old Title")

    await reconciliation.start(interval_seconds=60)
    for _ in range(50):
        if ledger.core(EVENT, view.ledger_id).title == "Beach Cleanup":
            break
        await asyncio.sleep(0.01)
    await reconciliation.stop()

    assert ledger.core(EVENT, view.ledger_id).title == "Beach Cleanup"


@pytest.mark.asyncio
async def test_event_created_after_the_ledger_snapshot_is_left_active(
        command_bus, ledger, documents, lifecycle, lock_manager, clock, monkeypatch):
    # No grace period: only the per-row lookup under the lock protects the new event
    service = ReconciliationService(ledger, documents, lifecycle, lock_manager, clock, grace_period=timedelta(0))
    created = []
    snapshot = ledger.list_core

    async def snapshot_then_create(kind):
        rows = await snapshot(kind)
        created.append(await create_event(command_bus, clock))
        return rows

    monkeypatch.setattr(ledger, "list_core", snapshot_then_create)

    report = await service.reconcile(EVENT)

    view = created[0]
    assert report.documents_soft_deleted == []
    stored = documents.stored(EVENT, view.id)
    assert stored.active is True
    assert stored.state == "draft"
    assert ledger.was_called("core_exists")


@pytest.mark.asyncio
async def test_recent_document_is_not_soft_deleted_until_the_grace_period_passes(
        command_bus, ledger, documents, reconciliation, clock):
    # Looks like a create whose ledger transaction has not committed yet
    view = await create_event(command_bus, clock)
    ledger.drop_core(EVENT, view.ledger_id)
    clock.advance(seconds=30)

    early = await reconciliation.reconcile(EVENT)

    assert early.documents_soft_deleted == []
    assert documents.stored(EVENT, view.id).active is True

    clock.advance(minutes=5)
    late = await reconciliation.reconcile(EVENT)

    assert late.documents_soft_deleted == [view.id]
