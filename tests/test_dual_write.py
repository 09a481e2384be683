# =============================================================================
# File: tests/test_dual_write.py
# Description: DualWriteCoordinator create / update / delete protocols
#              against the in-memory ledger and document store
# =============================================================================

import asyncio
from datetime import timedelta

import pytest

from app.event.commands import (
    AddOrganizerCommand,
    ChangeStatusCommand,
    CreateEventCommand,
    DeleteAggregateCommand,
    EventChanges,
    RegisterParticipantCommand,
    UpdateEventCommand,
)
from app.event.enums import AggregateKind, OrganizerRole
from app.event.exceptions import (
    AggregateClosed,
    CapacityExceeded,
    ConcurrencyConflict,
    DualWriteFailure,
    EnrollmentClosed,
    HasDependents,
    NotAnNgo,
    NotFound,
    Unauthorized,
    ValidationFailed,
)

from tests.support import ADMIN, NGO_7, NGO_8, create_event, create_mega_event, event_fields, member

EVENT = AggregateKind.EVENT
MEGA = AggregateKind.MEGA_EVENT


async def register(command_bus, kind, aggregate_id, member_id, actor=None):
    return await command_bus.send(RegisterParticipantCommand(
        actor=actor or member(member_id), kind=kind, aggregate_id=aggregate_id, member_id=member_id,
    ))


# =============================================================================
# Create
# =============================================================================

@pytest.mark.asyncio
async def test_create_writes_both_stores(command_bus, ledger, documents, clock):
    view = await create_event(command_bus, clock)

    assert view.state == "draft"
    assert view.ledger_id == 1
    row = ledger.core(EVENT, 1)
    assert row.document_id == view.id
    assert row.owner_ngo_id == 7
    assert row.title == "Beach Cleanup"
    assert row.state == "draft"
    stored = documents.stored(EVENT, view.id)
    assert stored.version == 0
    assert stored.created_by == "ngo-7"
    assert [h.reason for h in stored.history] == ["created"]
    assert ledger.commits == 1


@pytest.mark.asyncio
async def test_create_without_title_fails_validation(command_bus, ledger, documents, clock):
    with pytest.raises(ValidationFailed) as exc_info:
        await create_event(command_bus, clock, title=None)

    assert exc_info.value.field == "title"
    assert ledger.cores[EVENT] == {}
    assert documents.documents[EVENT] == {}


@pytest.mark.asyncio
async def test_create_for_another_ngo_is_refused(command_bus, clock):
    with pytest.raises(Unauthorized):
        await create_event(command_bus, clock, actor=NGO_8)


@pytest.mark.asyncio
async def test_admin_creates_only_for_active_ngos(command_bus, clock):
    view = await create_event(command_bus, clock, actor=ADMIN, ngo_id=9)
    assert view.ngo_id == 9

    with pytest.raises(NotAnNgo):
        await create_event(command_bus, clock, actor=ADMIN, ngo_id=404)


@pytest.mark.asyncio
async def test_mega_event_create_mirrors_principal_coordinator(command_bus, ledger, clock):
    view = await create_mega_event(command_bus, clock, planned_budget=5000.0)

    assert view.state == "planning"
    assert [(o.ngo_id, o.role) for o in view.organizers] == [(7, "principal_coordinator")]
    assert view.budget.planned == 5000.0
    assert (view.ledger_id, 7) in ledger.organizers


@pytest.mark.asyncio
async def test_document_failure_rolls_back_ledger(command_bus, ledger, documents, clock):
    documents.configure_failure("insert", OSError("mongo down"))

    with pytest.raises(DualWriteFailure) as exc_info:
        await create_event(command_bus, clock)

    assert exc_info.value.operation == "create"
    assert exc_info.value.retryable is True
    assert ledger.cores[EVENT] == {}
    assert ledger.rollbacks == 1
    assert ledger.commits == 0


@pytest.mark.asyncio
async def test_commit_failure_deletes_written_document(command_bus, ledger, documents, clock):
    ledger.configure_failure("commit", OSError("connection reset"))

    with pytest.raises(DualWriteFailure):
        await create_event(command_bus, clock)

    assert documents.was_called("insert")
    assert documents.was_called("delete")
    assert documents.documents[EVENT] == {}
    assert ledger.cores[EVENT] == {}


@pytest.mark.asyncio
async def test_failed_compensation_still_reports_failure(command_bus, ledger, documents, clock):
    ledger.configure_failure("commit", OSError("connection reset"))
    documents.configure_failure("delete", OSError("mongo down"))

    with pytest.raises(DualWriteFailure):
        await create_event(command_bus, clock)

    # Orphan left for reconciliation
    assert len(documents.documents[EVENT]) == 1


# =============================================================================
# Update
# =============================================================================

@pytest.mark.asyncio
async def test_update_saves_document_then_mirrors_ledger(command_bus, ledger, documents, clock):
    view = await create_event(command_bus, clock)

    updated = await command_bus.send(UpdateEventCommand(
        actor=NGO_7, aggregate_id=view.id, changes=EventChanges(title="Beach Cleanup Day", capacity=40),
    ))

    assert updated.title == "Beach Cleanup Day"
    assert updated.capacity == 40
    assert documents.stored(EVENT, view.id).version == 1
    assert ledger.core(EVENT, view.ledger_id).title == "Beach Cleanup Day"
    assert ledger.core(EVENT, view.ledger_id).capacity == 40


@pytest.mark.asyncio
async def test_mirror_failure_keeps_document_change(command_bus, ledger, documents, clock):
    view = await create_event(command_bus, clock)
    ledger.configure_failure("update_core", OSError("pg down"))

    updated = await command_bus.send(UpdateEventCommand(
        actor=NGO_7, aggregate_id=view.id, changes=EventChanges(title="Renamed Cleanup"),
    ))

    assert updated.title == "Renamed Cleanup"
    assert documents.stored(EVENT, view.id).title == "Renamed Cleanup"
    assert ledger.core(EVENT, view.ledger_id).title == "Beach Cleanup"


@pytest.mark.asyncio
async def test_invalid_update_saves_nothing(command_bus, documents, clock):
    view = await create_event(command_bus, clock)

    with pytest.raises(ValidationFailed) as exc_info:
        await command_bus.send(UpdateEventCommand(
            actor=NGO_7, aggregate_id=view.id, changes=EventChanges(end=clock.now),
        ))

    assert exc_info.value.field == "end"
    assert documents.stored(EVENT, view.id).version == 0
    assert not documents.was_called("save")


@pytest.mark.asyncio
async def test_update_by_stranger_is_refused(command_bus, clock):
    view = await create_event(command_bus, clock)
    with pytest.raises(Unauthorized):
        await command_bus.send(UpdateEventCommand(
            actor=NGO_8, aggregate_id=view.id, changes=EventChanges(title="Hijacked"),
        ))


@pytest.mark.asyncio
async def test_cancelled_event_cannot_be_reopened_for_enrollment(command_bus, documents, clock):
    view = await create_event(command_bus, clock)
    await command_bus.send(ChangeStatusCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="cancelled"))

    with pytest.raises(AggregateClosed):
        await command_bus.send(UpdateEventCommand(
            actor=NGO_7, aggregate_id=view.id, changes=EventChanges(enrollment_open=True),
        ))
    with pytest.raises(EnrollmentClosed):
        await register(command_bus, EVENT, view.id, 1)

    stored = documents.stored(EVENT, view.id)
    assert stored.state == "cancelled"
    assert stored.enrollment_open is False
    assert stored.participants == []


@pytest.mark.asyncio
async def test_enrollment_reopens_only_in_the_publishing_state(command_bus, clock):
    view = await create_event(command_bus, clock)
    await command_bus.send(ChangeStatusCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="published"))
    await command_bus.send(ChangeStatusCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="suspended"))

    with pytest.raises(ValidationFailed) as exc_info:
        await command_bus.send(UpdateEventCommand(
            actor=NGO_7, aggregate_id=view.id, changes=EventChanges(enrollment_open=True),
        ))
    assert exc_info.value.field == "enrollment_open"

    await command_bus.send(ChangeStatusCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="published"))
    closed = await command_bus.send(UpdateEventCommand(
        actor=NGO_7, aggregate_id=view.id, changes=EventChanges(enrollment_open=False),
    ))
    assert closed.enrollment_open is False
    reopened = await command_bus.send(UpdateEventCommand(
        actor=NGO_7, aggregate_id=view.id, changes=EventChanges(enrollment_open=True),
    ))
    assert reopened.enrollment_open is True


@pytest.mark.asyncio
async def test_version_conflict_is_retried(command_bus, documents, clock):
    view = await create_event(command_bus, clock)
    documents.inject_conflicts(2)

    updated = await command_bus.send(ChangeStatusCommand(
        actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="published",
    ))

    assert updated.state == "published"
    assert documents.get_call_count("save") == 3
    history = documents.stored(EVENT, view.id).history
    assert [h.new_state for h in history] == ["draft", "published"]


@pytest.mark.asyncio
async def test_persistent_version_conflict_surfaces(command_bus, documents, clock):
    view = await create_event(command_bus, clock)
    documents.inject_conflicts(10)

    with pytest.raises(ConcurrencyConflict):
        await command_bus.send(ChangeStatusCommand(
            actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="published",
        ))

    assert documents.stored(EVENT, view.id).state == "draft"


@pytest.mark.asyncio
async def test_concurrent_registrations_respect_capacity(command_bus, ledger, documents, clock):
    view = await create_mega_event(command_bus, clock, capacity=3, enrollment_open=True)

    results = await asyncio.gather(
        *(register(command_bus, MEGA, view.id, member_id) for member_id in range(1, 7)),
        return_exceptions=True,
    )

    succeeded = [r for r in results if not isinstance(r, Exception)]
    refused = [r for r in results if isinstance(r, Exception)]
    assert len(succeeded) == 3
    assert len(refused) == 3
    assert all(isinstance(r, CapacityExceeded) for r in refused)

    stored = documents.stored(MEGA, view.id)
    assert len(stored.participants) == 3
    assert stored.metrics.total_registered == 3
    assert stored.version == 3
    assert len([k for k in ledger.participants if k[1] == view.ledger_id]) == 3


@pytest.mark.asyncio
async def test_participant_is_mirrored_to_ledger(command_bus, ledger, clock):
    view = await create_event(command_bus, clock, enrollment_open=True)
    await register(command_bus, EVENT, view.id, 11)
    assert ledger.participants[(EVENT, view.ledger_id, 11)].state == "confirmed"


@pytest.mark.asyncio
async def test_missing_aggregate(command_bus):
    with pytest.raises(NotFound):
        await register(command_bus, EVENT, "does-not-exist", 1)


# =============================================================================
# Delete
# =============================================================================

@pytest.mark.asyncio
async def test_delete_with_participants_is_refused(command_bus, ledger, documents, clock):
    view = await create_event(command_bus, clock, enrollment_open=True)
    await register(command_bus, EVENT, view.id, 1)

    with pytest.raises(HasDependents) as exc_info:
        await command_bus.send(DeleteAggregateCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id))

    assert exc_info.value.participants == 1
    assert documents.stored(EVENT, view.id).active is True
    assert view.ledger_id in ledger.cores[EVENT]


@pytest.mark.asyncio
async def test_delete_removes_ledger_rows_and_soft_deletes(command_bus, ledger, documents, clock):
    view = await create_event(command_bus, clock)

    deleted = await command_bus.send(DeleteAggregateCommand(
        actor=NGO_7, kind=EVENT, aggregate_id=view.id, reason="duplicate entry",
    ))

    assert deleted.active is False
    assert deleted.state == "cancelled"
    assert view.ledger_id not in ledger.cores[EVENT]
    stored = documents.stored(EVENT, view.id)
    assert stored.active is False
    assert stored.history[-1].reason == "duplicate entry"

    with pytest.raises(NotFound):
        await command_bus.send(ChangeStatusCommand(
            actor=NGO_7, kind=EVENT, aggregate_id=view.id, target="published",
        ))


@pytest.mark.asyncio
async def test_only_principal_coordinator_deletes_mega_event(command_bus, ledger, clock):
    view = await create_mega_event(command_bus, clock)
    await command_bus.send(AddOrganizerCommand(
        actor=NGO_7, aggregate_id=view.id, ngo_id=8, role=OrganizerRole.CO_ORGANIZER,
    ))

    with pytest.raises(Unauthorized):
        await command_bus.send(DeleteAggregateCommand(actor=NGO_8, kind=MEGA, aggregate_id=view.id))

    await command_bus.send(DeleteAggregateCommand(actor=NGO_7, kind=MEGA, aggregate_id=view.id))
    assert ledger.cores[MEGA] == {}
    assert ledger.organizers == {}


@pytest.mark.asyncio
async def test_failed_soft_delete_reports_dual_write_failure(command_bus, ledger, documents, clock):
    view = await create_event(command_bus, clock)
    documents.configure_failure("save", OSError("mongo down"))

    with pytest.raises(DualWriteFailure) as exc_info:
        await command_bus.send(DeleteAggregateCommand(actor=NGO_7, kind=EVENT, aggregate_id=view.id))

    assert exc_info.value.operation == "delete"
    assert view.ledger_id not in ledger.cores[EVENT]
    assert documents.stored(EVENT, view.id).active is True


@pytest.mark.asyncio
async def test_create_command_rejects_bad_dates(command_bus, clock):
    fields = event_fields(clock, end=clock.now + timedelta(days=1), start=clock.now + timedelta(days=2))
    with pytest.raises(ValidationFailed):
        await command_bus.send(CreateEventCommand(actor=NGO_7, **fields))
