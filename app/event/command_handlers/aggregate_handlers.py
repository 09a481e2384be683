# =============================================================================
# File: app/event/command_handlers/aggregate_handlers.py
# Description: Create / update / delete of events and mega-events
# Handlers: CreateEvent, CreateMegaEvent, UpdateEvent, UpdateMegaEvent,
#           DeleteAggregate
# =============================================================================

from __future__ import annotations

from typing import Any, Dict

from app.config.logging_config import get_logger
from app.common.base.base_command_handler import BaseCommandHandler
from app.event.aggregate import (
    Aggregate,
    EventAggregate,
    MegaEventAggregate,
    OrganizerRecord,
    validate_aggregate,
)
from app.event.authorization import ensure_organizer
from app.event.commands import (
    CreateEventCommand,
    CreateMegaEventCommand,
    DeleteAggregateCommand,
    UpdateEventCommand,
    UpdateMegaEventCommand,
)
from app.event.enums import AggregateKind, OrganizerRole
from app.event.exceptions import NotAnNgo, Unauthorized
from app.event.projections import AggregateView
from app.event.value_objects import Actor
from app.infra.cqrs.decorators import command_handler

log = get_logger("eventhub.event.command_handlers.aggregate")

_CREATE_FIELDS = (
    "title", "description", "start", "end", "location", "category",
    "capacity", "public", "enrollment_open",
)


class _CreateHandler(BaseCommandHandler):
    async def ensure_can_create_for(self, actor: Actor, ngo_id: int) -> None:
        """An NGO creates for itself; a super-admin for any active NGO."""
        if not (actor.is_super_admin or actor.is_ngo(ngo_id)):
            raise Unauthorized(actor.actor_id, f"create events for NGO {ngo_id}")
        if not await self.ledger.is_active_ngo(ngo_id):
            raise NotAnNgo(ngo_id)


# -----------------------------------------------------------------------------
# CreateEventHandler
# -----------------------------------------------------------------------------
@command_handler(CreateEventCommand)
class CreateEventHandler(_CreateHandler):
    async def handle(self, command: CreateEventCommand) -> AggregateView:
        await self.ensure_can_create_for(command.actor, command.ngo_id)

        aggregate = EventAggregate(
            ngo_id=command.ngo_id,
            event_type=command.event_type,
            enrollment_deadline=command.enrollment_deadline,
            **{name: getattr(command, name) for name in _CREATE_FIELDS},
        )
        aggregate = await self.coordinator.create(aggregate, command.actor)
        return self.view(aggregate)


# -----------------------------------------------------------------------------
# CreateMegaEventHandler
# -----------------------------------------------------------------------------
@command_handler(CreateMegaEventCommand)
class CreateMegaEventHandler(_CreateHandler):
    """The principal NGO becomes the single principal coordinator."""

    async def handle(self, command: CreateMegaEventCommand) -> AggregateView:
        await self.ensure_can_create_for(command.actor, command.principal_ngo_id)

        aggregate = MegaEventAggregate(
            principal_ngo_id=command.principal_ngo_id,
            organizers=[
                OrganizerRecord(
                    ngo_id=command.principal_ngo_id,
                    role=OrganizerRole.PRINCIPAL_COORDINATOR,
                    joined_at=self.deps.clock(),
                )
            ],
            requires_approval=command.requires_approval,
            priority=command.priority,
            tags=command.tags,
            **{name: getattr(command, name) for name in _CREATE_FIELDS},
        )
        aggregate.budget.planned = command.planned_budget
        aggregate.metrics.estimated_beneficiaries = command.estimated_beneficiaries
        aggregate.metrics.estimated_reach = command.estimated_reach

        aggregate = await self.coordinator.create(aggregate, command.actor)
        return self.view(aggregate)


# -----------------------------------------------------------------------------
# Updates
# -----------------------------------------------------------------------------

# Fields that live outside the aggregate root on mega-events
_MEGA_NESTED = {
    "planned_budget": ("budget", "planned"),
    "estimated_beneficiaries": ("metrics", "estimated_beneficiaries"),
    "estimated_reach": ("metrics", "estimated_reach"),
}


def _apply_changes(aggregate: Aggregate, changes: Dict[str, Any]) -> None:
    for name, value in changes.items():
        if name in _MEGA_NESTED:
            holder, attribute = _MEGA_NESTED[name]
            setattr(getattr(aggregate, holder), attribute, value)
        else:
            setattr(aggregate, name, value)


class _UpdateHandler(BaseCommandHandler):
    kind: AggregateKind

    async def update(self, command) -> AggregateView:
        changes = command.changes.model_dump(exclude_unset=True)

        def apply(aggregate: Aggregate) -> None:
            ensure_organizer(aggregate, command.actor, f"update this {self.kind.value}")
            self.lifecycle.ensure_editable(aggregate, changes)
            _apply_changes(aggregate, changes)
            validate_aggregate(aggregate, self.limits)

        aggregate, _ = await self.mutate(
            self.kind, command.aggregate_id, apply, operation=f"update {sorted(changes)}",
        )
        log.info(f"Updated {self.kind.value} {aggregate.id}: {sorted(changes)}")
        return self.view(aggregate)


@command_handler(UpdateEventCommand)
class UpdateEventHandler(_UpdateHandler):
    kind = AggregateKind.EVENT

    async def handle(self, command: UpdateEventCommand) -> AggregateView:
        return await self.update(command)


@command_handler(UpdateMegaEventCommand)
class UpdateMegaEventHandler(_UpdateHandler):
    kind = AggregateKind.MEGA_EVENT

    async def handle(self, command: UpdateMegaEventCommand) -> AggregateView:
        return await self.update(command)


# -----------------------------------------------------------------------------
# DeleteAggregateHandler
# -----------------------------------------------------------------------------
@command_handler(DeleteAggregateCommand)
class DeleteAggregateHandler(BaseCommandHandler):
    """Refused with HasDependents while any participant is registered"""

    async def handle(self, command: DeleteAggregateCommand) -> AggregateView:
        aggregate = await self.coordinator.delete(
            command.kind, command.aggregate_id, command.actor, command.reason,
        )
        return self.view(aggregate)
