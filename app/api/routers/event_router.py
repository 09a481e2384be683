# =============================================================================
# File: app/api/routers/event_router.py
# Description: Event API endpoints
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from app.api.dependencies.bus_deps import CommandBusDep, CurrentActor
from app.api.models.event_api_models import CreateEventRequest, UpdateEventRequest
from app.api.routers.aggregate_routes import add_shared_routes
from app.event.commands import CreateEventCommand, EventChanges, UpdateEventCommand
from app.event.enums import AggregateKind
from app.event.projections import EventView

log = logging.getLogger("eventhub.api.event")

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventView, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: CreateEventRequest,
    actor: CurrentActor,
    command_bus: CommandBusDep,
):
    """Create an event in state draft for the given NGO."""
    return await command_bus.send(CreateEventCommand(actor=actor, **request.model_dump()))


@router.patch("/{aggregate_id}", response_model=EventView)
async def update_event(
    aggregate_id: str,
    request: UpdateEventRequest,
    actor: CurrentActor,
    command_bus: CommandBusDep,
):
    changes = EventChanges(**request.model_dump(exclude_unset=True))
    return await command_bus.send(UpdateEventCommand(actor=actor, aggregate_id=aggregate_id, changes=changes))


add_shared_routes(router, AggregateKind.EVENT, EventView)
