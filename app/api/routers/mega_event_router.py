# =============================================================================
# File: app/api/routers/mega_event_router.py
# Description: Mega-event API endpoints
#              Adds co-organizers and participant review to the shared routes
# =============================================================================

from __future__ import annotations

import logging

from fastapi import APIRouter, status

from app.api.dependencies.bus_deps import CommandBusDep, CurrentActor
from app.api.models.event_api_models import (
    AddOrganizerRequest,
    CreateMegaEventRequest,
    ReviewParticipantRequest,
    UpdateMegaEventRequest,
)
from app.api.routers.aggregate_routes import add_shared_routes
from app.event.commands import (
    AddOrganizerCommand,
    CreateMegaEventCommand,
    MegaEventChanges,
    ReviewParticipantCommand,
    UpdateMegaEventCommand,
)
from app.event.enums import AggregateKind
from app.event.projections import MegaEventView

log = logging.getLogger("eventhub.api.mega_event")

router = APIRouter(prefix="/mega-events", tags=["mega-events"])


@router.post("", response_model=MegaEventView, status_code=status.HTTP_201_CREATED)
async def create_mega_event(
    request: CreateMegaEventRequest,
    actor: CurrentActor,
    command_bus: CommandBusDep,
):
    """Create a mega-event in state planning; the principal NGO coordinates it."""
    return await command_bus.send(CreateMegaEventCommand(actor=actor, **request.model_dump()))


@router.patch("/{aggregate_id}", response_model=MegaEventView)
async def update_mega_event(
    aggregate_id: str,
    request: UpdateMegaEventRequest,
    actor: CurrentActor,
    command_bus: CommandBusDep,
):
    changes = MegaEventChanges(**request.model_dump(exclude_unset=True))
    return await command_bus.send(UpdateMegaEventCommand(actor=actor, aggregate_id=aggregate_id, changes=changes))


@router.post("/{aggregate_id}/organizers", response_model=MegaEventView, status_code=status.HTTP_201_CREATED)
async def add_organizer(
    aggregate_id: str,
    request: AddOrganizerRequest,
    actor: CurrentActor,
    command_bus: CommandBusDep,
):
    return await command_bus.send(AddOrganizerCommand(
        actor=actor, aggregate_id=aggregate_id, ngo_id=request.ngo_id, role=request.role,
    ))


@router.post("/{aggregate_id}/participants/{member_id}/review", response_model=MegaEventView)
async def review_participant(
    aggregate_id: str,
    member_id: int,
    request: ReviewParticipantRequest,
    actor: CurrentActor,
    command_bus: CommandBusDep,
):
    """Approve or reject a registration that awaits approval."""
    return await command_bus.send(ReviewParticipantCommand(
        actor=actor,
        kind=AggregateKind.MEGA_EVENT,
        aggregate_id=aggregate_id,
        member_id=member_id,
        approve=request.approve,
    ))


add_shared_routes(router, AggregateKind.MEGA_EVENT, MegaEventView)
