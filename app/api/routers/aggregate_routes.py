# =============================================================================
# File: app/api/routers/aggregate_routes.py
# Description: Endpoints shared by the event and mega-event routers
#              (read side, lifecycle, participants, sponsors, images, delete)
# =============================================================================

from __future__ import annotations

import logging
from typing import List, Optional, Type

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from pydantic import BaseModel

from app.api.dependencies.bus_deps import CommandBusDep, CurrentActor, QueryBusDep
from app.api.models.event_api_models import (
    AddSponsorRequest,
    AttendanceRequest,
    ChangeStatusRequest,
    RegisterParticipantRequest,
    UpdatePledgeRequest,
)
from app.event.commands import (
    AddImagesCommand,
    AddSponsorCommand,
    ChangeStatusCommand,
    DeleteAggregateCommand,
    RegisterAttendanceCommand,
    RegisterParticipantCommand,
    RemoveImageCommand,
    UpdateSponsorPledgeCommand,
)
from app.config.event_config import get_event_limits
from app.event.enums import AggregateKind, ImageType
from app.event.exceptions import ValidationFailed
from app.event.projections import StatisticsView, StatusHistoryView
from app.event.queries import (
    GetAggregateQuery,
    GetAvailableTransitionsQuery,
    GetStatisticsQuery,
    GetStatusHistoryQuery,
    ListAggregatesQuery,
)
from app.event.value_objects import ImagePayload, TransitionOption

log = logging.getLogger("eventhub.api.aggregates")


def _too_large(filename: str, size: int, max_bytes: int) -> ValidationFailed:
    return ValidationFailed(f"{filename}: {size}+ bytes exceeds the {max_bytes} byte limit", field="images")


async def read_uploads(files: List[UploadFile], max_bytes: int) -> List[ImagePayload]:
    """
    Raw multipart parts; normalization happens in image ingestion. At most
    max_bytes + 1 bytes are read per part, so an oversized part is refused
    without loading it.
    """
    payloads = []
    for upload in files:
        filename = upload.filename or "upload"
        if upload.size is not None and upload.size > max_bytes:
            raise _too_large(filename, upload.size, max_bytes)
        content = await upload.read(max_bytes + 1)
        if len(content) > max_bytes:
            raise _too_large(filename, len(content), max_bytes)
        payloads.append(ImagePayload(
            filename=filename,
            content=content,
            content_type=upload.content_type or "application/octet-stream",
            size=len(content),
        ))
    return payloads


def add_shared_routes(router: APIRouter, kind: AggregateKind, view_model: Type[BaseModel]) -> None:
    """Register the endpoints whose behavior is the same for both aggregate kinds."""

    # =========================================================================
    # Read side
    # =========================================================================

    @router.get("", response_model=List[view_model])
    async def list_aggregates(
        query_bus: QueryBusDep,
        state: Optional[str] = Query(None),
        ngo_id: Optional[int] = Query(None),
        limit: int = Query(50, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ):
        return await query_bus.query(ListAggregatesQuery(
            kind=kind, state=state, ngo_id=ngo_id, limit=limit, offset=offset,
        ))

    @router.get("/{aggregate_id}", response_model=view_model)
    async def get_aggregate(aggregate_id: str, query_bus: QueryBusDep):
        return await query_bus.query(GetAggregateQuery(kind=kind, aggregate_id=aggregate_id))

    @router.get("/{aggregate_id}/transitions", response_model=List[TransitionOption])
    async def get_available_transitions(aggregate_id: str, query_bus: QueryBusDep):
        return await query_bus.query(GetAvailableTransitionsQuery(kind=kind, aggregate_id=aggregate_id))

    @router.get("/{aggregate_id}/history", response_model=StatusHistoryView)
    async def get_status_history(aggregate_id: str, query_bus: QueryBusDep):
        return await query_bus.query(GetStatusHistoryQuery(kind=kind, aggregate_id=aggregate_id))

    @router.get("/{aggregate_id}/statistics", response_model=StatisticsView)
    async def get_statistics(aggregate_id: str, query_bus: QueryBusDep):
        return await query_bus.query(GetStatisticsQuery(kind=kind, aggregate_id=aggregate_id))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @router.post("/{aggregate_id}/status", response_model=view_model)
    async def change_status(
        aggregate_id: str,
        request: ChangeStatusRequest,
        actor: CurrentActor,
        command_bus: CommandBusDep,
    ):
        return await command_bus.send(ChangeStatusCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id,
            target=request.status, reason=request.reason,
        ))

    @router.delete("/{aggregate_id}", response_model=view_model)
    async def delete_aggregate(
        aggregate_id: str,
        actor: CurrentActor,
        command_bus: CommandBusDep,
        reason: Optional[str] = Query(None, max_length=500),
    ):
        return await command_bus.send(DeleteAggregateCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id, reason=reason,
        ))

    # =========================================================================
    # Participants
    # =========================================================================

    @router.post("/{aggregate_id}/participants", response_model=view_model, status_code=status.HTTP_201_CREATED)
    async def register_participant(
        aggregate_id: str,
        request: RegisterParticipantRequest,
        actor: CurrentActor,
        command_bus: CommandBusDep,
    ):
        return await command_bus.send(RegisterParticipantCommand(
            actor=actor,
            kind=kind,
            aggregate_id=aggregate_id,
            member_id=request.member_id,
            participant_kind=request.kind,
            availability=request.availability,
            skills=request.skills,
            comments=request.comments,
        ))

    @router.post("/{aggregate_id}/attendance", response_model=view_model)
    async def register_attendance(
        aggregate_id: str,
        request: AttendanceRequest,
        actor: CurrentActor,
        command_bus: CommandBusDep,
    ):
        return await command_bus.send(RegisterAttendanceCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id,
            member_id=request.member_id, attended=request.attended,
        ))

    # =========================================================================
    # Sponsors
    # =========================================================================

    @router.post("/{aggregate_id}/sponsors", response_model=view_model, status_code=status.HTTP_201_CREATED)
    async def add_sponsor(
        aggregate_id: str,
        request: AddSponsorRequest,
        actor: CurrentActor,
        command_bus: CommandBusDep,
    ):
        return await command_bus.send(AddSponsorCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id,
            company_id=request.company_id, tier=request.tier, amount=request.amount,
        ))

    @router.patch("/{aggregate_id}/sponsors/{company_id}", response_model=view_model)
    async def update_sponsor_pledge(
        aggregate_id: str,
        company_id: int,
        request: UpdatePledgeRequest,
        actor: CurrentActor,
        command_bus: CommandBusDep,
    ):
        return await command_bus.send(UpdateSponsorPledgeCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id,
            company_id=company_id, state=request.state,
        ))

    # =========================================================================
    # Images
    # =========================================================================

    @router.post("/{aggregate_id}/images", response_model=view_model, status_code=status.HTTP_201_CREATED)
    async def add_images(
        aggregate_id: str,
        actor: CurrentActor,
        command_bus: CommandBusDep,
        files: List[UploadFile] = File(...),
        image_type: ImageType = Form(ImageType.GALLERY),
    ):
        uploads = await read_uploads(files, get_event_limits().max_image_bytes)
        return await command_bus.send(AddImagesCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id,
            uploads=uploads, image_type=image_type,
        ))

    @router.delete("/{aggregate_id}/images/{image_id}", response_model=view_model)
    async def remove_image(
        aggregate_id: str,
        image_id: str,
        actor: CurrentActor,
        command_bus: CommandBusDep,
    ):
        return await command_bus.send(RemoveImageCommand(
            actor=actor, kind=kind, aggregate_id=aggregate_id, image_id=image_id,
        ))
