# =============================================================================
# File: app/event/projections.py
# Description: Safe external representations of the aggregates
#
# Stored aggregates carry raw image bytes and concurrency bookkeeping; the
# views below are what leaves the service. Images become data: URLs.
# =============================================================================

from __future__ import annotations

import base64
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from app.event.aggregate import (
    Aggregate,
    Budget,
    EventMetrics,
    ImageRecord,
    Location,
    MegaEventAggregate,
    MegaEventMetrics,
    OrganizerRecord,
    ParticipantRecord,
    SponsorRecord,
    StateHistoryEntry,
)
from app.event.enums import PledgeState


def image_data_url(image: ImageRecord) -> str:
    encoded = base64.b64encode(image.content).decode("ascii")
    return f"data:{image.content_type};base64,{encoded}"


class ImageView(BaseModel):
    image_id: str
    filename: str
    content_type: str
    size: int
    image_type: str
    uploaded_at: datetime
    url: str

    @classmethod
    def from_record(cls, image: ImageRecord) -> "ImageView":
        return cls(
            image_id=image.image_id,
            filename=image.filename,
            content_type=image.content_type,
            size=image.size,
            image_type=image.image_type,
            uploaded_at=image.uploaded_at,
            url=image_data_url(image),
        )


class _AggregateView(BaseModel):
    id: str
    ledger_id: Optional[int]
    kind: str
    state: str
    title: Optional[str]
    description: Optional[str]
    start: Optional[datetime]
    end: Optional[datetime]
    location: Optional[Location]
    category: Optional[str]
    capacity: Optional[int]
    spaces_available: Optional[int]
    enrollment_open: bool
    public: bool
    active: bool
    participants: List[ParticipantRecord]
    sponsors: List[SponsorRecord]
    images: List[ImageView]
    created_at: datetime
    updated_at: datetime
    finished_at: Optional[datetime]
    cancelled_at: Optional[datetime]


class EventView(_AggregateView):
    ngo_id: int
    event_type: Optional[str]
    enrollment_deadline: Optional[datetime]
    metrics: EventMetrics


class MegaEventView(_AggregateView):
    principal_ngo_id: int
    organizers: List[OrganizerRecord]
    requires_approval: bool
    priority: str
    tags: List[str]
    budget: Budget
    metrics: MegaEventMetrics


AggregateView = Union[EventView, MegaEventView]


def _spaces(aggregate: Aggregate) -> Optional[int]:
    if aggregate.capacity is None:
        return None
    return max(aggregate.capacity - len(aggregate.participants), 0)


def to_view(aggregate: Aggregate) -> AggregateView:
    common = aggregate.model_dump(
        exclude={"images", "history", "version", "created_by"},
    )
    common["images"] = [ImageView.from_record(i) for i in aggregate.images]
    common["spaces_available"] = _spaces(aggregate)
    if isinstance(aggregate, MegaEventAggregate):
        return MegaEventView.model_validate(common)
    return EventView.model_validate(common)


class StatusHistoryView(BaseModel):
    id: str
    kind: str
    state: str
    history: List[StateHistoryEntry]


def to_history_view(aggregate: Aggregate) -> StatusHistoryView:
    return StatusHistoryView(
        id=aggregate.id,
        kind=aggregate.kind,
        state=aggregate.state,
        history=list(aggregate.history),
    )


class StatisticsView(BaseModel):
    id: str
    kind: str
    state: str
    total_registered: int
    total_attended: int
    attendance_percentage: int
    capacity: Optional[int]
    spaces_available: Optional[int]
    participants_by_kind: Dict[str, int] = Field(default_factory=dict)
    participants_by_state: Dict[str, int] = Field(default_factory=dict)
    images_by_type: Dict[str, int] = Field(default_factory=dict)
    sponsors_by_tier: Dict[str, int] = Field(default_factory=dict)
    pledged_total: float = 0.0
    confirmed_total: float = 0.0
    active_organizers: Optional[int] = None


def to_statistics(aggregate: Aggregate) -> StatisticsView:
    live_sponsors = [s for s in aggregate.sponsors if s.state != PledgeState.CANCELLED]
    return StatisticsView(
        id=aggregate.id,
        kind=aggregate.kind,
        state=aggregate.state,
        total_registered=aggregate.metrics.total_registered,
        total_attended=aggregate.metrics.total_attended,
        attendance_percentage=aggregate.metrics.attendance_percentage,
        capacity=aggregate.capacity,
        spaces_available=_spaces(aggregate),
        participants_by_kind=dict(Counter(p.kind for p in aggregate.participants)),
        participants_by_state=dict(Counter(p.state for p in aggregate.participants)),
        images_by_type=dict(Counter(i.image_type for i in aggregate.images)),
        sponsors_by_tier=dict(Counter(s.tier for s in live_sponsors)),
        pledged_total=float(sum(s.amount for s in live_sponsors)),
        confirmed_total=float(sum(s.amount for s in aggregate.sponsors if s.state == PledgeState.CONFIRMED)),
        active_organizers=(
            len(aggregate.active_organizers()) if isinstance(aggregate, MegaEventAggregate) else None
        ),
    )


__all__ = [
    "EventView",
    "MegaEventView",
    "AggregateView",
    "ImageView",
    "StatusHistoryView",
    "StatisticsView",
    "to_view",
    "to_history_view",
    "to_statistics",
    "image_data_url",
]
