# =============================================================================
# File: app/event/aggregate.py
# Description: Event and MegaEvent aggregates as stored in the document store
#
# Each aggregate owns its embedded membership records (participants,
# sponsors, organizers), images, metrics and state history. Metrics are
# derived data: recompute_metrics() rebuilds them from the embedded
# collections and is called before every save.
# =============================================================================

from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.config.event_config import EventLimitsConfig
from app.event.enums import (
    AggregateKind,
    Availability,
    EventCategory,
    EventState,
    EventType,
    ImageType,
    LocationMode,
    MegaEventState,
    OrganizerRole,
    ParticipantKind,
    ParticipationState,
    PledgeState,
    Priority,
    SponsorTier,
)
from app.event.exceptions import ValidationFailed
from app.event.value_objects import utc_now


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(part: int, whole: int) -> int:
    """round(100 * part / whole), 0 when whole is 0"""
    if whole <= 0:
        return 0
    return round_half_up(100 * part / whole)


_STATE_MODEL_CONFIG = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)


# =============================================================================
# Embedded records
# =============================================================================

class Location(BaseModel):
    model_config = _STATE_MODEL_CONFIG

    address: str
    city: Optional[str] = None
    mode: LocationMode = LocationMode.IN_PERSON
    virtual_link: Optional[str] = None
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class ParticipantRecord(BaseModel):
    """Membership of one external member"""
    model_config = _STATE_MODEL_CONFIG

    member_id: int
    kind: ParticipantKind = ParticipantKind.PARTICIPANT
    state: ParticipationState = ParticipationState.CONFIRMED
    attended: bool = False
    registered_at: datetime = Field(default_factory=utc_now)
    attendance_marked_at: Optional[datetime] = None
    availability: Optional[Availability] = None
    skills: List[str] = Field(default_factory=list)
    comments: Optional[str] = None


class OrganizerRecord(BaseModel):
    """Organizing NGO of a mega-event"""
    model_config = _STATE_MODEL_CONFIG

    ngo_id: int
    role: OrganizerRole = OrganizerRole.COLLABORATOR
    active: bool = True
    joined_at: datetime = Field(default_factory=utc_now)


class SponsorRecord(BaseModel):
    """Company pledge"""
    model_config = _STATE_MODEL_CONFIG

    company_id: int
    tier: SponsorTier = SponsorTier.COLLABORATOR
    amount: float = Field(default=0.0, ge=0)
    state: PledgeState = PledgeState.PLEDGED
    pledged_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None


class ImageRecord(BaseModel):
    model_config = _STATE_MODEL_CONFIG

    image_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    filename: str
    content_type: str
    size: int
    content: bytes
    image_type: ImageType = ImageType.GALLERY
    uploaded_at: datetime = Field(default_factory=utc_now)


class StateHistoryEntry(BaseModel):
    """Append-only. Never edited once written."""
    model_config = ConfigDict(frozen=True)

    previous_state: Optional[str] = None
    new_state: str
    timestamp: datetime = Field(default_factory=utc_now)
    acting_user_id: Optional[str] = None
    reason: str


class EventMetrics(BaseModel):
    model_config = _STATE_MODEL_CONFIG

    total_registered: int = 0
    total_attended: int = 0
    attendance_percentage: int = 0
    sponsor_count: int = 0
    capacity_used: Optional[int] = None
    final_snapshot_at: Optional[datetime] = None


class MegaEventMetrics(EventMetrics):
    active_organizers: int = 0
    pledged_total: float = 0.0
    estimated_beneficiaries: Optional[int] = None
    estimated_reach: Optional[int] = None


class Budget(BaseModel):
    model_config = _STATE_MODEL_CONFIG

    planned: Optional[float] = Field(default=None, ge=0)
    collected_total: float = 0.0


# =============================================================================
# Aggregates
# =============================================================================

class AggregateBase(BaseModel):
    """Fields and behavior common to Event and MegaEvent"""
    model_config = _STATE_MODEL_CONFIG

    id: Optional[str] = None                # document id, immutable once assigned
    ledger_id: Optional[int] = None         # system-of-record id
    version: int = 0

    title: Optional[str] = None
    description: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[Location] = None
    category: Optional[EventCategory] = None
    capacity: Optional[int] = None

    enrollment_open: bool = False
    public: bool = False
    active: bool = True

    participants: List[ParticipantRecord] = Field(default_factory=list)
    sponsors: List[SponsorRecord] = Field(default_factory=list)
    images: List[ImageRecord] = Field(default_factory=list)
    history: List[StateHistoryEntry] = Field(default_factory=list)

    created_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    kind: AggregateKind

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find_participant(self, member_id: int) -> Optional[ParticipantRecord]:
        return next((p for p in self.participants if p.member_id == member_id), None)

    def find_sponsor(self, company_id: int) -> Optional[SponsorRecord]:
        return next((s for s in self.sponsors if s.company_id == company_id), None)

    def find_image(self, image_id: str) -> Optional[ImageRecord]:
        return next((i for i in self.images if i.image_id == image_id), None)

    # -------------------------------------------------------------------------
    # Derived data
    # -------------------------------------------------------------------------

    def recompute_metrics(self) -> None:
        registered = len(self.participants)
        attended = sum(1 for p in self.participants if p.attended)
        self.metrics.total_registered = registered
        self.metrics.total_attended = attended
        self.metrics.attendance_percentage = percentage(attended, registered)
        self.metrics.sponsor_count = len(self.sponsors)

    def append_history(
            self,
            previous_state: Optional[str],
            new_state: str,
            acting_user_id: Optional[str],
            reason: str,
            timestamp: datetime,
    ) -> StateHistoryEntry:
        entry = StateHistoryEntry(
            previous_state=previous_state,
            new_state=new_state,
            timestamp=timestamp,
            acting_user_id=acting_user_id,
            reason=reason,
        )
        self.history.append(entry)
        return entry

    def to_document(self) -> Dict[str, Any]:
        """Storage shape (without the document id)"""
        return self.model_dump(mode="python", exclude={"id"})


class EventAggregate(AggregateBase):
    """Single-organization activity"""

    kind: AggregateKind = AggregateKind.EVENT
    state: EventState = EventState.DRAFT

    ngo_id: int
    event_type: Optional[EventType] = None
    enrollment_deadline: Optional[datetime] = None

    metrics: EventMetrics = Field(default_factory=EventMetrics)


class MegaEventAggregate(AggregateBase):
    """Multi-organization umbrella activity"""

    kind: AggregateKind = AggregateKind.MEGA_EVENT
    state: MegaEventState = MegaEventState.PLANNING

    principal_ngo_id: int
    organizers: List[OrganizerRecord] = Field(default_factory=list)

    requires_approval: bool = False
    priority: Priority = Priority.MEDIUM
    tags: List[str] = Field(default_factory=list)
    budget: Budget = Field(default_factory=Budget)

    metrics: MegaEventMetrics = Field(default_factory=MegaEventMetrics)

    def find_organizer(self, ngo_id: int, active_only: bool = True) -> Optional[OrganizerRecord]:
        return next(
            (o for o in self.organizers if o.ngo_id == ngo_id and (o.active or not active_only)),
            None,
        )

    def active_organizers(self) -> List[OrganizerRecord]:
        return [o for o in self.organizers if o.active]

    def confirmed_pledge_total(self) -> float:
        return float(sum(s.amount for s in self.sponsors if s.state == PledgeState.CONFIRMED))

    def recompute_metrics(self) -> None:
        super().recompute_metrics()
        self.metrics.active_organizers = len(self.active_organizers())
        self.metrics.pledged_total = self.confirmed_pledge_total()


Aggregate = Union[EventAggregate, MegaEventAggregate]

AGGREGATE_TYPES = {
    AggregateKind.EVENT: EventAggregate,
    AggregateKind.MEGA_EVENT: MegaEventAggregate,
}


def aggregate_from_document(kind: AggregateKind, document: Dict[str, Any]) -> Aggregate:
    data = dict(document)
    data["id"] = str(data.pop("_id"))
    return AGGREGATE_TYPES[AggregateKind(kind)].model_validate(data)


# =============================================================================
# Field validation
# =============================================================================

_EVENT_TITLE_LENGTH = (3, 200)
_MEGA_EVENT_TITLE_LENGTH = (5, 200)


def validate_aggregate(aggregate: Aggregate, limits: EventLimitsConfig) -> None:
    """Check the field-level invariants; raises ValidationFailed on the first violation."""
    is_mega = aggregate.kind == AggregateKind.MEGA_EVENT
    min_len, max_len = _MEGA_EVENT_TITLE_LENGTH if is_mega else _EVENT_TITLE_LENGTH

    title = (aggregate.title or "").strip()
    if not title:
        raise ValidationFailed("title is required", field="title")
    if not min_len <= len(title) <= max_len:
        raise ValidationFailed(f"title must be {min_len}-{max_len} characters", field="title")

    if aggregate.start is None:
        raise ValidationFailed("start is required", field="start")
    if aggregate.start.tzinfo is None:
        raise ValidationFailed("start must be timezone-aware", field="start")
    if aggregate.location is None or not aggregate.location.address.strip():
        raise ValidationFailed("location is required", field="location")

    if aggregate.end is not None:
        if aggregate.end.tzinfo is None:
            raise ValidationFailed("end must be timezone-aware", field="end")
        if aggregate.end <= aggregate.start:
            raise ValidationFailed("end must be after start", field="end")
        if is_mega and aggregate.end - aggregate.start > timedelta(days=limits.mega_event_max_duration_days):
            raise ValidationFailed(
                f"a mega-event cannot last more than {limits.mega_event_max_duration_days} days",
                field="end",
            )

    max_capacity = limits.mega_event_max_capacity if is_mega else limits.event_max_capacity
    if aggregate.capacity is not None:
        if not 1 <= aggregate.capacity <= max_capacity:
            raise ValidationFailed(f"capacity must be between 1 and {max_capacity}", field="capacity")
        if aggregate.capacity < len(aggregate.participants):
            raise ValidationFailed(
                f"capacity cannot drop below the {len(aggregate.participants)} registered participants",
                field="capacity",
            )

    if isinstance(aggregate, EventAggregate) and aggregate.enrollment_deadline is not None:
        if aggregate.enrollment_deadline.tzinfo is None:
            raise ValidationFailed("enrollment_deadline must be timezone-aware", field="enrollment_deadline")
        if aggregate.enrollment_deadline > aggregate.start:
            raise ValidationFailed("enrollment deadline must not be after start", field="enrollment_deadline")

    if aggregate.location.mode != LocationMode.IN_PERSON and not aggregate.location.virtual_link:
        raise ValidationFailed("virtual and hybrid events need a virtual_link", field="location")
