# =============================================================================
# File: app/event/commands.py
# Description: Event / mega-event domain commands
# =============================================================================

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.event.aggregate import Location
from app.event.enums import (
    AggregateKind,
    Availability,
    EventCategory,
    EventType,
    ImageType,
    OrganizerRole,
    ParticipantKind,
    PledgeState,
    Priority,
    SponsorTier,
)
from app.event.value_objects import Actor, ImagePayload
from app.infra.cqrs.command_bus import Command


class _ActorCommand(Command):
    """Every command carries the caller identity"""
    actor: Actor


class _AggregateCommand(_ActorCommand):
    kind: AggregateKind
    aggregate_id: str


# =============================================================================
# Creation
# =============================================================================

class _CreateFields(BaseModel):
    # Title is checked by the aggregate validation so that a missing title
    # surfaces as ValidationFailed rather than a request-model error
    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[Location] = None
    category: Optional[EventCategory] = None
    capacity: Optional[int] = None
    public: bool = False
    enrollment_open: bool = False


class CreateEventCommand(_ActorCommand, _CreateFields):
    """Create an event in state draft"""
    ngo_id: int
    event_type: Optional[EventType] = None
    enrollment_deadline: Optional[datetime] = None


class CreateMegaEventCommand(_ActorCommand, _CreateFields):
    """Create a mega-event in state planning with its principal coordinator"""
    principal_ngo_id: int
    requires_approval: bool = False
    priority: Priority = Priority.MEDIUM
    tags: List[str] = Field(default_factory=list)
    planned_budget: Optional[float] = Field(None, ge=0)
    estimated_beneficiaries: Optional[int] = Field(None, ge=0)
    estimated_reach: Optional[int] = Field(None, ge=0)


# =============================================================================
# Field updates
# =============================================================================

class EventChanges(BaseModel):
    """Only the fields that were explicitly set are applied."""
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[Location] = None
    category: Optional[EventCategory] = None
    capacity: Optional[int] = None
    public: Optional[bool] = None
    enrollment_open: Optional[bool] = None
    event_type: Optional[EventType] = None
    enrollment_deadline: Optional[datetime] = None


class MegaEventChanges(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[Location] = None
    category: Optional[EventCategory] = None
    capacity: Optional[int] = None
    public: Optional[bool] = None
    enrollment_open: Optional[bool] = None
    requires_approval: Optional[bool] = None
    priority: Optional[Priority] = None
    tags: Optional[List[str]] = None
    planned_budget: Optional[float] = Field(None, ge=0)
    estimated_beneficiaries: Optional[int] = Field(None, ge=0)
    estimated_reach: Optional[int] = Field(None, ge=0)


class UpdateEventCommand(_ActorCommand):
    aggregate_id: str
    changes: EventChanges


class UpdateMegaEventCommand(_ActorCommand):
    aggregate_id: str
    changes: MegaEventChanges


class DeleteAggregateCommand(_AggregateCommand):
    """Soft delete. Refused while participants are registered."""
    reason: Optional[str] = Field(None, max_length=500)


# =============================================================================
# Lifecycle
# =============================================================================

class ChangeStatusCommand(_AggregateCommand):
    target: str
    reason: Optional[str] = Field(None, max_length=500)


# =============================================================================
# Membership
# =============================================================================

class RegisterParticipantCommand(_AggregateCommand):
    member_id: int
    participant_kind: ParticipantKind = ParticipantKind.PARTICIPANT
    availability: Optional[Availability] = None
    skills: List[str] = Field(default_factory=list)
    comments: Optional[str] = Field(None, max_length=1000)


class RegisterAttendanceCommand(_AggregateCommand):
    member_id: int
    attended: bool = True


class ReviewParticipantCommand(_AggregateCommand):
    member_id: int
    approve: bool


class AddOrganizerCommand(_ActorCommand):
    aggregate_id: str
    ngo_id: int
    role: OrganizerRole = OrganizerRole.COLLABORATOR


class AddSponsorCommand(_AggregateCommand):
    company_id: int
    tier: SponsorTier = SponsorTier.COLLABORATOR
    amount: float = Field(default=0.0, ge=0)


class UpdateSponsorPledgeCommand(_AggregateCommand):
    company_id: int
    state: PledgeState


# =============================================================================
# Images
# =============================================================================

class AddImagesCommand(_AggregateCommand):
    """Raw uploads; each one goes through image ingestion before it is stored"""
    uploads: List[ImagePayload]
    image_type: ImageType = ImageType.GALLERY


class RemoveImageCommand(_AggregateCommand):
    image_id: str
