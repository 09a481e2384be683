# =============================================================================
# File: app/api/models/event_api_models.py
# Description: Event / mega-event API models (Pydantic v2)
#              Responses are the safe projections from app.event.projections
# =============================================================================

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.event.aggregate import Location
from app.event.commands import EventChanges, MegaEventChanges
from app.event.enums import (
    Availability,
    EventCategory,
    EventType,
    OrganizerRole,
    ParticipantKind,
    PledgeState,
    Priority,
    SponsorTier,
)
from app.services.infrastructure.reconciliation_service import ReconciliationReport


# =============================================================================
# Request Models
# =============================================================================

class _CreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=5000)
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    location: Optional[Location] = None
    category: Optional[EventCategory] = None
    capacity: Optional[int] = None
    public: bool = False
    enrollment_open: bool = False


class CreateEventRequest(_CreateRequest):
    """Request to create an event for an NGO"""
    ngo_id: int
    event_type: Optional[EventType] = None
    enrollment_deadline: Optional[datetime] = None


class CreateMegaEventRequest(_CreateRequest):
    principal_ngo_id: int
    requires_approval: bool = False
    priority: Priority = Priority.MEDIUM
    tags: List[str] = Field(default_factory=list)
    planned_budget: Optional[float] = Field(None, ge=0)
    estimated_beneficiaries: Optional[int] = Field(None, ge=0)
    estimated_reach: Optional[int] = Field(None, ge=0)


class UpdateEventRequest(EventChanges):
    """Partial update; only fields present in the body are applied"""


class UpdateMegaEventRequest(MegaEventChanges):
    """Partial update; only fields present in the body are applied"""


class ChangeStatusRequest(BaseModel):
    status: str = Field(..., min_length=1, description="Target state")
    reason: Optional[str] = Field(None, max_length=500)


class RegisterParticipantRequest(BaseModel):
    member_id: int
    kind: ParticipantKind = ParticipantKind.PARTICIPANT
    availability: Optional[Availability] = None
    skills: List[str] = Field(default_factory=list)
    comments: Optional[str] = Field(None, max_length=1000)


class AttendanceRequest(BaseModel):
    member_id: int
    attended: bool = True


class ReviewParticipantRequest(BaseModel):
    approve: bool


class AddOrganizerRequest(BaseModel):
    ngo_id: int
    role: OrganizerRole = OrganizerRole.COLLABORATOR


class AddSponsorRequest(BaseModel):
    company_id: int
    tier: SponsorTier = SponsorTier.COLLABORATOR
    amount: float = Field(default=0.0, ge=0)


class UpdatePledgeRequest(BaseModel):
    state: PledgeState


# =============================================================================
# Response Models
# =============================================================================

class ReconciliationReportResponse(BaseModel):
    kind: str
    clean: bool
    checked: int
    mirrors_repaired: List[str]
    documents_soft_deleted: List[str]
    documents_without_ledger_id: List[str]
    ledger_rows_without_document: List[int]
    errors: List[str]

    @classmethod
    def from_report(cls, report: ReconciliationReport) -> "ReconciliationReportResponse":
        return cls(clean=report.clean, **asdict(report))
