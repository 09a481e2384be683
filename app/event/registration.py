# =============================================================================
# File: app/event/registration.py
# Description: Membership rules for participants, organizers, sponsors and
#              images. Every mutation leaves metrics recomputed.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

from app.config.event_config import EventLimitsConfig
from app.event.aggregate import (
    Aggregate,
    EventAggregate,
    ImageRecord,
    MegaEventAggregate,
    OrganizerRecord,
    ParticipantRecord,
    SponsorRecord,
)
from app.event.authorization import (
    ensure_company_or_organizer,
    ensure_member_or_organizer,
    ensure_organizer,
)
from app.event.enums import (
    EVENT_PARTICIPANT_KINDS,
    AggregateKind,
    Availability,
    ImageType,
    OrganizerRole,
    ParticipantKind,
    ParticipationState,
    PledgeState,
    SponsorTier,
)
from app.event.exceptions import (
    AlreadyOrganizer,
    AlreadyRegistered,
    AlreadySponsor,
    CapacityExceeded,
    EnrollmentClosed,
    EnrollmentDeadlinePassed,
    InvalidPledgeTransition,
    NotAnNgo,
    NotFound,
    NotRegistered,
    SponsorNotFound,
    TooManyImages,
    ValidationFailed,
)
from app.event.value_objects import Actor, ImagePayload, utc_now

log = logging.getLogger("eventhub.event.registration")

PLEDGE_TRANSITIONS: Dict[PledgeState, FrozenSet[PledgeState]] = {
    PledgeState.PLEDGED: frozenset({PledgeState.CONFIRMED, PledgeState.CANCELLED}),
    PledgeState.CONFIRMED: frozenset({PledgeState.PAID, PledgeState.CANCELLED}),
    PledgeState.PAID: frozenset(),
    PledgeState.CANCELLED: frozenset(),
}


class RegistrationEngine:
    """
    Enforces membership invariants on an in-memory aggregate.

    Methods raise the specific invariant error and leave the aggregate
    untouched on failure. On success the aggregate's metrics are rebuilt
    from its embedded collections.
    """

    def __init__(self, limits: EventLimitsConfig, clock: Callable[[], datetime] = utc_now):
        self._limits = limits
        self._clock = clock

    # =========================================================================
    # Participants
    # =========================================================================

    def register_participant(
            self,
            aggregate: Aggregate,
            actor: Actor,
            member_id: int,
            kind: ParticipantKind = ParticipantKind.PARTICIPANT,
            availability: Optional[Availability] = None,
            skills: Iterable[str] = (),
            comments: Optional[str] = None,
    ) -> ParticipantRecord:
        ensure_member_or_organizer(aggregate, actor, member_id, "register participants")

        kind = ParticipantKind(kind)
        if isinstance(aggregate, EventAggregate) and kind not in EVENT_PARTICIPANT_KINDS:
            raise ValidationFailed(f"'{kind.value}' is not a valid participation kind for an event", field="kind")

        if aggregate.find_participant(member_id) is not None:
            raise AlreadyRegistered(member_id)
        if aggregate.capacity is not None and len(aggregate.participants) >= aggregate.capacity:
            raise CapacityExceeded(aggregate.capacity)
        if not aggregate.enrollment_open:
            raise EnrollmentClosed()

        now = self._clock()
        if isinstance(aggregate, EventAggregate):
            deadline = aggregate.enrollment_deadline
            if deadline is not None and now > deadline:
                raise EnrollmentDeadlinePassed(deadline)

        requires_approval = isinstance(aggregate, MegaEventAggregate) and aggregate.requires_approval
        record = ParticipantRecord(
            member_id=member_id,
            kind=kind,
            state=ParticipationState.AWAITING_APPROVAL if requires_approval else ParticipationState.CONFIRMED,
            registered_at=now,
            availability=availability,
            skills=list(skills),
            comments=comments,
        )
        aggregate.participants.append(record)
        aggregate.recompute_metrics()

        log.info(f"Member {member_id} registered to {aggregate.kind} {aggregate.id} as {record.state}")
        return record

    def register_attendance(
            self,
            aggregate: Aggregate,
            actor: Actor,
            member_id: int,
            attended: bool,
    ) -> ParticipantRecord:
        ensure_organizer(aggregate, actor, "register attendance")

        record = aggregate.find_participant(member_id)
        if record is None:
            raise NotRegistered(member_id)

        if record.attended != attended:
            record.attended = attended
            record.attendance_marked_at = self._clock()
        aggregate.recompute_metrics()
        return record

    def review_participant(
            self,
            aggregate: Aggregate,
            actor: Actor,
            member_id: int,
            approve: bool,
    ) -> ParticipantRecord:
        ensure_organizer(aggregate, actor, "review participants")

        record = aggregate.find_participant(member_id)
        if record is None:
            raise NotRegistered(member_id)
        if record.state != ParticipationState.AWAITING_APPROVAL:
            raise ValidationFailed(f"Participation of member {member_id} is already {record.state}")

        record.state = ParticipationState.CONFIRMED if approve else ParticipationState.REJECTED
        aggregate.recompute_metrics()
        return record

    # =========================================================================
    # Organizers (mega-events only)
    # =========================================================================

    def add_organizer(
            self,
            aggregate: Aggregate,
            actor: Actor,
            ngo_id: int,
            is_active_ngo: bool,
            role: OrganizerRole = OrganizerRole.COLLABORATOR,
    ) -> OrganizerRecord:
        """is_active_ngo comes from the ledger; the caller looks it up."""
        if not isinstance(aggregate, MegaEventAggregate):
            raise ValidationFailed("Only mega-events have co-organizers")
        ensure_organizer(aggregate, actor, "add organizers")

        role = OrganizerRole(role)
        if role == OrganizerRole.PRINCIPAL_COORDINATOR:
            raise ValidationFailed("A mega-event has exactly one principal coordinator", field="role")
        if aggregate.find_organizer(ngo_id) is not None:
            raise AlreadyOrganizer(ngo_id)
        if not is_active_ngo:
            raise NotAnNgo(ngo_id)

        inactive = aggregate.find_organizer(ngo_id, active_only=False)
        if inactive is not None:
            inactive.active = True
            inactive.role = role
            inactive.joined_at = self._clock()
            record = inactive
        else:
            record = OrganizerRecord(ngo_id=ngo_id, role=role, joined_at=self._clock())
            aggregate.organizers.append(record)

        aggregate.recompute_metrics()
        log.info(f"NGO {ngo_id} joined mega-event {aggregate.id} as {record.role}")
        return record

    # =========================================================================
    # Sponsors
    # =========================================================================

    def add_sponsor(
            self,
            aggregate: Aggregate,
            actor: Actor,
            company_id: int,
            tier: SponsorTier = SponsorTier.COLLABORATOR,
            amount: float = 0.0,
    ) -> SponsorRecord:
        ensure_company_or_organizer(aggregate, actor, company_id, "add sponsors")

        if amount < 0:
            raise ValidationFailed("amount must not be negative", field="amount")
        if aggregate.find_sponsor(company_id) is not None:
            raise AlreadySponsor(company_id)

        record = SponsorRecord(
            company_id=company_id,
            tier=SponsorTier(tier),
            amount=amount,
            state=PledgeState.PLEDGED,
            pledged_at=self._clock(),
        )
        aggregate.sponsors.append(record)
        aggregate.recompute_metrics()
        return record

    def update_pledge(
            self,
            aggregate: Aggregate,
            actor: Actor,
            company_id: int,
            state: PledgeState,
    ) -> SponsorRecord:
        ensure_organizer(aggregate, actor, "update sponsor pledges")

        record = aggregate.find_sponsor(company_id)
        if record is None:
            raise SponsorNotFound(company_id)

        target = PledgeState(state)
        if target not in PLEDGE_TRANSITIONS[PledgeState(record.state)]:
            raise InvalidPledgeTransition(record.state, target.value)

        record.state = target
        record.updated_at = self._clock()
        aggregate.recompute_metrics()
        return record

    # =========================================================================
    # Images
    # =========================================================================

    def _image_limits(self, aggregate: Aggregate):
        if aggregate.kind == AggregateKind.MEGA_EVENT:
            return self._limits.mega_event_max_images, self._limits.mega_event_images_per_upload
        return self._limits.event_max_images, self._limits.event_images_per_upload

    def add_images(
            self,
            aggregate: Aggregate,
            actor: Actor,
            payloads: List[ImagePayload],
            image_type: ImageType = ImageType.GALLERY,
    ) -> List[ImageRecord]:
        ensure_organizer(aggregate, actor, "add images")

        ceiling, per_upload = self._image_limits(aggregate)
        if not payloads:
            raise ValidationFailed("no images supplied", field="images")
        if len(payloads) > per_upload:
            raise ValidationFailed(f"at most {per_upload} images per upload", field="images")
        if len(aggregate.images) + len(payloads) > ceiling:
            raise TooManyImages(ceiling, len(aggregate.images), len(payloads))

        now = self._clock()
        records = [
            ImageRecord(
                filename=p.filename,
                content_type=p.content_type,
                size=p.size,
                content=p.content,
                image_type=ImageType(image_type),
                uploaded_at=now,
            )
            for p in payloads
        ]
        aggregate.images.extend(records)
        aggregate.recompute_metrics()
        return records

    def remove_image(self, aggregate: Aggregate, actor: Actor, image_id: str) -> ImageRecord:
        ensure_organizer(aggregate, actor, "remove images")

        record = aggregate.find_image(image_id)
        if record is None:
            raise NotFound("Image", image_id)

        aggregate.images = [i for i in aggregate.images if i.image_id != image_id]
        aggregate.recompute_metrics()
        return record
