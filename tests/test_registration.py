# =============================================================================
# File: tests/test_registration.py
# Description: Membership invariants enforced by RegistrationEngine
# =============================================================================

from datetime import timedelta

import pytest

from app.config.event_config import EventLimitsConfig
from app.event.aggregate import (
    EventAggregate,
    Location,
    MegaEventAggregate,
    OrganizerRecord,
    ParticipantRecord,
    percentage,
)
from app.event.enums import OrganizerRole, ParticipantKind, PledgeState, SponsorTier
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
    Unauthorized,
    ValidationFailed,
)
from app.event.registration import RegistrationEngine
from app.event.value_objects import ImagePayload

from tests.support import ADMIN, COMPANY_50, NGO_7, NGO_8, member


@pytest.fixture
def engine(limits, clock) -> RegistrationEngine:
    return RegistrationEngine(limits, clock)


def open_event(clock, **overrides) -> EventAggregate:
    fields = dict(
        id="ev-1",
        ngo_id=7,
        title="Beach Cleanup",
        start=clock.now + timedelta(days=1),
        location=Location(address="Pier 3"),
        enrollment_open=True,
    )
    fields.update(overrides)
    return EventAggregate(**fields)


def open_mega_event(clock, **overrides) -> MegaEventAggregate:
    fields = dict(
        id="mega-1",
        principal_ngo_id=7,
        title="Coastal Week",
        start=clock.now + timedelta(days=10),
        location=Location(address="Harbour Plaza"),
        enrollment_open=True,
        organizers=[OrganizerRecord(ngo_id=7, role=OrganizerRole.PRINCIPAL_COORDINATOR)],
    )
    fields.update(overrides)
    return MegaEventAggregate(**fields)


def image(name: str = "a.png") -> ImagePayload:
    return ImagePayload(filename=name, content=b"\x89PNG", content_type="image/png", size=4)


# =============================================================================
# Metrics
# =============================================================================

@pytest.mark.parametrize("part, whole, expected", [
    (0, 0, 0),
    (1, 3, 33),
    (2, 3, 67),
    (1, 8, 13),
    (3, 8, 38),
    (4, 4, 100),
])
def test_percentage_rounds_half_up(part, whole, expected):
    assert percentage(part, whole) == expected


# =============================================================================
# Participants
# =============================================================================

def test_member_registers_themselves(engine, clock):
    event = open_event(clock)

    record = engine.register_participant(event, member(1), 1, skills=["first aid"])

    assert record.state == "confirmed"
    assert record.registered_at == clock.now
    assert record.skills == ["first aid"]
    assert event.metrics.total_registered == 1


def test_member_cannot_register_someone_else(engine, clock):
    with pytest.raises(Unauthorized):
        engine.register_participant(open_event(clock), member(1), 2)


def test_organizer_registers_any_member(engine, clock):
    event = open_event(clock)
    engine.register_participant(event, NGO_7, 5)
    assert event.find_participant(5) is not None


def test_duplicate_registration_is_refused(engine, clock):
    event = open_event(clock)
    engine.register_participant(event, member(1), 1)
    with pytest.raises(AlreadyRegistered):
        engine.register_participant(event, member(1), 1)
    assert len(event.participants) == 1


def test_capacity_boundary(engine, clock):
    event = open_event(clock, capacity=2)
    engine.register_participant(event, member(1), 1)
    engine.register_participant(event, member(2), 2)

    with pytest.raises(CapacityExceeded) as exc_info:
        engine.register_participant(event, member(3), 3)

    assert exc_info.value.capacity == 2
    assert [p.member_id for p in event.participants] == [1, 2]


def test_closed_enrollment_is_refused(engine, clock):
    with pytest.raises(EnrollmentClosed):
        engine.register_participant(open_event(clock, enrollment_open=False), member(1), 1)


def test_event_enrollment_deadline(engine, clock):
    event = open_event(clock, enrollment_deadline=clock.now + timedelta(hours=2))
    engine.register_participant(event, member(1), 1)

    clock.advance(hours=3)
    with pytest.raises(EnrollmentDeadlinePassed):
        engine.register_participant(event, member(2), 2)


def test_event_accepts_only_participants_and_volunteers(engine, clock):
    event = open_event(clock)
    engine.register_participant(event, member(1), 1, kind=ParticipantKind.VOLUNTEER)
    with pytest.raises(ValidationFailed) as exc_info:
        engine.register_participant(event, member(2), 2, kind=ParticipantKind.SPEAKER)
    assert exc_info.value.field == "kind"


def test_mega_event_requiring_approval_queues_registrations(engine, clock):
    mega = open_mega_event(clock, requires_approval=True)
    record = engine.register_participant(mega, member(1), 1, kind=ParticipantKind.SPEAKER)
    assert record.state == "awaiting_approval"

    engine.review_participant(mega, NGO_7, 1, approve=True)
    assert mega.find_participant(1).state == "confirmed"

    with pytest.raises(ValidationFailed):
        engine.review_participant(mega, NGO_7, 1, approve=False)


def test_review_requires_organizer(engine, clock):
    mega = open_mega_event(clock, requires_approval=True)
    engine.register_participant(mega, member(1), 1)
    with pytest.raises(Unauthorized):
        engine.review_participant(mega, member(1), 1, approve=True)


# =============================================================================
# Attendance
# =============================================================================

def test_attendance_is_idempotent(engine, clock):
    event = open_event(clock)
    engine.register_participant(event, member(1), 1)
    engine.register_participant(event, member(2), 2)
    engine.register_participant(event, member(3), 3)

    engine.register_attendance(event, NGO_7, 1, True)
    first_mark = event.find_participant(1).attendance_marked_at
    clock.advance(minutes=10)
    engine.register_attendance(event, NGO_7, 1, True)

    assert event.find_participant(1).attendance_marked_at == first_mark
    assert event.metrics.total_attended == 1
    assert event.metrics.attendance_percentage == 33


def test_attendance_can_be_withdrawn(engine, clock):
    event = open_event(clock)
    engine.register_participant(event, member(1), 1)
    engine.register_attendance(event, NGO_7, 1, True)
    engine.register_attendance(event, NGO_7, 1, False)
    assert event.metrics.total_attended == 0
    assert event.metrics.attendance_percentage == 0


def test_attendance_of_unknown_member(engine, clock):
    with pytest.raises(NotRegistered):
        engine.register_attendance(open_event(clock), NGO_7, 99, True)


def test_members_cannot_mark_attendance(engine, clock):
    event = open_event(clock)
    engine.register_participant(event, member(1), 1)
    with pytest.raises(Unauthorized):
        engine.register_attendance(event, member(1), 1, True)


# =============================================================================
# Organizers
# =============================================================================

def test_add_organizer(engine, clock):
    mega = open_mega_event(clock)
    record = engine.add_organizer(mega, NGO_7, 8, is_active_ngo=True, role=OrganizerRole.CO_ORGANIZER)

    assert record.role == "co_organizer"
    assert record.joined_at == clock.now
    assert mega.metrics.active_organizers == 2


def test_organizer_rules(engine, clock):
    mega = open_mega_event(clock)
    with pytest.raises(ValidationFailed):
        engine.add_organizer(mega, NGO_7, 8, True, role=OrganizerRole.PRINCIPAL_COORDINATOR)
    with pytest.raises(AlreadyOrganizer):
        engine.add_organizer(mega, NGO_7, 7, True)
    with pytest.raises(NotAnNgo):
        engine.add_organizer(mega, NGO_7, 42, False)
    with pytest.raises(Unauthorized):
        engine.add_organizer(mega, NGO_8, 8, True)


def test_inactive_organizer_is_reactivated(engine, clock):
    mega = open_mega_event(clock)
    mega.organizers.append(OrganizerRecord(ngo_id=8, active=False))

    engine.add_organizer(mega, NGO_7, 8, True, role=OrganizerRole.SUPPORT)

    assert len(mega.organizers) == 2
    assert mega.find_organizer(8).role == "support"


def test_events_have_no_co_organizers(engine, clock):
    with pytest.raises(ValidationFailed):
        engine.add_organizer(open_event(clock), NGO_7, 8, True)


# =============================================================================
# Sponsors
# =============================================================================

def test_company_pledges_for_itself(engine, clock):
    event = open_event(clock)
    record = engine.add_sponsor(event, COMPANY_50, 50, tier=SponsorTier.GOLD, amount=500.0)
    assert record.state == "pledged"
    assert event.metrics.sponsor_count == 1

    with pytest.raises(AlreadySponsor):
        engine.add_sponsor(event, NGO_7, 50)
    with pytest.raises(Unauthorized):
        engine.add_sponsor(event, COMPANY_50, 51)


def test_pledge_transitions(engine, clock):
    mega = open_mega_event(clock)
    engine.add_sponsor(mega, COMPANY_50, 50, amount=800.0)
    assert mega.metrics.pledged_total == 0.0

    engine.update_pledge(mega, NGO_7, 50, PledgeState.CONFIRMED)
    assert mega.metrics.pledged_total == 800.0

    engine.update_pledge(mega, NGO_7, 50, PledgeState.PAID)
    with pytest.raises(InvalidPledgeTransition):
        engine.update_pledge(mega, NGO_7, 50, PledgeState.CANCELLED)
    with pytest.raises(SponsorNotFound):
        engine.update_pledge(mega, NGO_7, 51, PledgeState.CONFIRMED)


def test_cancelled_pledge_still_counts_as_a_sponsor(engine, clock):
    event = open_event(clock)
    engine.add_sponsor(event, COMPANY_50, 50)
    engine.update_pledge(event, ADMIN, 50, PledgeState.CANCELLED)
    assert event.metrics.sponsor_count == 1
    assert event.sponsors[0].state == "cancelled"


# =============================================================================
# Images
# =============================================================================

def test_per_upload_limit_is_a_validation_error(engine, clock):
    event = open_event(clock)
    with pytest.raises(ValidationFailed) as exc_info:
        engine.add_images(event, NGO_7, [image(f"{i}.png") for i in range(6)])
    assert exc_info.value.field == "images"
    assert event.images == []


def test_image_ceiling(clock):
    engine = RegistrationEngine(EventLimitsConfig(event_max_images=3, event_images_per_upload=2), clock)
    event = open_event(clock)
    engine.add_images(event, NGO_7, [image("1.png"), image("2.png")])

    with pytest.raises(TooManyImages) as exc_info:
        engine.add_images(event, NGO_7, [image("3.png"), image("4.png")])

    assert (exc_info.value.ceiling, exc_info.value.current, exc_info.value.incoming) == (3, 2, 2)
    assert len(event.images) == 2


def test_remove_image(engine, clock):
    event = open_event(clock)
    [record] = engine.add_images(event, NGO_7, [image()])

    engine.remove_image(event, NGO_7, record.image_id)

    assert event.images == []
    with pytest.raises(NotFound):
        engine.remove_image(event, NGO_7, record.image_id)


def test_members_cannot_add_images(engine, clock):
    with pytest.raises(Unauthorized):
        engine.add_images(open_event(clock), member(1), [image()])


def test_mega_event_records_have_all_participant_kinds(engine, clock):
    mega = open_mega_event(clock)
    for member_id, kind in enumerate(ParticipantKind, start=1):
        engine.register_participant(mega, member(member_id), member_id, kind=kind)
    assert len(mega.participants) == len(ParticipantKind)
    assert all(isinstance(p, ParticipantRecord) for p in mega.participants)
