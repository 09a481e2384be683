# =============================================================================
# File: app/event/enums.py
# Description: Event / mega-event domain enumerations
# =============================================================================

from enum import Enum


class AggregateKind(str, Enum):
    """The two aggregate types managed by the lifecycle engine"""
    EVENT = "event"
    MEGA_EVENT = "mega_event"


class ActorRole(str, Enum):
    """Role claim carried by every caller"""
    COMPANY = "company"
    NGO = "ngo"
    EXTERNAL_MEMBER = "external_member"
    SUPER_ADMIN = "super_admin"


class EventState(str, Enum):
    """Single-organization event lifecycle"""
    DRAFT = "draft"
    PUBLISHED = "published"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class MegaEventState(str, Enum):
    """Multi-organization mega-event lifecycle"""
    PLANNING = "planning"
    CALL_FOR_PARTICIPATION = "call_for_participation"
    ORGANIZING = "organizing"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


class LocationMode(str, Enum):
    IN_PERSON = "in_person"
    VIRTUAL = "virtual"
    HYBRID = "hybrid"


class EventType(str, Enum):
    CONFERENCE = "conference"
    WORKSHOP = "workshop"
    SEMINAR = "seminar"
    TRAINING = "training"
    VOLUNTEERING = "volunteering"
    FUNDRAISING = "fundraising"
    CULTURAL = "cultural"
    SPORTS = "sports"
    OTHER = "other"


class EventCategory(str, Enum):
    SOCIAL = "social"
    ENVIRONMENTAL = "environmental"
    EDUCATIONAL = "educational"
    HEALTH = "health"
    CULTURAL = "cultural"
    SPORTS = "sports"
    TECHNOLOGY = "technology"
    OTHER = "other"


class ParticipantKind(str, Enum):
    """Participation kinds. Plain events accept only the first two."""
    PARTICIPANT = "participant"
    VOLUNTEER = "volunteer"
    SPEAKER = "speaker"
    FACILITATOR = "facilitator"
    SPECIAL_GUEST = "special_guest"


EVENT_PARTICIPANT_KINDS = frozenset({ParticipantKind.PARTICIPANT, ParticipantKind.VOLUNTEER})


class ParticipationState(str, Enum):
    AWAITING_APPROVAL = "awaiting_approval"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class Availability(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    SPECIFIC_HOURS = "specific_hours"


class OrganizerRole(str, Enum):
    PRINCIPAL_COORDINATOR = "principal_coordinator"
    CO_ORGANIZER = "co_organizer"
    COLLABORATOR = "collaborator"
    SUPPORT = "support"


# Roles allowed to drive the mega-event lifecycle
LIFECYCLE_ORGANIZER_ROLES = frozenset({OrganizerRole.PRINCIPAL_COORDINATOR, OrganizerRole.CO_ORGANIZER})


class SponsorTier(str, Enum):
    PRINCIPAL = "principal"
    GOLD = "gold"
    SILVER = "silver"
    BRONZE = "bronze"
    COLLABORATOR = "collaborator"
    PATRON = "patron"


class PledgeState(str, Enum):
    PLEDGED = "pledged"
    CONFIRMED = "confirmed"
    PAID = "paid"
    CANCELLED = "cancelled"


class ImageType(str, Enum):
    GALLERY = "gallery"
    COVER = "cover"
    PROMOTIONAL = "promotional"
    BANNER = "banner"
    LOGO = "logo"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
