# =============================================================================
# File: app/event/authorization.py
# Description: Relationship checks between an actor and an aggregate
# =============================================================================

from __future__ import annotations

from app.event.aggregate import Aggregate, EventAggregate, MegaEventAggregate
from app.event.enums import LIFECYCLE_ORGANIZER_ROLES, OrganizerRole
from app.event.exceptions import Unauthorized
from app.event.value_objects import Actor


def is_lifecycle_organizer(aggregate: Aggregate, actor: Actor) -> bool:
    """Owning NGO of an event, or a principal/co-organizer of a mega-event."""
    if actor.is_super_admin:
        return True
    if isinstance(aggregate, EventAggregate):
        return actor.is_ngo(aggregate.ngo_id)
    if isinstance(aggregate, MegaEventAggregate):
        if actor.ledger_id is None:
            return False
        organizer = aggregate.find_organizer(actor.ledger_id)
        return (
            organizer is not None
            and actor.is_ngo(organizer.ngo_id)
            and organizer.role in LIFECYCLE_ORGANIZER_ROLES
        )
    return False


def ensure_organizer(aggregate: Aggregate, actor: Actor, action: str) -> None:
    if not is_lifecycle_organizer(aggregate, actor):
        raise Unauthorized(actor.actor_id, action)


def ensure_owner(aggregate: Aggregate, actor: Actor, action: str) -> None:
    """Stricter check used for deletion: the owning NGO or the principal coordinator."""
    if actor.is_super_admin:
        return
    if isinstance(aggregate, EventAggregate):
        allowed = actor.is_ngo(aggregate.ngo_id)
    else:
        organizer = aggregate.find_organizer(aggregate.principal_ngo_id)
        allowed = (
            actor.is_ngo(aggregate.principal_ngo_id)
            and organizer is not None
            and organizer.role == OrganizerRole.PRINCIPAL_COORDINATOR
        )
    if not allowed:
        raise Unauthorized(actor.actor_id, action)


def ensure_member_or_organizer(aggregate: Aggregate, actor: Actor, member_id: int, action: str) -> None:
    """External members act for themselves; organizers may act for anyone."""
    if actor.is_member(member_id) or is_lifecycle_organizer(aggregate, actor):
        return
    raise Unauthorized(actor.actor_id, action)


def ensure_company_or_organizer(aggregate: Aggregate, actor: Actor, company_id: int, action: str) -> None:
    if actor.is_company(company_id) or is_lifecycle_organizer(aggregate, actor):
        return
    raise Unauthorized(actor.actor_id, action)
