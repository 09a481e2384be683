# =============================================================================
# File: tests/support.py
# Description: Actors, clock and field builders shared by the test modules
# =============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from app.event.aggregate import Location
from app.event.commands import CreateEventCommand, CreateMegaEventCommand
from app.event.enums import ActorRole
from app.event.value_objects import Actor

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)

NGO_7 = Actor(actor_id="ngo-7", role=ActorRole.NGO, ledger_id=7)
NGO_8 = Actor(actor_id="ngo-8", role=ActorRole.NGO, ledger_id=8)
NGO_9 = Actor(actor_id="ngo-9", role=ActorRole.NGO, ledger_id=9)
ADMIN = Actor(actor_id="admin-1", role=ActorRole.SUPER_ADMIN)
COMPANY_50 = Actor(actor_id="company-50", role=ActorRole.COMPANY, ledger_id=50)


def member(member_id: int) -> Actor:
    return Actor(actor_id=f"member-{member_id}", role=ActorRole.EXTERNAL_MEMBER, ledger_id=member_id)


class FakeClock:
    """Callable clock that tests move forward explicitly"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: Any) -> None:
        self.now += timedelta(**delta)


def event_fields(clock: FakeClock, **overrides: Any) -> Dict[str, Any]:
    """A publishable event starting tomorrow"""
    fields: Dict[str, Any] = dict(
        title="Beach Cleanup",
        start=clock.now + timedelta(days=1),
        end=clock.now + timedelta(days=1, hours=4),
        location=Location(address="Pier 3", city="Valparaiso"),
        ngo_id=7,
    )
    fields.update(overrides)
    return fields


def mega_event_fields(clock: FakeClock, **overrides: Any) -> Dict[str, Any]:
    fields: Dict[str, Any] = dict(
        title="Coastal Week",
        start=clock.now + timedelta(days=10),
        end=clock.now + timedelta(days=14),
        location=Location(address="Harbour Plaza", city="Valparaiso"),
        principal_ngo_id=7,
    )
    fields.update(overrides)
    return fields


async def create_event(command_bus, clock: FakeClock, actor: Actor = NGO_7, **overrides: Any):
    return await command_bus.send(CreateEventCommand(actor=actor, **event_fields(clock, **overrides)))


async def create_mega_event(command_bus, clock: FakeClock, actor: Actor = NGO_7, **overrides: Any):
    return await command_bus.send(CreateMegaEventCommand(actor=actor, **mega_event_fields(clock, **overrides)))
