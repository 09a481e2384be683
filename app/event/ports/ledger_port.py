# =============================================================================
# File: app/event/ports/ledger_port.py
# Description: Port interface for the relational ledger (system of record)
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import AsyncContextManager, List, Optional, Protocol, runtime_checkable

from app.event.aggregate import (
    Aggregate,
    EventAggregate,
    OrganizerRecord,
    ParticipantRecord,
    SponsorRecord,
)
from app.event.enums import AggregateKind


@dataclass(frozen=True)
class LedgerCoreRow:
    """Columns of an events / mega_events core row"""
    document_id: str
    owner_ngo_id: int
    title: str
    description: Optional[str]
    start: Optional[datetime]
    end: Optional[datetime]
    city: Optional[str]
    state: str
    capacity: Optional[int]
    public: bool
    active: bool


def core_row_from(aggregate: Aggregate) -> LedgerCoreRow:
    owner = aggregate.ngo_id if isinstance(aggregate, EventAggregate) else aggregate.principal_ngo_id
    return LedgerCoreRow(
        document_id=aggregate.id,
        owner_ngo_id=owner,
        title=aggregate.title or "",
        description=aggregate.description,
        start=aggregate.start,
        end=aggregate.end,
        city=aggregate.location.city if aggregate.location else None,
        state=aggregate.state,
        capacity=aggregate.capacity,
        public=aggregate.public,
        active=aggregate.active,
    )


@dataclass(frozen=True)
class LedgerSnapshot:
    """What reconciliation reads back from a core row"""
    ledger_id: int
    document_id: str
    title: str
    state: str
    active: bool


@runtime_checkable
class LedgerPort(Protocol):
    """
    Port: Relational Ledger

    Defined by: Event Domain
    Implemented by: PostgresLedgerAdapter (app/infra/ledger/ledger_adapter.py)

    Statements issued inside ``transaction()`` join that transaction;
    statements outside it autocommit. Connection-pool exhaustion or a pool
    timeout raises StoreUnavailable.
    """

    def transaction(self) -> AsyncContextManager[None]:
        """Open a transaction that commits on clean exit and rolls back on error."""
        ...

    # =========================================================================
    # Core rows
    # =========================================================================

    async def insert_core(self, kind: AggregateKind, row: LedgerCoreRow) -> int:
        """Insert a core row and return its ledger id."""
        ...

    async def update_core(self, kind: AggregateKind, ledger_id: int, row: LedgerCoreRow) -> None:
        ...

    async def delete_rows(self, kind: AggregateKind, ledger_id: int) -> None:
        """Delete child rows (sponsors, organizers, participants) then the core row."""
        ...

    async def list_core(self, kind: AggregateKind) -> List[LedgerSnapshot]:
        ...

    async def core_exists(self, kind: AggregateKind, ledger_id: int) -> bool:
        """Committed core rows only; a row inserted by an open transaction is not visible."""
        ...

    # =========================================================================
    # Membership mirrors
    # =========================================================================

    async def upsert_participant(self, kind: AggregateKind, ledger_id: int, record: ParticipantRecord) -> None:
        ...

    async def upsert_sponsor(self, kind: AggregateKind, ledger_id: int, record: SponsorRecord) -> None:
        ...

    async def upsert_organizer(self, ledger_id: int, record: OrganizerRecord) -> None:
        """Mega-events only."""
        ...

    # =========================================================================
    # Identity facts
    # =========================================================================

    async def is_active_ngo(self, user_id: int) -> bool:
        """True when the user exists, is active and is an NGO account."""
        ...
