# =============================================================================
# File: app/infra/ledger/ledger_adapter.py
# Description: PostgreSQL implementation of LedgerPort
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List

import asyncpg

from app.event.aggregate import OrganizerRecord, ParticipantRecord, SponsorRecord
from app.event.enums import ActorRole, AggregateKind
from app.event.exceptions import StoreUnavailable
from app.event.ports.ledger_port import LedgerCoreRow, LedgerSnapshot
from app.infra.persistence import pg_client

log = logging.getLogger("eventhub.ledger")

# Failures that mean "the ledger could not be reached in time"
UNAVAILABLE_ERRORS = (
    asyncio.TimeoutError,
    OSError,
    asyncpg.InterfaceError,
    asyncpg.TooManyConnectionsError,
    asyncpg.CannotConnectNowError,
    asyncpg.ConnectionDoesNotExistError,
)


@dataclass(frozen=True)
class _Tables:
    core: str
    owner_column: str
    fk: str
    sponsors: str
    participants: str
    organizers: str = ""


_TABLES: Dict[AggregateKind, _Tables] = {
    AggregateKind.EVENT: _Tables(
        core="events",
        owner_column="ngo_id",
        fk="event_id",
        sponsors="event_sponsors",
        participants="event_participants",
    ),
    AggregateKind.MEGA_EVENT: _Tables(
        core="mega_events",
        owner_column="principal_ngo_id",
        fk="mega_event_id",
        sponsors="mega_event_sponsors",
        participants="mega_event_participants",
        organizers="mega_event_organizers",
    ),
}


@asynccontextmanager
async def _ledger_errors() -> AsyncIterator[None]:
    try:
        yield
    except UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable("ledger", e) from e


class PostgresLedgerAdapter:
    """LedgerPort over the shared asyncpg pool."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with _ledger_errors():
            async with pg_client.transaction():
                yield

    # =========================================================================
    # Core rows
    # =========================================================================

    async def insert_core(self, kind: AggregateKind, row: LedgerCoreRow) -> int:
        t = _TABLES[AggregateKind(kind)]
        async with _ledger_errors():
            ledger_id = await pg_client.fetchval(
                f"""
                INSERT INTO {t.core}
                    (document_id, {t.owner_column}, title, description, start_at, end_at,
                     city, state, capacity, public, active)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                RETURNING id
                """,
                row.document_id, row.owner_ngo_id, row.title, row.description, row.start, row.end,
                row.city, row.state, row.capacity, row.public, row.active,
            )
        log.debug(f"Inserted {t.core} row {ledger_id} for document {row.document_id}")
        return ledger_id

    async def update_core(self, kind: AggregateKind, ledger_id: int, row: LedgerCoreRow) -> None:
        t = _TABLES[AggregateKind(kind)]
        async with _ledger_errors():
            await pg_client.execute(
                f"""
                UPDATE {t.core}
                   SET title = $2, description = $3, start_at = $4, end_at = $5, city = $6,
                       state = $7, capacity = $8, public = $9, active = $10, updated_at = now()
                 WHERE id = $1
                """,
                ledger_id, row.title, row.description, row.start, row.end, row.city,
                row.state, row.capacity, row.public, row.active,
            )

    async def delete_rows(self, kind: AggregateKind, ledger_id: int) -> None:
        t = _TABLES[AggregateKind(kind)]
        statements = [
            f"DELETE FROM {t.sponsors} WHERE {t.fk} = $1",
        ]
        if t.organizers:
            statements.append(f"DELETE FROM {t.organizers} WHERE {t.fk} = $1")
        statements += [
            f"DELETE FROM {t.participants} WHERE {t.fk} = $1",
            f"DELETE FROM {t.core} WHERE id = $1",
        ]
        async with _ledger_errors():
            for statement in statements:
                await pg_client.execute(statement, ledger_id)
        log.info(f"Deleted ledger rows of {t.core} {ledger_id}")

    async def list_core(self, kind: AggregateKind) -> List[LedgerSnapshot]:
        t = _TABLES[AggregateKind(kind)]
        async with _ledger_errors():
            rows = await pg_client.fetch(f"SELECT id, document_id, title, state, active FROM {t.core}")
        return [
            LedgerSnapshot(
                ledger_id=r["id"],
                document_id=r["document_id"],
                title=r["title"],
                state=r["state"],
                active=r["active"],
            )
            for r in rows
        ]

    async def core_exists(self, kind: AggregateKind, ledger_id: int) -> bool:
        t = _TABLES[AggregateKind(kind)]
        async with _ledger_errors():
            return bool(await pg_client.fetchval(f"SELECT EXISTS (SELECT 1 FROM {t.core} WHERE id = $1)", ledger_id))

    # =========================================================================
    # Membership mirrors
    # =========================================================================

    async def upsert_participant(self, kind: AggregateKind, ledger_id: int, record: ParticipantRecord) -> None:
        t = _TABLES[AggregateKind(kind)]
        async with _ledger_errors():
            await pg_client.execute(
                f"""
                INSERT INTO {t.participants} ({t.fk}, member_id, kind, participation_state, attended, registered_at)
                VALUES ($1, $2, $3, $4, $5, $6)
                ON CONFLICT ({t.fk}, member_id) DO UPDATE
                   SET kind = EXCLUDED.kind,
                       participation_state = EXCLUDED.participation_state,
                       attended = EXCLUDED.attended
                """,
                ledger_id, record.member_id, record.kind, record.state, record.attended, record.registered_at,
            )

    async def upsert_sponsor(self, kind: AggregateKind, ledger_id: int, record: SponsorRecord) -> None:
        t = _TABLES[AggregateKind(kind)]
        async with _ledger_errors():
            await pg_client.execute(
                f"""
                INSERT INTO {t.sponsors} ({t.fk}, company_id, tier, amount, pledge_state)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT ({t.fk}, company_id) DO UPDATE
                   SET tier = EXCLUDED.tier,
                       amount = EXCLUDED.amount,
                       pledge_state = EXCLUDED.pledge_state
                """,
                ledger_id, record.company_id, record.tier, record.amount, record.state,
            )

    async def upsert_organizer(self, ledger_id: int, record: OrganizerRecord) -> None:
        async with _ledger_errors():
            await pg_client.execute(
                """
                INSERT INTO mega_event_organizers (mega_event_id, ngo_id, role, active, joined_at)
                VALUES ($1, $2, $3, $4, $5)
                ON CONFLICT (mega_event_id, ngo_id) DO UPDATE
                   SET role = EXCLUDED.role,
                       active = EXCLUDED.active
                """,
                ledger_id, record.ngo_id, record.role, record.active, record.joined_at,
            )

    # =========================================================================
    # Identity facts
    # =========================================================================

    async def is_active_ngo(self, user_id: int) -> bool:
        async with _ledger_errors():
            found = await pg_client.fetchval(
                "SELECT 1 FROM users WHERE id = $1 AND user_type = $2 AND active",
                user_id, ActorRole.NGO.value,
            )
        return found is not None
