# =============================================================================
# File: tests/fakes/fake_ledger.py
# Description: In-memory LedgerPort for unit testing
# Pattern: Ports & Adapters - Fake adapter
# =============================================================================

from __future__ import annotations

import copy
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import replace
from typing import AsyncIterator, Dict, List, Set, Tuple

from app.event.aggregate import OrganizerRecord, ParticipantRecord, SponsorRecord
from app.event.enums import AggregateKind
from app.event.ports.ledger_port import LedgerCoreRow, LedgerSnapshot

from tests.fakes.recording import RecordingFake

_in_transaction: ContextVar[bool] = ContextVar("fake_ledger_in_transaction", default=False)


class FakeLedger(RecordingFake):
    """
    Fake implementation of LedgerPort.

    Transactions snapshot the tables on entry and restore them on any
    error, including an injected "commit" failure raised on clean exit.

    Usage:
        ledger = FakeLedger()
        ledger.add_ngo(7)
        ledger.configure_failure("commit", OSError("connection reset"))
    """

    def __init__(self):
        super().__init__()
        self.cores: Dict[AggregateKind, Dict[int, LedgerCoreRow]] = {
            AggregateKind.EVENT: {},
            AggregateKind.MEGA_EVENT: {},
        }
        self.participants: Dict[Tuple[AggregateKind, int, int], ParticipantRecord] = {}
        self.sponsors: Dict[Tuple[AggregateKind, int, int], SponsorRecord] = {}
        self.organizers: Dict[Tuple[int, int], OrganizerRecord] = {}
        self.active_ngos: Set[int] = set()
        self._next_id = 1
        self.commits = 0
        self.rollbacks = 0

    # =========================================================================
    # Test Setup Methods
    # =========================================================================

    def add_ngo(self, *ngo_ids: int) -> None:
        self.active_ngos.update(ngo_ids)

    def core(self, kind: AggregateKind, ledger_id: int) -> LedgerCoreRow:
        return self.cores[AggregateKind(kind)][ledger_id]

    def drop_core(self, kind: AggregateKind, ledger_id: int) -> None:
        """Remove a core row behind the application's back"""
        del self.cores[AggregateKind(kind)][ledger_id]

    def _tables(self):
        return (self.cores, self.participants, self.sponsors, self.organizers, self._next_id)

    def _restore(self, snapshot) -> None:
        self.cores, self.participants, self.sponsors, self.organizers, self._next_id = snapshot

    # =========================================================================
    # LedgerPort
    # =========================================================================

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if _in_transaction.get():
            yield
            return

        self._touch("transaction")
        snapshot = copy.deepcopy(self._tables())
        token = _in_transaction.set(True)
        try:
            yield
            self._raise_if_configured("commit")
        except BaseException:
            self._restore(snapshot)
            self.rollbacks += 1
            raise
        finally:
            _in_transaction.reset(token)
        self.commits += 1

    async def insert_core(self, kind: AggregateKind, row: LedgerCoreRow) -> int:
        self._touch("insert_core", kind, row)
        ledger_id = self._next_id
        self._next_id += 1
        self.cores[AggregateKind(kind)][ledger_id] = row
        return ledger_id

    async def update_core(self, kind: AggregateKind, ledger_id: int, row: LedgerCoreRow) -> None:
        self._touch("update_core", kind, ledger_id, row)
        table = self.cores[AggregateKind(kind)]
        if ledger_id in table:
            table[ledger_id] = row

    async def delete_rows(self, kind: AggregateKind, ledger_id: int) -> None:
        self._touch("delete_rows", kind, ledger_id)
        kind = AggregateKind(kind)
        self.sponsors = {k: v for k, v in self.sponsors.items() if k[:2] != (kind, ledger_id)}
        if kind == AggregateKind.MEGA_EVENT:
            self.organizers = {k: v for k, v in self.organizers.items() if k[0] != ledger_id}
        self.participants = {k: v for k, v in self.participants.items() if k[:2] != (kind, ledger_id)}
        self.cores[kind].pop(ledger_id, None)

    async def list_core(self, kind: AggregateKind) -> List[LedgerSnapshot]:
        self._touch("list_core", kind)
        return [
            LedgerSnapshot(
                ledger_id=ledger_id,
                document_id=row.document_id,
                title=row.title,
                state=row.state,
                active=row.active,
            )
            for ledger_id, row in sorted(self.cores[AggregateKind(kind)].items())
        ]

    async def core_exists(self, kind: AggregateKind, ledger_id: int) -> bool:
        self._touch("core_exists", kind, ledger_id)
        return ledger_id in self.cores[AggregateKind(kind)]

    async def upsert_participant(self, kind: AggregateKind, ledger_id: int, record: ParticipantRecord) -> None:
        self._touch("upsert_participant", kind, ledger_id, record)
        self.participants[(AggregateKind(kind), ledger_id, record.member_id)] = record.model_copy()

    async def upsert_sponsor(self, kind: AggregateKind, ledger_id: int, record: SponsorRecord) -> None:
        self._touch("upsert_sponsor", kind, ledger_id, record)
        self.sponsors[(AggregateKind(kind), ledger_id, record.company_id)] = record.model_copy()

    async def upsert_organizer(self, ledger_id: int, record: OrganizerRecord) -> None:
        self._touch("upsert_organizer", ledger_id, record)
        self.organizers[(ledger_id, record.ngo_id)] = record.model_copy()

    async def is_active_ngo(self, user_id: int) -> bool:
        self._touch("is_active_ngo", user_id)
        return user_id in self.active_ngos

    # =========================================================================
    # Helpers for assertions
    # =========================================================================

    def with_title(self, kind: AggregateKind, ledger_id: int, title: str) -> None:
        """Make a core row stale by changing its mirrored title"""
        table = self.cores[AggregateKind(kind)]
        table[ledger_id] = replace(table[ledger_id], title=title)
