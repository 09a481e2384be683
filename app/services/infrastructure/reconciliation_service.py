# =============================================================================
# File: app/services/infrastructure/reconciliation_service.py
# Description: Detects and repairs drift between the ledger and the
#              document store.
#
# The document store is authoritative for live state:
#   - stale ledger mirrors (title / state / active) are rewritten from the
#     document
#   - active documents whose ledger core row is gone are soft-deleted
#     (finishes a delete whose document step failed). Documents created
#     within the grace period before the pass are left alone, and the row
#     is looked up again under the aggregate lock before deleting
#   - active documents without a ledger id, and ledger rows without a
#     document, are reported
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from app.event.aggregate import Aggregate
from app.event.enums import ActorRole, AggregateKind
from app.event.exceptions import ConcurrencyConflict
from app.event.lifecycle import LifecycleEngine
from app.event.ports.document_store_port import DocumentStorePort
from app.event.ports.ledger_port import LedgerPort, core_row_from
from app.event.value_objects import Actor, utc_now
from app.infra.reliability.aggregate_lock import AggregateLockManager

logger = logging.getLogger("eventhub.reconciliation")

RECONCILER = Actor(actor_id="system:reconciliation", role=ActorRole.SUPER_ADMIN)
LEDGER_ROW_MISSING_REASON = "ledger row missing"

_PAGE_SIZE = 200
DEFAULT_GRACE_PERIOD = timedelta(minutes=2)


@dataclass
class ReconciliationReport:
    kind: str
    checked: int = 0
    mirrors_repaired: List[str] = field(default_factory=list)
    documents_soft_deleted: List[str] = field(default_factory=list)
    documents_without_ledger_id: List[str] = field(default_factory=list)
    ledger_rows_without_document: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not (
            self.mirrors_repaired
            or self.documents_soft_deleted
            or self.documents_without_ledger_id
            or self.ledger_rows_without_document
            or self.errors
        )


class ReconciliationService:
    def __init__(
            self,
            ledger: LedgerPort,
            documents: DocumentStorePort,
            lifecycle: LifecycleEngine,
            lock_manager: AggregateLockManager,
            clock: Callable[[], datetime] = utc_now,
            grace_period: timedelta = DEFAULT_GRACE_PERIOD,
    ):
        self.ledger = ledger
        self.documents = documents
        self.lifecycle = lifecycle
        self.lock_manager = lock_manager
        self._clock = clock
        self.grace_period = grace_period
        self._task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    async def reconcile(self, kind: AggregateKind) -> ReconciliationReport:
        kind = AggregateKind(kind)
        report = ReconciliationReport(kind=kind.value)

        # Anything created after this may not be in the snapshot below
        settled_before = self._clock() - self.grace_period
        rows = {row.document_id: row for row in await self.ledger.list_core(kind)}
        seen_documents = set()

        offset = 0
        while True:
            page = await self.documents.list(kind, active_only=False, limit=_PAGE_SIZE, offset=offset)
            for aggregate in page:
                report.checked += 1
                seen_documents.add(aggregate.id)
                row = rows.get(aggregate.id)
                try:
                    if aggregate.ledger_id is None:
                        if aggregate.active:
                            report.documents_without_ledger_id.append(aggregate.id)
                    elif row is None:
                        if aggregate.active and aggregate.created_at <= settled_before:
                            if await self._soft_delete(kind, aggregate):
                                report.documents_soft_deleted.append(aggregate.id)
                    elif (row.title, row.state, row.active) != (aggregate.title or "", aggregate.state, aggregate.active):
                        await self.ledger.update_core(kind, aggregate.ledger_id, core_row_from(aggregate))
                        report.mirrors_repaired.append(aggregate.id)
                except Exception as e:
                    logger.error(f"Reconciliation of {kind.value} {aggregate.id} failed: {e}", exc_info=True)
                    report.errors.append(f"{aggregate.id}: {e}")
            if len(page) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE

        report.ledger_rows_without_document = sorted(
            row.ledger_id for document_id, row in rows.items() if document_id not in seen_documents
        )

        if report.clean:
            logger.debug(f"Reconciliation of {kind.value}: {report.checked} checked, no drift")
        else:
            logger.warning(
                f"Reconciliation of {kind.value}: {report.checked} checked, "
                f"{len(report.mirrors_repaired)} mirrors repaired, "
                f"{len(report.documents_soft_deleted)} soft-deleted, "
                f"{len(report.documents_without_ledger_id)} without ledger id, "
                f"{len(report.ledger_rows_without_document)} ledger rows without document, "
                f"{len(report.errors)} errors"
            )
        return report

    async def reconcile_all(self) -> Dict[str, ReconciliationReport]:
        return {kind.value: await self.reconcile(kind) for kind in AggregateKind}

    async def _soft_delete(self, kind: AggregateKind, listed: Aggregate) -> bool:
        aggregate_id = listed.id
        async with self.lock_manager.hold(f"{kind.value}:{aggregate_id}"):
            if await self.ledger.core_exists(kind, listed.ledger_id):
                logger.info(f"{kind.value} {aggregate_id} has a ledger row after all; left active")
                return False
            aggregate = await self.documents.get(kind, aggregate_id)
            if aggregate is None or not aggregate.active:
                return False
            expected = aggregate.version
            self.lifecycle.force_cancel(aggregate, RECONCILER, LEDGER_ROW_MISSING_REASON)
            aggregate.version = expected + 1
            aggregate.updated_at = self._clock()
            try:
                await self.documents.save(kind, aggregate, expected_version=expected)
            except ConcurrencyConflict:
                logger.info(f"{kind.value} {aggregate_id} changed during reconciliation; retrying next pass")
                raise
        return True

    # =========================================================================
    # Background loop
    # =========================================================================

    async def start(self, interval_seconds: float) -> None:
        if self._task is not None and not self._task.done():
            logger.warning("Reconciliation loop already running")
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._loop(interval_seconds), name="reconciliation")
        logger.info(f"Reconciliation loop started (every {interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._stop.set()
        await self._task
        self._task = None
        logger.info("Reconciliation loop stopped")

    async def _loop(self, interval_seconds: float) -> None:
        while not self._stop.is_set():
            try:
                await self.reconcile_all()
            except Exception as e:
                logger.error(f"Reconciliation pass failed: {e}", exc_info=True)
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
