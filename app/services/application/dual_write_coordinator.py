# =============================================================================
# File: app/services/application/dual_write_coordinator.py
# Description: Makes one logical write span the relational ledger and the
#              document store.
#
#   create: ledger-first and strict. The document is written inside the open
#           ledger transaction; a document failure rolls the ledger back, a
#           failed commit deletes the just-written document.
#   update: document-first. The conditional save is authoritative; the
#           ledger mirror afterwards is best-effort (logged, swallowed).
#   delete: ledger rows removed in one transaction, then the document is
#           soft-deleted (active=False, state=cancelled).
#
# Mutations of one aggregate are serialized by AggregateLockManager and
# guarded by a version-conditional save with bounded retry.
# =============================================================================

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

from app.config.event_config import EventLimitsConfig
from app.config.reliability_config import ReliabilityConfigs, RetryConfig
from app.event.aggregate import Aggregate, MegaEventAggregate, validate_aggregate
from app.event.authorization import ensure_owner
from app.event.enums import AggregateKind
from app.event.exceptions import ConcurrencyConflict, DualWriteFailure, HasDependents, NotFound
from app.event.lifecycle import LifecycleEngine
from app.event.ports.document_store_port import DocumentStorePort
from app.event.ports.ledger_port import LedgerPort, core_row_from
from app.event.value_objects import Actor, utc_now
from app.infra.reliability.aggregate_lock import AggregateLockManager
from app.infra.reliability.retry import retry_async

log = logging.getLogger("eventhub.dual_write")

T = TypeVar("T")

Mutator = Callable[[Aggregate], T]
Mirror = Callable[[Aggregate, Any], Awaitable[None]]

DELETED_REASON = "deleted"


class _DocumentWriteFailed(Exception):
    """Raised inside the ledger transaction so that it rolls back"""

    def __init__(self, cause: BaseException):
        super().__init__(str(cause))
        self.cause = cause


def _is_version_conflict(error: Exception) -> bool:
    return isinstance(error, ConcurrencyConflict)


class DualWriteCoordinator:
    def __init__(
            self,
            ledger: LedgerPort,
            documents: DocumentStorePort,
            lifecycle: LifecycleEngine,
            lock_manager: AggregateLockManager,
            limits: EventLimitsConfig,
            clock: Callable[[], datetime] = utc_now,
            conflict_retry: Optional[RetryConfig] = None,
    ):
        self.ledger = ledger
        self.documents = documents
        self.lifecycle = lifecycle
        self.lock_manager = lock_manager
        self.limits = limits
        self._clock = clock

        retry = conflict_retry or ReliabilityConfigs.version_conflict_retry(lock_manager.config)
        self._conflict_retry = retry.model_copy(update={"retry_condition": _is_version_conflict})

    @staticmethod
    def lock_key(kind: AggregateKind, aggregate_id: str) -> str:
        return f"{AggregateKind(kind).value}:{aggregate_id}"

    async def load(self, kind: AggregateKind, aggregate_id: str) -> Aggregate:
        """Active aggregate or NotFound"""
        aggregate = await self.documents.get(kind, aggregate_id)
        if aggregate is None or not aggregate.active:
            raise NotFound(AggregateKind(kind).value, aggregate_id)
        return aggregate

    # =========================================================================
    # Create
    # =========================================================================

    async def create(self, aggregate: Aggregate, actor: Optional[Actor]) -> Aggregate:
        validate_aggregate(aggregate, self.limits)

        kind = AggregateKind(aggregate.kind)
        now = self._clock()
        aggregate.id = self.documents.new_id()
        aggregate.version = 0
        aggregate.created_at = now
        aggregate.updated_at = now
        aggregate.created_by = actor.actor_id if actor else None
        self.lifecycle.record_creation(aggregate, actor)
        aggregate.recompute_metrics()

        document_written = False
        try:
            async with self.ledger.transaction():
                aggregate.ledger_id = await self.ledger.insert_core(kind, core_row_from(aggregate))
                if isinstance(aggregate, MegaEventAggregate):
                    for organizer in aggregate.organizers:
                        await self.ledger.upsert_organizer(aggregate.ledger_id, organizer)
                for sponsor in aggregate.sponsors:
                    await self.ledger.upsert_sponsor(kind, aggregate.ledger_id, sponsor)

                try:
                    await self.documents.insert(kind, aggregate)
                except Exception as e:
                    raise _DocumentWriteFailed(e) from e
                document_written = True

        except _DocumentWriteFailed as e:
            log.error(f"Document write failed for new {kind.value} {aggregate.id}; ledger rolled back: {e.cause}")
            raise DualWriteFailure("create", e.cause) from e.cause

        except Exception as e:
            if not document_written:
                raise
            log.error(
                f"Ledger commit failed after {kind.value} document {aggregate.id} was written; "
                f"deleting the document: {e}"
            )
            await self._compensate_create(kind, aggregate.id)
            raise DualWriteFailure("create", e) from e

        log.info(f"Created {kind.value} {aggregate.id} (ledger id {aggregate.ledger_id})")
        return aggregate

    async def _compensate_create(self, kind: AggregateKind, aggregate_id: str) -> None:
        try:
            await self.documents.delete(kind, aggregate_id)
        except Exception as e:
            log.error(
                f"Compensating delete of {kind.value} document {aggregate_id} failed; "
                f"left for reconciliation: {e}",
                exc_info=True,
            )

    # =========================================================================
    # Update
    # =========================================================================

    async def mutate(
            self,
            kind: AggregateKind,
            aggregate_id: str,
            mutator: Mutator,
            *,
            operation: str,
            mirror: Optional[Mirror] = None,
    ) -> Tuple[Aggregate, Any]:
        """
        Load, mutate and save one aggregate under its lock.

        The mutator runs against a freshly loaded aggregate and may raise any
        domain error; nothing is saved in that case. Its return value is
        handed back to the caller and to the optional mirror.
        """
        kind = AggregateKind(kind)
        async with self.lock_manager.hold(self.lock_key(kind, aggregate_id)):
            aggregate, result = await retry_async(
                self._apply,
                kind,
                aggregate_id,
                mutator,
                retry_config=self._conflict_retry,
                context=f"{operation} on {kind.value} {aggregate_id}",
            )
            await self._mirror(kind, aggregate, result, operation, mirror)
        return aggregate, result

    async def _apply(self, kind: AggregateKind, aggregate_id: str, mutator: Mutator) -> Tuple[Aggregate, Any]:
        aggregate = await self.load(kind, aggregate_id)
        expected = aggregate.version

        result = mutator(aggregate)
        aggregate.recompute_metrics()

        aggregate.version = expected + 1
        aggregate.updated_at = self._clock()
        await self.documents.save(kind, aggregate, expected_version=expected)
        return aggregate, result

    async def _mirror(
            self,
            kind: AggregateKind,
            aggregate: Aggregate,
            result: Any,
            operation: str,
            mirror: Optional[Mirror],
    ) -> None:
        if aggregate.ledger_id is None:
            log.warning(f"{kind.value} {aggregate.id} has no ledger id; skipping mirror of {operation}")
            return
        try:
            await self.ledger.update_core(kind, aggregate.ledger_id, core_row_from(aggregate))
            if mirror is not None:
                await mirror(aggregate, result)
        except Exception as e:
            log.warning(
                f"Ledger mirror of {operation} on {kind.value} {aggregate.id} failed; "
                f"document store remains authoritative: {e}",
                exc_info=True,
            )

    # =========================================================================
    # Delete
    # =========================================================================

    async def delete(
            self,
            kind: AggregateKind,
            aggregate_id: str,
            actor: Actor,
            reason: Optional[str] = None,
    ) -> Aggregate:
        kind = AggregateKind(kind)
        async with self.lock_manager.hold(self.lock_key(kind, aggregate_id)):
            aggregate = await self.load(kind, aggregate_id)
            ensure_owner(aggregate, actor, f"delete this {kind.value}")

            if aggregate.participants:
                raise HasDependents(aggregate.id, len(aggregate.participants))

            if aggregate.ledger_id is not None:
                async with self.ledger.transaction():
                    await self.ledger.delete_rows(kind, aggregate.ledger_id)

            expected = aggregate.version
            self.lifecycle.force_cancel(aggregate, actor, reason or DELETED_REASON)
            aggregate.version = expected + 1
            aggregate.updated_at = self._clock()
            try:
                await self.documents.save(kind, aggregate, expected_version=expected)
            except Exception as e:
                log.error(
                    f"Ledger rows of {kind.value} {aggregate.id} deleted but the document soft-delete failed; "
                    f"left for reconciliation: {e}"
                )
                raise DualWriteFailure("delete", e) from e

        log.info(f"Deleted {kind.value} {aggregate.id} by {actor.actor_id}")
        return aggregate
