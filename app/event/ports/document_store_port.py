# =============================================================================
# File: app/event/ports/document_store_port.py
# Description: Port interface for the aggregate document store
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from app.event.aggregate import Aggregate
from app.event.enums import AggregateKind


@runtime_checkable
class DocumentStorePort(Protocol):
    """
    Port: Aggregate Document Store

    Defined by: Event Domain
    Implemented by: MongoDocumentStore (app/infra/document_store/mongo_document_store.py)

    Saves are conditional on the aggregate version so that two writers
    working from the same snapshot cannot silently overwrite each other.
    """

    def new_id(self) -> str:
        """Allocate a document id before the aggregate is written."""
        ...

    async def insert(self, kind: AggregateKind, aggregate: Aggregate) -> None:
        ...

    async def get(self, kind: AggregateKind, aggregate_id: str) -> Optional[Aggregate]:
        """Load by id, including soft-deleted aggregates. None when absent."""
        ...

    async def save(self, kind: AggregateKind, aggregate: Aggregate, expected_version: int) -> None:
        """
        Replace the stored aggregate if its version still equals
        expected_version.

        Raises:
            ConcurrencyConflict: another writer saved first
        """
        ...

    async def delete(self, kind: AggregateKind, aggregate_id: str) -> bool:
        """Hard delete. Only used to compensate a failed create."""
        ...

    async def list(
            self,
            kind: AggregateKind,
            *,
            active_only: bool = True,
            state: Optional[str] = None,
            ngo_id: Optional[int] = None,
            limit: int = 50,
            offset: int = 0,
    ) -> List[Aggregate]:
        ...
