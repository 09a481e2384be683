# =============================================================================
# File: app/infra/document_store/mongo_document_store.py
# Description: MongoDB implementation of DocumentStorePort
# =============================================================================

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import ConnectionFailure, NetworkTimeout, ServerSelectionTimeoutError

from app.config.mongo_config import DocumentStoreConfig, get_document_store_config
from app.event.aggregate import Aggregate, aggregate_from_document
from app.event.enums import AggregateKind
from app.event.exceptions import ConcurrencyConflict, StoreUnavailable

log = logging.getLogger("eventhub.document_store")

UNAVAILABLE_ERRORS = (ConnectionFailure, ServerSelectionTimeoutError, NetworkTimeout)


@asynccontextmanager
async def _store_errors() -> AsyncIterator[None]:
    try:
        yield
    except UNAVAILABLE_ERRORS as e:
        raise StoreUnavailable("document store", e) from e


def _owner_field(kind: AggregateKind) -> str:
    return "principal_ngo_id" if kind == AggregateKind.MEGA_EVENT else "ngo_id"


class MongoDocumentStore:
    """One collection per aggregate kind. Document ids are ObjectId hex strings."""

    def __init__(self, database: AsyncDatabase, config: Optional[DocumentStoreConfig] = None):
        self.config = config or get_document_store_config()
        self._collections: Dict[AggregateKind, AsyncCollection] = {
            AggregateKind.EVENT: database[self.config.events_collection],
            AggregateKind.MEGA_EVENT: database[self.config.mega_events_collection],
        }

    def _collection(self, kind: AggregateKind) -> AsyncCollection:
        return self._collections[AggregateKind(kind)]

    @staticmethod
    def _object_id(aggregate_id: str) -> Optional[ObjectId]:
        return ObjectId(aggregate_id) if ObjectId.is_valid(aggregate_id) else None

    def new_id(self) -> str:
        return str(ObjectId())

    async def ensure_indexes(self) -> None:
        for kind, collection in self._collections.items():
            async with _store_errors():
                await collection.create_index([("active", ASCENDING), ("state", ASCENDING)])
                await collection.create_index([(_owner_field(kind), ASCENDING)])
                await collection.create_index([("start", DESCENDING)])
        log.info("Document store indexes ensured")

    # =========================================================================
    # Writes
    # =========================================================================

    async def insert(self, kind: AggregateKind, aggregate: Aggregate) -> None:
        document: Dict[str, Any] = {"_id": ObjectId(aggregate.id), **aggregate.to_document()}
        async with _store_errors():
            await self._collection(kind).insert_one(document)
        log.debug(f"Inserted {kind} document {aggregate.id}")

    async def save(self, kind: AggregateKind, aggregate: Aggregate, expected_version: int) -> None:
        oid = self._object_id(aggregate.id)
        async with _store_errors():
            result = await self._collection(kind).replace_one(
                {"_id": oid, "version": expected_version},
                aggregate.to_document(),
            )
        if result.matched_count == 0:
            raise ConcurrencyConflict(aggregate.id, expected_version)

    async def delete(self, kind: AggregateKind, aggregate_id: str) -> bool:
        oid = self._object_id(aggregate_id)
        if oid is None:
            return False
        async with _store_errors():
            result = await self._collection(kind).delete_one({"_id": oid})
        return result.deleted_count == 1

    # =========================================================================
    # Reads
    # =========================================================================

    async def get(self, kind: AggregateKind, aggregate_id: str) -> Optional[Aggregate]:
        oid = self._object_id(aggregate_id)
        if oid is None:
            return None
        async with _store_errors():
            document = await self._collection(kind).find_one({"_id": oid})
        if document is None:
            return None
        return aggregate_from_document(kind, document)

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
        query: Dict[str, Any] = {}
        if active_only:
            query["active"] = True
        if state is not None:
            query["state"] = state
        if ngo_id is not None:
            if kind == AggregateKind.MEGA_EVENT:
                query["$or"] = [
                    {"principal_ngo_id": ngo_id},
                    {"organizers": {"$elemMatch": {"ngo_id": ngo_id, "active": True}}},
                ]
            else:
                query["ngo_id"] = ngo_id

        cursor = self._collection(kind).find(query).sort("start", DESCENDING).skip(offset).limit(limit)
        async with _store_errors():
            documents = await cursor.to_list(length=limit)
        return [aggregate_from_document(kind, d) for d in documents]
