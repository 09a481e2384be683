# =============================================================================
# File: app/infra/persistence/mongo_client.py
# Description: Process-wide pymongo AsyncMongoClient for the aggregate
#              document store. Datetimes come back tz-aware (UTC).
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from app.config.mongo_config import DocumentStoreConfig, get_document_store_config
from app.config.reliability_config import ReliabilityConfigs
from app.infra.persistence.probe import timed_probe
from app.infra.reliability.retry import retry_async

log = logging.getLogger("eventhub.mongo")

_client: Optional[AsyncMongoClient] = None
_database_name: Optional[str] = None
_init_lock = asyncio.Lock()


async def init_client(config: Optional[DocumentStoreConfig] = None) -> AsyncMongoClient:
    global _client, _database_name

    async with _init_lock:
        if _client is not None:
            return _client

        config = config or get_document_store_config()
        candidate = AsyncMongoClient(
            config.uri.get_secret_value(),
            tz_aware=True,
            appname=config.app_name,
            maxPoolSize=config.max_pool_size,
            serverSelectionTimeoutMS=config.server_selection_timeout_ms,
            connectTimeoutMS=config.connect_timeout_ms,
            socketTimeoutMS=config.socket_timeout_ms,
        )
        try:
            await retry_async(
                candidate.admin.command, "ping",
                retry_config=ReliabilityConfigs.document_store_retry(),
                context="document store ping",
            )
        except Exception as e:
            log.critical(f"Document store unreachable: {e}")
            await candidate.close()
            raise

        _client, _database_name = candidate, config.database
        log.info(f"Document store connected, database '{config.database}'")
        return _client


def get_database() -> AsyncDatabase:
    if _client is None:
        raise RuntimeError("Document store is not connected; call init_client() first")
    return _client[_database_name]


async def close_client() -> None:
    global _client
    async with _init_lock:
        if _client is not None:
            await _client.close()
            _client = None
            log.info("Document store connection closed")


async def health_check() -> Dict[str, Any]:
    if _client is None:
        return {"healthy": False, "error": "not initialized"}
    return await timed_probe(lambda: _client.admin.command("ping"))
