# app/core/startup/infrastructure.py
# =============================================================================
# File: app/core/startup/infrastructure.py
# Description: Store initialization (ledger, document store, Redis, locks)
# =============================================================================

import logging
from app.core.fastapi_types import FastAPI

from app.config.mongo_config import get_document_store_config
from app.config.pg_client_config import get_ledger_config
from app.config.reliability_config import LockBackend, get_aggregate_lock_config
from app.infra.document_store.mongo_document_store import MongoDocumentStore
from app.infra.ledger.ledger_adapter import PostgresLedgerAdapter
from app.infra.persistence.mongo_client import init_client as init_mongo, get_database
from app.infra.persistence.pg_client import init_pool, run_schema_from_file
from app.infra.persistence.redis_client import init_global_client as init_redis
from app.infra.reliability.aggregate_lock import AggregateLockManager

logger = logging.getLogger("eventhub.startup.infrastructure")


async def initialize_ledger(app: FastAPI) -> None:
    """PostgreSQL pool, plus the idempotent schema when configured"""
    config = get_ledger_config()
    logger.debug(f"Ledger settings: {config.summary()}")
    await init_pool()
    logger.info("Ledger pool initialized.")

    if config.run_schema_on_startup:
        await run_database_schemas(config.schema_path)

    app.state.ledger = PostgresLedgerAdapter()


async def initialize_document_store(app: FastAPI) -> None:
    config = get_document_store_config()
    logger.debug(f"Document store settings: {config.summary()}")
    await init_mongo(config)
    documents = MongoDocumentStore(get_database(), config)

    if config.ensure_indexes_on_startup:
        await documents.ensure_indexes()
        logger.info("Document store indexes ensured.")

    app.state.documents = documents
    logger.info(f"Document store initialized (database: {config.database})")


async def initialize_locking(app: FastAPI) -> None:
    """Redis is only needed when aggregate locks are shared between workers"""
    config = get_aggregate_lock_config()
    if LockBackend(config.backend) == LockBackend.REDIS:
        await init_redis()
        app.state.redis_enabled = True
        logger.info("Global Redis client initialized for aggregate locks.")
    else:
        logger.info("Aggregate locks are process-local (AGGREGATE_LOCK_BACKEND=local)")

    app.state.lock_manager = AggregateLockManager(config)


async def run_database_schemas(schema_path: str) -> None:
    try:
        await run_schema_from_file(schema_path)
        logger.info("Ledger schema checked/applied.")
    except FileNotFoundError:
        logger.warning(f"Ledger schema file {schema_path} not found, skipping schema run.")
