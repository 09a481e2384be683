# =============================================================================
# File: app/infra/persistence/pg_client.py
# =============================================================================
# AsyncPG pool helper for the relational ledger.
#
# - One process-wide pool, created lazily under an asyncio.Lock
# - transaction() publishes its connection through a ContextVar so that
#   fetch/fetchrow/fetchval/execute issued inside it join the transaction
# - Pool acquisition has a bounded wait (LedgerConfig.pool_timeout)
# - Slow queries and long transactions are logged
# =============================================================================

from __future__ import annotations

import asyncio
import json
import logging
import pathlib
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, List, Optional

import asyncpg

from app.config.pg_client_config import LedgerConfig, get_ledger_config
from app.config.reliability_config import ReliabilityConfigs, RetryConfig
from app.infra.persistence.probe import timed_probe
from app.infra.reliability.retry import retry_async

log = logging.getLogger("eventhub.ledger.pg_client")

# Connection of the transaction open in the current task, if any
_current_transaction_connection: ContextVar[Optional[asyncpg.Connection]] = ContextVar(
    'ledger_transaction_connection', default=None
)

_POOL: Optional[asyncpg.Pool] = None
_POOL_LOCK = asyncio.Lock()


def get_config() -> LedgerConfig:
    return get_ledger_config()


def in_transaction() -> bool:
    return _current_transaction_connection.get() is not None


# =============================================================================
# Pool lifecycle
# =============================================================================

async def init_pool(dsn: Optional[str] = None, **pool_kwargs: Any) -> asyncpg.Pool:
    """Create the ledger pool once; later calls return the same pool."""
    global _POOL

    config = get_config()

    async with _POOL_LOCK:
        if _POOL is not None and not _POOL.is_closing():
            return _POOL

        dsn = dsn or config.get_dsn()

        async def init_connection(conn):
            await conn.set_type_codec('jsonb', encoder=json.dumps, decoder=json.loads, schema='pg_catalog')

        params = config.pool_params()
        params.update({"init": init_connection, **pool_kwargs})

        log.info(f"Initializing ledger pool (hidden DSN): {dsn.split('@')[-1]}")

        async def create_pool():
            pool = await asyncpg.create_pool(dsn=dsn, **params)
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return pool

        retry_config = RetryConfig(
            max_attempts=config.connection_retry_attempts,
            initial_delay_ms=config.connection_retry_delay_ms,
        )
        try:
            _POOL = await retry_async(create_pool, retry_config=retry_config, context="ledger pool initialization")
        except Exception as e:
            log.critical(f"Failed to init ledger pool: {e}", exc_info=True)
            _POOL = None
            raise

        log.info(f"Ledger pool ready. Min/Max size: {config.pool_min_size}/{config.pool_max_size}")
        return _POOL


async def get_pool() -> asyncpg.Pool:
    if _POOL is None or _POOL.is_closing():
        return await init_pool()
    return _POOL


async def close_pool() -> None:
    global _POOL
    async with _POOL_LOCK:
        if _POOL is not None:
            log.info("Closing ledger pool")
            await _POOL.close()
            _POOL = None


# =============================================================================
# Connections and transactions
# =============================================================================

@asynccontextmanager
async def acquire_connection() -> AsyncIterator[asyncpg.Connection]:
    """Acquire a pooled connection, waiting at most pool_timeout seconds."""
    pool = await get_pool()
    config = get_config()

    acquire_start = time.monotonic()
    async with pool.acquire(timeout=config.pool_timeout) as conn:
        acquire_ms = (time.monotonic() - acquire_start) * 1000
        if acquire_ms > config.slow_query_threshold_ms / 2:
            log.warning(f"[SLOW POOL ACQUIRE] ledger connection took {acquire_ms:.0f}ms")
        yield conn


@asynccontextmanager
async def transaction() -> AsyncIterator[asyncpg.Connection]:
    """
    Transaction context manager.

    Commits on clean exit, rolls back on exception. An exception raised by
    the COMMIT itself propagates out of the ``async with``.

    Usage:
        async with transaction() as conn:
            await execute("INSERT INTO ...")
    """
    if in_transaction():
        raise RuntimeError("Nested ledger transactions are not supported")

    config = get_config()
    async with acquire_connection() as conn:
        token = _current_transaction_connection.set(conn)
        tx_start = time.monotonic()
        try:
            async with conn.transaction():
                yield conn
        except Exception as e:
            log.warning(f"Ledger transaction rolled back or failed to commit: {e}")
            raise
        finally:
            _current_transaction_connection.reset(token)
            tx_ms = (time.monotonic() - tx_start) * 1000
            if tx_ms > config.long_transaction_threshold_ms:
                log.warning(f"[LONG TRANSACTION] ledger transaction took {tx_ms:.0f}ms")


# =============================================================================
# Query helpers
# =============================================================================

def _log_if_slow(kind: str, query: str, started: float) -> None:
    elapsed_ms = (time.monotonic() - started) * 1000
    if elapsed_ms > get_config().slow_query_threshold_ms:
        log.warning(f"[SLOW QUERY] {kind} took {elapsed_ms:.1f}ms: {query[:150]}")


async def _run(method: str, query: str, *args: Any, timeout: Optional[float] = None) -> Any:
    conn = _current_transaction_connection.get()
    started = time.monotonic()
    if conn is not None:
        result = await getattr(conn, method)(query, *args, timeout=timeout)
    else:
        async with acquire_connection() as pooled:
            result = await getattr(pooled, method)(query, *args, timeout=timeout)
    _log_if_slow(method.upper(), query, started)
    return result


async def fetch(query: str, *args: Any, timeout: Optional[float] = None) -> List[asyncpg.Record]:
    return await _run("fetch", query, *args, timeout=timeout)


async def fetchrow(query: str, *args: Any, timeout: Optional[float] = None) -> Optional[asyncpg.Record]:
    return await _run("fetchrow", query, *args, timeout=timeout)


async def fetchval(query: str, *args: Any, timeout: Optional[float] = None) -> Any:
    return await _run("fetchval", query, *args, timeout=timeout)


async def execute(query: str, *args: Any, timeout: Optional[float] = None) -> str:
    return await _run("execute", query, *args, timeout=timeout)


# =============================================================================
# Schema and health
# =============================================================================

async def run_schema_from_file(file_path_str: Optional[str] = None) -> None:
    """Execute a schema file. Statements are expected to be idempotent."""
    path = pathlib.Path(file_path_str or get_config().schema_path)
    if not path.exists():
        raise FileNotFoundError(f"Ledger schema file not found: {path}")

    sql = path.read_text(encoding="utf-8")
    async with acquire_connection() as conn:
        await conn.execute(sql)
    log.info(f"Ledger schema applied from {path}")


async def health_check() -> dict:
    return await timed_probe(lambda: retry_async(
        fetchval, "SELECT 1",
        retry_config=ReliabilityConfigs.ledger_retry(),
        context="ledger health check",
    ))
