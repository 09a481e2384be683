# =============================================================================
# File: app/infra/reliability/aggregate_lock.py
# Description: Per-aggregate serialization lock
#              Local backend: keyed asyncio.Lock (single process)
#              Redis backend: SET NX PX lock with Lua compare-and-delete
#              release (shared by all workers)
# =============================================================================

import asyncio
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional

from redis.exceptions import RedisError

from app.config.reliability_config import AggregateLockConfig, LockBackend, get_aggregate_lock_config
from app.event.exceptions import StoreUnavailable
from app.infra.persistence.redis_client import get_global_client

logger = logging.getLogger("eventhub.aggregate_lock")


@dataclass
class _LocalEntry:
    lock: asyncio.Lock
    waiters: int = 0


class AggregateLockManager:
    """
    Serializes mutations of one aggregate.

    Waiting is bounded by max_wait_ms; a timed out acquire raises
    StoreUnavailable("aggregate lock") so callers map it like any other
    unavailable dependency.

    Usage:
        async with lock_manager.hold(f"event:{event_id}"):
            ...
    """

    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(self, config: Optional[AggregateLockConfig] = None):
        self.config = config or get_aggregate_lock_config()
        self._local: Dict[str, _LocalEntry] = {}
        self.owner_id = f"{uuid.uuid4().hex[:8]}:{os.getpid()}"

    @property
    def backend(self) -> LockBackend:
        return LockBackend(self.config.backend)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        if self.backend == LockBackend.REDIS:
            async with self._hold_redis(key):
                yield
        else:
            async with self._hold_local(key):
                yield

    def held_keys(self) -> int:
        """Number of keys with a live local lock entry"""
        return len(self._local)

    # =========================================================================
    # Local backend
    # =========================================================================

    @asynccontextmanager
    async def _hold_local(self, key: str) -> AsyncIterator[None]:
        entry = self._local.get(key)
        if entry is None:
            entry = self._local[key] = _LocalEntry(lock=asyncio.Lock())
        entry.waiters += 1
        try:
            try:
                await asyncio.wait_for(entry.lock.acquire(), timeout=self.config.max_wait_ms / 1000)
            except asyncio.TimeoutError as e:
                logger.warning(f"Timed out waiting {self.config.max_wait_ms}ms for lock {key}")
                raise StoreUnavailable("aggregate lock", e) from e
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            entry.waiters -= 1
            if entry.waiters == 0 and self._local.get(key) is entry:
                del self._local[key]

    # =========================================================================
    # Redis backend
    # =========================================================================

    def _redis_key(self, key: str) -> str:
        return f"{self.config.namespace}:{key}"

    @asynccontextmanager
    async def _hold_redis(self, key: str) -> AsyncIterator[None]:
        redis_key = self._redis_key(key)
        value = f"{self.owner_id}:{uuid.uuid4().hex}"
        redis = get_global_client()

        deadline = time.monotonic() + self.config.max_wait_ms / 1000
        try:
            while True:
                if await redis.set(redis_key, value, nx=True, px=self.config.ttl_ms):
                    break
                if time.monotonic() >= deadline:
                    logger.warning(f"Timed out waiting {self.config.max_wait_ms}ms for lock {redis_key}")
                    raise StoreUnavailable("aggregate lock", asyncio.TimeoutError(redis_key))
                await asyncio.sleep(self.config.retry_delay_ms / 1000)
        except (RedisError, OSError) as e:
            raise StoreUnavailable("aggregate lock", e) from e

        logger.debug(f"Acquired lock {redis_key}")
        try:
            yield
        finally:
            try:
                released = await redis.eval(self.RELEASE_SCRIPT, 1, redis_key, value)
                if not released:
                    logger.warning(f"Lock {redis_key} expired before release")
            except Exception as e:
                logger.error(f"Error releasing lock {redis_key}: {e}")
