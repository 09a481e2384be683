# =============================================================================
# File: app/infra/persistence/redis_client.py
# Description: Process-wide Redis connection backing the distributed
#              aggregate lock. Only opened when AGGREGATE_LOCK_BACKEND=redis.
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.config.redis_config import RedisConfig, get_redis_config
from app.config.reliability_config import ReliabilityConfigs
from app.infra.persistence.probe import timed_probe
from app.infra.reliability.retry import retry_async

log = logging.getLogger("eventhub.redis")

_client: Optional[redis.Redis] = None
_init_lock = asyncio.Lock()


def _connect(config: RedisConfig, overrides: Dict[str, Any]) -> redis.Redis:
    password = config.password.get_secret_value() if config.password is not None else None
    return redis.from_url(
        config.redis_url,
        password=password,
        decode_responses=config.decode_responses,
        socket_timeout=config.socket_timeout,
        socket_connect_timeout=config.socket_connect_timeout,
        health_check_interval=config.health_check_interval,
        max_connections=config.max_connections,
        **overrides,
    )


async def init_global_client(config: Optional[RedisConfig] = None, **overrides: Any) -> redis.Redis:
    """Open the shared client once. A stale client that no longer answers PING is replaced."""
    global _client

    async with _init_lock:
        if _client is not None:
            try:
                await _client.ping()
                return _client
            except (RedisError, OSError) as e:
                log.warning(f"Existing Redis client is dead ({e}); reconnecting")
                await _client.aclose()
                _client = None

        candidate = _connect(config or get_redis_config(), overrides)
        try:
            await retry_async(candidate.ping, retry_config=ReliabilityConfigs.redis_retry(), context="redis ping")
        except Exception:
            await candidate.aclose()
            raise
        _client = candidate
        log.info("Redis connected for aggregate locks")
        return _client


def get_global_client() -> redis.Redis:
    if _client is None:
        raise RuntimeError("Redis is not connected; AGGREGATE_LOCK_BACKEND=redis needs init_global_client()")
    return _client


async def close_global_client() -> None:
    global _client
    if _client is None:
        return
    try:
        await _client.aclose()
    except (RedisError, OSError) as e:
        log.warning(f"Redis close failed: {e}")
    finally:
        _client = None


async def health_check() -> Dict[str, Any]:
    if _client is None:
        return {"healthy": False, "error": "not initialized"}
    return await timed_probe(_client.ping)
