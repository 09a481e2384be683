# =============================================================================
# File: app/infra/reliability/retry.py
# Description: Bounded retry with capped exponential backoff.
#              Used for store connection pings at startup and for replaying
#              document mutations that lost a version race.
# =============================================================================

import asyncio
import logging
import random
from typing import Awaitable, Callable, Iterator, Optional, TypeVar

from app.config.reliability_config import JitterMode, RetryConfig

logger = logging.getLogger("eventhub.retry")

T = TypeVar('T')


def _jittered(delay_ms: float, mode: JitterMode) -> float:
    if mode == JitterMode.FULL:
        return random.uniform(0, delay_ms)
    if mode == JitterMode.EQUAL:
        return delay_ms / 2 + random.uniform(0, delay_ms / 2)
    return delay_ms


def backoff_schedule(config: RetryConfig) -> Iterator[float]:
    """
    Seconds to sleep before each retry. Yields max_attempts - 1 values,
    doubling (by backoff_factor) from initial_delay_ms up to max_delay_ms.
    """
    mode = JitterMode(config.jitter_type) if config.jitter else JitterMode.NONE
    delay_ms = float(config.initial_delay_ms)
    for _ in range(config.max_attempts - 1):
        yield _jittered(min(delay_ms, config.max_delay_ms), mode) / 1000
        delay_ms *= config.backoff_factor


async def retry_async(
        func: Callable[..., Awaitable[T]],
        *args,
        retry_config: Optional[RetryConfig] = None,
        context: str = "operation",
        **kwargs
) -> T:
    """
    Await func(*args, **kwargs) until it succeeds or the attempts run out.

    Errors rejected by retry_config.retry_condition propagate immediately;
    the last error propagates once the schedule is exhausted.
    """
    config = retry_config or RetryConfig()
    attempt = 1
    for pause in backoff_schedule(config):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if config.retry_condition is not None and not config.retry_condition(e):
                raise
            logger.info(
                f"{context}: attempt {attempt}/{config.max_attempts} failed "
                f"({type(e).__name__}: {e}), next try in {pause:.3f}s"
            )
        await asyncio.sleep(pause)
        attempt += 1

    try:
        return await func(*args, **kwargs)
    except Exception as e:
        if config.retry_condition is None or config.retry_condition(e):
            logger.warning(f"{context}: giving up after {attempt} attempts ({type(e).__name__}: {e})")
        raise
