# =============================================================================
# File: app/core/shutdown.py
# Description: Reverse-order teardown of the reconciliation loop and stores
# =============================================================================

import asyncio
import logging
from typing import Awaitable, Callable, List, Tuple

from app.core.fastapi_types import FastAPI
from app.infra.persistence.mongo_client import close_client as close_mongo
from app.infra.persistence.pg_client import close_pool
from app.infra.persistence.redis_client import close_global_client as close_redis

logger = logging.getLogger("eventhub.shutdown")

RECONCILIATION_STOP_TIMEOUT = 10.0


async def shutdown_all_services(app: FastAPI) -> None:
    """Every step runs even if an earlier one fails; failures are only logged"""
    reconciliation = getattr(app.state, "reconciliation", None)
    if reconciliation is not None:
        try:
            async with asyncio.timeout(RECONCILIATION_STOP_TIMEOUT):
                await reconciliation.stop()
        except TimeoutError:
            logger.error("Reconciliation pass did not stop in time; leaving it to be cancelled")

    steps: List[Tuple[str, Callable[[], Awaitable[None]]]] = [
        ("document store", close_mongo),
        ("ledger pool", close_pool),
    ]
    if getattr(app.state, "redis_enabled", False):
        steps.append(("redis", close_redis))

    for name, close in steps:
        try:
            await close()
            logger.info(f"Closed {name}")
        except Exception as e:
            logger.error(f"Closing {name} failed: {e}")
