# =============================================================================
# File: app/core/lifespan.py
# Description: Startup phases and graceful shutdown for the API process
# =============================================================================

import asyncio
import logging
from contextlib import asynccontextmanager

from app import __version__
from app.core.app_state import AppState
from app.core.fastapi_types import FastAPI
from app.core.shutdown import shutdown_all_services
from app.core.startup import (
    initialize_cqrs_and_handlers,
    initialize_document_store,
    initialize_ledger,
    initialize_locking,
    initialize_reconciliation,
)

logger = logging.getLogger("eventhub.lifespan")

SHUTDOWN_TIMEOUT_SECONDS = 30.0

# Order matters: handlers need both stores and the lock manager,
# reconciliation reuses the handler dependencies
STARTUP_PHASES = (
    ("ledger", initialize_ledger),
    ("document store", initialize_document_store),
    ("aggregate locks", initialize_locking),
    ("command/query handlers", initialize_cqrs_and_handlers),
    ("reconciliation", initialize_reconciliation),
)


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    logger.info(f"EventHub v{__version__} starting")
    app_instance.state = AppState()

    try:
        for number, (name, initialize) in enumerate(STARTUP_PHASES, start=1):
            logger.info(f"Phase {number}/{len(STARTUP_PHASES)}: {name}")
            await initialize(app_instance)
        logger.info(f"EventHub v{__version__} ready")
        yield
    except Exception as e:
        logger.critical(f"Startup aborted: {e}", exc_info=True)
        raise
    finally:
        try:
            async with asyncio.timeout(SHUTDOWN_TIMEOUT_SECONDS):
                await shutdown_all_services(app_instance)
            logger.info(f"EventHub v{__version__} stopped")
        except TimeoutError:
            logger.error(f"Shutdown exceeded {SHUTDOWN_TIMEOUT_SECONDS:.0f}s, abandoning remaining cleanup")
