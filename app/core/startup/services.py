# app/core/startup/services.py
# =============================================================================
# File: app/core/startup/services.py
# Description: Background services started after the handlers are registered
# =============================================================================

import logging
from datetime import timedelta

from app.core.fastapi_types import FastAPI

from app.config.reconciliation_config import get_reconciliation_config
from app.services.infrastructure.reconciliation_service import ReconciliationService

logger = logging.getLogger("eventhub.startup.services")


async def initialize_reconciliation(app: FastAPI) -> None:
    """Always available on demand; the periodic loop only when enabled"""
    config = get_reconciliation_config()
    deps = app.state.handler_deps

    service = ReconciliationService(
        ledger=deps.ledger,
        documents=deps.documents,
        lifecycle=deps.lifecycle,
        lock_manager=deps.lock_manager,
        clock=deps.clock,
        grace_period=timedelta(seconds=config.grace_seconds),
    )
    deps.reconciliation = service
    app.state.reconciliation = service

    if config.enabled:
        await service.start(config.interval_seconds)
    else:
        logger.info("Reconciliation loop disabled (RECONCILIATION_ENABLED != true)")
