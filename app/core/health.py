# =============================================================================
# File: app/core/health.py
# Description: /health and / endpoints
# =============================================================================

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from app import __version__
from app.core.app_state import get_start_time
from app.core.fastapi_types import FastAPI
from app.infra.persistence import mongo_client, pg_client, redis_client

logger = logging.getLogger("eventhub.health")


async def probe_stores(app: FastAPI) -> Dict[str, Dict[str, Any]]:
    stores = {
        "ledger": await pg_client.health_check(),
        "document_store": await mongo_client.health_check(),
    }
    if getattr(app.state, "redis_enabled", False):
        stores["redis"] = await redis_client.health_check()
    return stores


def bus_summary(app: FastAPI) -> Dict[str, Any]:
    summary: Dict[str, Any] = {}
    for name in ("command_bus", "query_bus"):
        bus = getattr(app.state, name, None)
        if bus is None:
            summary[name] = None
            continue
        metrics = bus.get_metrics()
        summary[name] = {
            "handlers": bus.get_handler_info()["total_handlers"],
            "handled": metrics["total"],
            "failed": sum(metrics["failed"].values()),
        }
    return summary


def register_health_endpoints(app: FastAPI) -> None:

    @app.get("/health", tags=["System"])
    async def health() -> Dict[str, Any]:
        """Degraded as soon as any configured store misses its ping"""
        stores = await probe_stores(app)
        healthy = all(s["healthy"] for s in stores.values())
        if not healthy:
            logger.warning(f"Degraded: {stores}")

        now = datetime.now(timezone.utc)
        lock_manager = getattr(app.state, "lock_manager", None)
        return {
            "status": "healthy" if healthy else "degraded",
            "version": __version__,
            "timestamp": now.isoformat(),
            "uptime_seconds": round((now - get_start_time()).total_seconds()),
            "stores": stores,
            "buses": bus_summary(app),
            "aggregate_locks": {
                "backend": lock_manager.backend.value if lock_manager else None,
                "held": lock_manager.held_keys() if lock_manager else 0,
            },
            "reconciliation": getattr(app.state, "reconciliation", None) is not None,
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, Any]:
        return {"name": "EventHub API", "version": __version__, "docs": "/docs", "health": "/health"}
