# =============================================================================
# File: app/core/routes.py
# Description: Router registration
# =============================================================================

from app.api.routers.event_router import router as event_router
from app.api.routers.mega_event_router import router as mega_event_router
from app.api.routers.system_router import router as system_router
from app.core.fastapi_types import FastAPI
from app.core.health import register_health_endpoints


def setup_routes(app: FastAPI) -> None:
    app.include_router(event_router, tags=["Events"])
    app.include_router(mega_event_router, tags=["Mega-events"])
    app.include_router(system_router, tags=["System"])
    register_health_endpoints(app)
