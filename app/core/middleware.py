# =============================================================================
# File: app/core/middleware.py
# Description: HTTP middleware stack
# =============================================================================

import logging
import time

from fastapi import Request
from fastapi.middleware.cors import CORSMiddleware

from app.config.api_config import get_api_config
from app.core.fastapi_types import FastAPI

logger = logging.getLogger("eventhub.middleware")

# Mutating routes slower than this get a warning line
SLOW_REQUEST_MS = 1500


def setup_middleware(app: FastAPI) -> None:
    origins = get_api_config().origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=3600,
    )
    logger.info(f"CORS origins: {origins}")

    @app.middleware("http")
    async def flag_slow_writes(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        if request.method != "GET" and elapsed_ms > SLOW_REQUEST_MS:
            logger.warning(
                f"[SLOW REQUEST] {request.method} {request.url.path} -> "
                f"{response.status_code} in {elapsed_ms:.0f}ms"
            )
        return response
