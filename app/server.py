# =============================================================================
# File: app/server.py
# Project: EventHub
# Description: ASGI entry point (granian --interface asgi app.server:app)
# =============================================================================

from __future__ import annotations

import logging

from dotenv import load_dotenv

# .env must reach os.environ before any settings class is instantiated
load_dotenv()

from app import __version__  # noqa: E402
from app.config.api_config import get_api_config  # noqa: E402
from app.config.logging_config import setup_logging  # noqa: E402
from app.core.exceptions import setup_exception_handlers  # noqa: E402
from app.core.fastapi_types import FastAPI  # noqa: E402
from app.core.lifespan import lifespan  # noqa: E402
from app.core.middleware import setup_middleware  # noqa: E402
from app.core.routes import setup_routes  # noqa: E402

_api_config = get_api_config()
setup_logging(
    service_name="api",
    log_file=_api_config.log_file,
    enable_json=_api_config.is_production,
)

logger = logging.getLogger("eventhub.server")


def create_app(with_lifespan: bool = True) -> FastAPI:
    """Tests build the app without lifespan and put their own buses on app.state"""
    application = FastAPI(
        title="EventHub API",
        description="Lifecycle, registration and sponsorship for NGO events and mega-events",
        version=__version__,
        lifespan=lifespan if with_lifespan else None,
    )
    setup_middleware(application)
    setup_routes(application)
    setup_exception_handlers(application)
    return application


app = create_app()


if __name__ == "__main__":
    import subprocess

    command = [
        "granian", "--interface", "asgi", "app.server:app",
        "--host", _api_config.host, "--port", str(_api_config.port),
    ]
    if _api_config.reload:
        command += ["--reload", "--reload-paths", "app/"]
    logger.info(f"Dev server on {_api_config.host}:{_api_config.port}")
    subprocess.run(command, check=False)
