# app/core/startup/cqrs.py
# =============================================================================
# File: app/core/startup/cqrs.py
# Description: CQRS initialization with automatic handler registration
# =============================================================================

import importlib
import logging
from app.core.fastapi_types import FastAPI

from app.config.event_config import get_event_limits
from app.event.lifecycle import LifecycleEngine
from app.event.registration import RegistrationEngine
from app.event.value_objects import utc_now
from app.infra.cqrs.command_bus import CommandBus
from app.infra.cqrs.decorators import auto_register_all_handlers, get_registered_handlers
from app.infra.cqrs.handler_dependencies import HandlerDependencies
from app.infra.cqrs.query_bus import QueryBus
from app.infra.images.image_ingestion import PassthroughImageIngestion
from app.services.application.dual_write_coordinator import DualWriteCoordinator

logger = logging.getLogger("eventhub.startup.cqrs")

# Importing these modules runs the @command_handler / @query_handler decorators
HANDLER_MODULES = (
    "app.event.command_handlers",
    "app.event.query_handlers",
)


def import_handler_modules() -> None:
    for module_name in HANDLER_MODULES:
        importlib.import_module(module_name)
        logger.debug(f"Imported handlers from {module_name}")


def build_handler_dependencies(app: FastAPI) -> HandlerDependencies:
    """Wire the domain engines and the coordinator over the initialized stores"""
    limits = get_event_limits()
    clock = utc_now
    lifecycle = LifecycleEngine(clock)
    coordinator = DualWriteCoordinator(
        ledger=app.state.ledger,
        documents=app.state.documents,
        lifecycle=lifecycle,
        lock_manager=app.state.lock_manager,
        limits=limits,
        clock=clock,
    )
    return HandlerDependencies(
        ledger=app.state.ledger,
        documents=app.state.documents,
        image_ingestion=PassthroughImageIngestion(limits),
        coordinator=coordinator,
        lifecycle=lifecycle,
        registration=RegistrationEngine(limits, clock),
        lock_manager=app.state.lock_manager,
        limits=limits,
        clock=clock,
    )


async def initialize_cqrs_and_handlers(app: FastAPI) -> None:
    """Create both buses and register every decorated handler"""
    logger.info("Starting CQRS initialization with auto-registration")

    app.state.command_bus = CommandBus()
    app.state.query_bus = QueryBus()

    import_handler_modules()
    discovered = get_registered_handlers()
    logger.info(
        f"Discovered {len(discovered['commands'])} commands and "
        f"{len(discovered['queries'])} queries via decorators"
    )

    handler_deps = build_handler_dependencies(app)
    app.state.handler_deps = handler_deps

    app.state.cqrs_registration_stats = auto_register_all_handlers(
        command_bus=app.state.command_bus,
        query_bus=app.state.query_bus,
        dependencies=handler_deps,
    )

    app.state.command_bus.validate_registrations()

    command_info = app.state.command_bus.get_handler_info()
    query_info = app.state.query_bus.get_handler_info()
    logger.info(f"Command bus: {command_info['total_handlers']} handlers")
    logger.info(f"Query bus: {query_info['total_handlers']} handlers")
