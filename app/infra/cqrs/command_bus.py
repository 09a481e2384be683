# =============================================================================
# File: app/infra/cqrs/command_bus.py
# Description: Command bus for event / mega-event mutations.
#              Every command runs through logging, actor check and outcome
#              metrics before reaching its single registered handler.
# =============================================================================

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Type

from pydantic import BaseModel, Field

from app.infra.cqrs.pipeline import (
    HandlerRegistry,
    LoggingMiddleware,
    Middleware,
    OutcomeMetricsMiddleware,
    build_chain,
    describe,
)

log = logging.getLogger("eventhub.cqrs.command")


class Command(BaseModel):
    """A request to change an event or mega-event. Validated on construction."""
    command_id: uuid.UUID = Field(default_factory=uuid.uuid4)


class ICommandHandler(ABC):

    @abstractmethod
    async def handle(self, command: Command) -> Any:
        pass


class ActorPresenceMiddleware(Middleware):
    """Mutations without an acting user cannot be authorized or recorded in history"""

    async def process(self, message: Any, next_handler: Callable) -> Any:
        if getattr(message, "actor", None) is None:
            log.warning(f"{describe(message)} carries no actor; handler will decide")
        return await next_handler(message)


class CommandBus:
    """One handler per command type, resolved on first use."""

    def __init__(self):
        self._registry = HandlerRegistry("Command", log)
        self._outcomes = OutcomeMetricsMiddleware()
        self._middleware: List[Middleware] = [
            LoggingMiddleware(log),
            ActorPresenceMiddleware(),
            self._outcomes,
        ]

    def use(self, middleware: Middleware) -> "CommandBus":
        self._middleware.append(middleware)
        return self

    def register_handler(self, command_type: Type[Command], handler_factory: Callable[[], ICommandHandler]) -> None:
        """Raises ValueError when a different factory already owns the command type"""
        self._registry.register(command_type, handler_factory)

    def validate_registrations(self) -> None:
        log.info(f"Command bus ready with {len(self._registry)} handlers")

    async def send(self, command: Command) -> Any:
        handler = self._registry.resolve(type(command))
        return await build_chain(self._middleware, handler.handle)(command)

    def get_metrics(self) -> Dict[str, Any]:
        return self._outcomes.snapshot()

    def get_handler_info(self) -> Dict[str, Any]:
        return {
            "handlers": self._registry.names(),
            "total_handlers": len(self._registry),
            "middleware_count": len(self._middleware),
        }
