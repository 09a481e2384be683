# =============================================================================
# File: app/infra/cqrs/query_bus.py
# Description: Query bus for the document-store read side
# =============================================================================

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Type, TypeVar

from pydantic import BaseModel

from app.infra.cqrs.pipeline import (
    HandlerRegistry,
    LoggingMiddleware,
    Middleware,
    OutcomeMetricsMiddleware,
    build_chain,
)

log = logging.getLogger("eventhub.cqrs.query")

TResult = TypeVar("TResult")


class Query(BaseModel):
    pass


class IQueryHandler(ABC):

    @abstractmethod
    async def handle(self, query: Query) -> Any:
        pass


class QueryBus:
    """Reads never mutate, so successes log at DEBUG to keep list polling quiet."""

    def __init__(self):
        self._registry = HandlerRegistry("Query", log)
        self._outcomes = OutcomeMetricsMiddleware()
        self._middleware: List[Middleware] = [
            LoggingMiddleware(log, success_level=logging.DEBUG),
            self._outcomes,
        ]

    def use(self, middleware: Middleware) -> "QueryBus":
        self._middleware.append(middleware)
        return self

    def register_handler(self, query_type: Type[Query], handler_factory: Callable[[], IQueryHandler]) -> None:
        self._registry.register(query_type, handler_factory)

    async def query(self, query: Query) -> TResult:
        handler = self._registry.resolve(type(query))
        return await build_chain(self._middleware, handler.handle)(query)

    def get_metrics(self) -> Dict[str, Any]:
        return self._outcomes.snapshot()

    def get_handler_info(self) -> Dict[str, Any]:
        return {
            "handlers": self._registry.names(),
            "total_handlers": len(self._registry),
            "middleware_count": len(self._middleware),
        }
