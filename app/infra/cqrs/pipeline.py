# =============================================================================
# File: app/infra/cqrs/pipeline.py
# Description: Middleware pipeline shared by the command and query buses.
#              Messages carry the actor and the aggregate they target, so the
#              pipeline can log "who touched which event" without handlers
#              repeating it.
# =============================================================================

import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Sequence

from app.common.exceptions.exceptions import EventHubException, InfrastructureError

Next = Callable[[Any], Awaitable[Any]]


def describe(message: Any) -> str:
    """Short log label: message name, target aggregate and acting user when present"""
    parts = [type(message).__name__]

    kind = getattr(message, "kind", None)
    aggregate_id = getattr(message, "aggregate_id", None)
    if aggregate_id is not None:
        parts.append(f"{getattr(kind, 'value', kind) or 'aggregate'}:{aggregate_id}")

    actor = getattr(message, "actor", None)
    if actor is not None:
        parts.append(f"by {actor.actor_id}")

    return " ".join(parts)


def is_rejection(error: BaseException) -> bool:
    """Domain refusals are expected traffic; store and transport failures are not"""
    return isinstance(error, EventHubException) and not isinstance(error, InfrastructureError)


class Middleware(ABC):

    @abstractmethod
    async def process(self, message: Any, next_handler: Next) -> Any:
        pass


class LoggingMiddleware(Middleware):
    """Timed log line per message. Rejections at INFO, failures at ERROR."""

    def __init__(self, logger: logging.Logger, success_level: int = logging.INFO):
        self._log = logger
        self._success_level = success_level

    async def process(self, message: Any, next_handler: Next) -> Any:
        label = describe(message)
        started = time.perf_counter()
        try:
            result = await next_handler(message)
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            if is_rejection(e):
                self._log.info(f"{label} rejected after {elapsed:.1f}ms: {type(e).__name__}: {e}")
            else:
                self._log.error(f"{label} failed after {elapsed:.1f}ms: {type(e).__name__}: {e}")
            raise

        elapsed = (time.perf_counter() - started) * 1000
        self._log.log(self._success_level, f"{label} done in {elapsed:.1f}ms")
        return result


class OutcomeMetricsMiddleware(Middleware):
    """
    Per message type: how many were handled, how many the domain refused,
    how many hit an infrastructure failure, and the slowest run seen.
    """

    def __init__(self):
        self._handled: Dict[str, int] = defaultdict(int)
        self._rejected: Dict[str, int] = defaultdict(int)
        self._failed: Dict[str, int] = defaultdict(int)
        self._slowest_ms: Dict[str, float] = defaultdict(float)

    async def process(self, message: Any, next_handler: Next) -> Any:
        name = type(message).__name__
        started = time.perf_counter()
        try:
            return await next_handler(message)
        except Exception as e:
            bucket = self._rejected if is_rejection(e) else self._failed
            bucket[name] += 1
            raise
        finally:
            self._handled[name] += 1
            elapsed = (time.perf_counter() - started) * 1000
            self._slowest_ms[name] = max(self._slowest_ms[name], elapsed)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "handled": dict(self._handled),
            "rejected": dict(self._rejected),
            "failed": dict(self._failed),
            "slowest_ms": {k: round(v, 2) for k, v in self._slowest_ms.items()},
            "total": sum(self._handled.values()),
        }


def build_chain(middleware: Sequence[Middleware], terminal: Next) -> Next:
    """Fold the middleware list around the terminal handler, first entry outermost"""
    chain = terminal
    for mw in reversed(middleware):
        chain = _link(mw, chain)
    return chain


def _link(mw: Middleware, downstream: Next) -> Next:
    async def step(message: Any) -> Any:
        return await mw.process(message, downstream)
    return step


class HandlerRegistry:
    """Lazily instantiated handler per message type, keyed on the message class"""

    def __init__(self, noun: str, logger: logging.Logger):
        self._noun = noun
        self._log = logger
        self._factories: Dict[type, Callable[[], Any]] = {}
        self._instances: Dict[type, Any] = {}

    def register(self, message_type: type, factory: Callable[[], Any]) -> None:
        current = self._factories.get(message_type)
        if current is not None and current != factory:
            raise ValueError(
                f"{self._noun} {message_type.__name__} already has a handler "
                f"({current}); refusing {factory}"
            )
        self._factories[message_type] = factory
        self._instances.pop(message_type, None)
        self._log.debug(f"{self._noun} {message_type.__name__} -> {getattr(factory, '__name__', factory)}")

    def resolve(self, message_type: type) -> Any:
        handler = self._instances.get(message_type)
        if handler is not None:
            return handler
        factory = self._factories.get(message_type)
        if factory is None:
            raise ValueError(
                f"No handler for {self._noun.lower()} {message_type.__name__}; "
                f"known: {self.names()}"
            )
        handler = self._instances[message_type] = factory()
        return handler

    def names(self) -> List[str]:
        return sorted(t.__name__ for t in self._factories)

    def __len__(self) -> int:
        return len(self._factories)
