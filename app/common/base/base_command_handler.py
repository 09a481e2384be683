# =============================================================================
# File: app/common/base/base_command_handler.py
# Description: Base command handler for EventHub
#              Gives every event/mega-event handler the dual-write
#              coordinator, the domain engines and the safe projection of
#              its result. All domain command handlers inherit from it.
# =============================================================================

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from app.event.aggregate import Aggregate
from app.event.enums import AggregateKind
from app.event.projections import AggregateView, to_view

if TYPE_CHECKING:
    from app.infra.cqrs.handler_dependencies import HandlerDependencies


class BaseCommandHandler(ABC):
    """
    Base class for all command handlers in EventHub.

    Provides:
    - The DualWriteCoordinator (create / mutate / delete across both stores)
    - Lifecycle and registration engines
    - Conversion of the written aggregate into its safe projection
    """

    def __init__(self, deps: 'HandlerDependencies'):
        self.deps = deps
        self.coordinator = deps.coordinator
        self.ledger = deps.ledger
        self.lifecycle = deps.lifecycle
        self.registration = deps.registration
        self.limits = deps.limits

    @abstractmethod
    async def handle(self, command: Any) -> Any:
        pass

    async def mutate(self, kind: AggregateKind, aggregate_id: str, mutator, *, operation: str, mirror=None):
        """Run a mutation through the coordinator and return the aggregate and mutator result."""
        return await self.coordinator.mutate(kind, aggregate_id, mutator, operation=operation, mirror=mirror)

    @staticmethod
    def view(aggregate: Aggregate) -> AggregateView:
        return to_view(aggregate)
