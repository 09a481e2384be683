# app/common/base/base_query_handler.py
"""
Read side handlers. They load from the document store only, never take the
aggregate lock and never write.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, TypeVar

from app.event.aggregate import Aggregate
from app.event.enums import AggregateKind
from app.event.exceptions import NotFound

if TYPE_CHECKING:
    from app.infra.cqrs.handler_dependencies import HandlerDependencies

TQuery = TypeVar('TQuery')
TResult = TypeVar('TResult')


class BaseQueryHandler(ABC, Generic[TQuery, TResult]):
    """
    Base class for all query handlers in EventHub.

    Usage:
        @query_handler(GetAggregateQuery)
        class GetAggregateQueryHandler(BaseQueryHandler[GetAggregateQuery, AggregateView]):
            async def handle(self, query: GetAggregateQuery) -> AggregateView:
                aggregate = await self.load_active(query.kind, query.aggregate_id)
                return to_view(aggregate)
    """

    def __init__(self, deps: 'HandlerDependencies'):
        self.log = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)
        self.documents = deps.documents
        self.lifecycle = deps.lifecycle

    @abstractmethod
    async def handle(self, query: TQuery) -> TResult:
        pass

    async def load_active(self, kind: AggregateKind, aggregate_id: str) -> Aggregate:
        """Soft-deleted aggregates are reported as NotFound."""
        aggregate = await self.documents.get(kind, aggregate_id)
        if aggregate is None or not aggregate.active:
            raise NotFound(AggregateKind(kind).value, aggregate_id)
        return aggregate

