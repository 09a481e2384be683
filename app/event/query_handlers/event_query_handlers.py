# =============================================================================
# File: app/event/query_handlers/event_query_handlers.py
# Description: Read-side handlers for events and mega-events
#              Every result is a safe projection; raw documents never leave
#              this module.
# =============================================================================

from __future__ import annotations

from typing import List

from app.config.logging_config import get_logger
from app.infra.cqrs.decorators import query_handler
from app.common.base.base_query_handler import BaseQueryHandler
from app.event.queries import (
    GetAggregateQuery,
    GetAvailableTransitionsQuery,
    GetStatisticsQuery,
    GetStatusHistoryQuery,
    ListAggregatesQuery,
)
from app.event.projections import (
    AggregateView,
    StatisticsView,
    StatusHistoryView,
    to_history_view,
    to_statistics,
    to_view,
)
from app.event.value_objects import TransitionOption

log = get_logger("eventhub.event.query_handlers")


@query_handler(GetAggregateQuery)
class GetAggregateQueryHandler(BaseQueryHandler[GetAggregateQuery, AggregateView]):
    async def handle(self, query: GetAggregateQuery) -> AggregateView:
        aggregate = await self.load_active(query.kind, query.aggregate_id)
        return to_view(aggregate)


@query_handler(ListAggregatesQuery)
class ListAggregatesQueryHandler(BaseQueryHandler[ListAggregatesQuery, List[AggregateView]]):
    """
    Active aggregates only, newest start first.

    ngo_id matches the owning NGO of an event; for mega-events it matches
    the principal NGO or any active co-organizer.
    """

    async def handle(self, query: ListAggregatesQuery) -> List[AggregateView]:
        aggregates = await self.documents.list(
            query.kind,
            active_only=True,
            state=query.state,
            ngo_id=query.ngo_id,
            limit=query.limit,
            offset=query.offset,
        )
        return [to_view(a) for a in aggregates]


@query_handler(GetAvailableTransitionsQuery)
class GetAvailableTransitionsQueryHandler(
    BaseQueryHandler[GetAvailableTransitionsQuery, List[TransitionOption]]
):
    """Guards are evaluated against the current clock, nothing is written."""

    async def handle(self, query: GetAvailableTransitionsQuery) -> List[TransitionOption]:
        aggregate = await self.load_active(query.kind, query.aggregate_id)
        return self.lifecycle.available_transitions(aggregate)


@query_handler(GetStatusHistoryQuery)
class GetStatusHistoryQueryHandler(BaseQueryHandler[GetStatusHistoryQuery, StatusHistoryView]):
    async def handle(self, query: GetStatusHistoryQuery) -> StatusHistoryView:
        aggregate = await self.load_active(query.kind, query.aggregate_id)
        return to_history_view(aggregate)


@query_handler(GetStatisticsQuery)
class GetStatisticsQueryHandler(BaseQueryHandler[GetStatisticsQuery, StatisticsView]):
    async def handle(self, query: GetStatisticsQuery) -> StatisticsView:
        aggregate = await self.load_active(query.kind, query.aggregate_id)
        return to_statistics(aggregate)
