# =============================================================================
# File: app/event/query_handlers/__init__.py
# Description: Event / mega-event query handlers package
# =============================================================================

from app.event.query_handlers.event_query_handlers import (
    GetAggregateQueryHandler,
    ListAggregatesQueryHandler,
    GetAvailableTransitionsQueryHandler,
    GetStatusHistoryQueryHandler,
    GetStatisticsQueryHandler,
)

__all__ = [
    "GetAggregateQueryHandler",
    "ListAggregatesQueryHandler",
    "GetAvailableTransitionsQueryHandler",
    "GetStatusHistoryQueryHandler",
    "GetStatisticsQueryHandler",
]
