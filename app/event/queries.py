# =============================================================================
# File: app/event/queries.py
# Description: Event / mega-event domain queries
# =============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import Field

from app.event.enums import AggregateKind
from app.infra.cqrs.query_bus import Query


class GetAggregateQuery(Query):
    """Safe projection of one active aggregate"""
    kind: AggregateKind
    aggregate_id: str


class ListAggregatesQuery(Query):
    kind: AggregateKind
    state: Optional[str] = None
    ngo_id: Optional[int] = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class GetAvailableTransitionsQuery(Query):
    """Each allowed target with the result of its guard"""
    kind: AggregateKind
    aggregate_id: str


class GetStatusHistoryQuery(Query):
    kind: AggregateKind
    aggregate_id: str


class GetStatisticsQuery(Query):
    kind: AggregateKind
    aggregate_id: str
