# =============================================================================
# File: app/core/app_state.py
# Description: Typed app.state for the EventHub API process
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.infra.cqrs.command_bus import CommandBus
from app.infra.cqrs.handler_dependencies import HandlerDependencies
from app.infra.cqrs.query_bus import QueryBus
from app.infra.document_store.mongo_document_store import MongoDocumentStore
from app.infra.ledger.ledger_adapter import PostgresLedgerAdapter
from app.infra.reliability.aggregate_lock import AggregateLockManager
from app.services.infrastructure.reconciliation_service import ReconciliationService


@dataclass
class AppState:
    """Filled in phase by phase during startup; None means the phase has not run"""

    ledger: Optional[PostgresLedgerAdapter] = None
    documents: Optional[MongoDocumentStore] = None
    lock_manager: Optional[AggregateLockManager] = None
    redis_enabled: bool = False

    command_bus: Optional[CommandBus] = None
    query_bus: Optional[QueryBus] = None
    handler_deps: Optional[HandlerDependencies] = None
    cqrs_registration_stats: Optional[Dict[str, Any]] = None

    reconciliation: Optional[ReconciliationService] = None


_STARTED_AT = datetime.now(timezone.utc)


def get_start_time() -> datetime:
    return _STARTED_AT
