"""
Handler Dependencies - EventHub

Common dependencies container for all command and query handlers.

Architecture: Ports & Adapters (Hexagonal Architecture)
- Ports are defined in the domain: app/event/ports/
- Adapters implement ports: app/infra/{ledger,document_store,images}/
- Dependencies inject port types, not concrete adapters
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from app.config.event_config import EventLimitsConfig
from app.event.value_objects import utc_now

if TYPE_CHECKING:
    from app.event.lifecycle import LifecycleEngine
    from app.event.ports.document_store_port import DocumentStorePort
    from app.event.ports.image_ingestion_port import ImageIngestionPort
    from app.event.ports.ledger_port import LedgerPort
    from app.event.registration import RegistrationEngine
    from app.infra.reliability.aggregate_lock import AggregateLockManager
    from app.services.application.dual_write_coordinator import DualWriteCoordinator
    from app.services.infrastructure.reconciliation_service import ReconciliationService


@dataclass
class HandlerDependencies:
    """
    Container for all handler dependencies.

    Dependencies are injected from application startup, or from test
    fixtures with in-memory fakes in place of the adapters.
    """

    # =========================================================================
    # Ports (implemented by adapters in app/infra)
    # =========================================================================

    ledger: 'LedgerPort'
    documents: 'DocumentStorePort'
    image_ingestion: 'ImageIngestionPort'

    # =========================================================================
    # Domain engines and application services
    # =========================================================================

    coordinator: 'DualWriteCoordinator'
    lifecycle: 'LifecycleEngine'
    registration: 'RegistrationEngine'
    lock_manager: 'AggregateLockManager'
    reconciliation: Optional['ReconciliationService'] = None

    # =========================================================================
    # Configuration
    # =========================================================================

    limits: EventLimitsConfig = field(default_factory=EventLimitsConfig)
    clock: Callable[[], datetime] = utc_now
    global_config: Dict[str, Any] = field(default_factory=dict)
