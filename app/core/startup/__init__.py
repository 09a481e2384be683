# app/core/startup/__init__.py
"""Startup phases, run in order by the lifespan"""

from app.core.startup.cqrs import initialize_cqrs_and_handlers
from app.core.startup.infrastructure import (
    initialize_document_store,
    initialize_ledger,
    initialize_locking,
)
from app.core.startup.services import initialize_reconciliation

__all__ = [
    "initialize_ledger",
    "initialize_document_store",
    "initialize_locking",
    "initialize_cqrs_and_handlers",
    "initialize_reconciliation",
]
