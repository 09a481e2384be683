# =============================================================================
# File: app/event/ports/__init__.py
# Description: Ports directory for Event domain
# =============================================================================
# EMPTY - use direct imports:
#   from app.event.ports.ledger_port import LedgerPort
#   from app.event.ports.document_store_port import DocumentStorePort
#   from app.event.ports.image_ingestion_port import ImageIngestionPort
