# =============================================================================
# File: app/event/ports/image_ingestion_port.py
# Description: Port interface for turning uploaded bytes into image payloads
# Pattern: Hexagonal Architecture / Ports & Adapters
# =============================================================================

from __future__ import annotations

from typing import Protocol, runtime_checkable

from app.event.value_objects import ImagePayload


@runtime_checkable
class ImageIngestionPort(Protocol):
    """
    Port: Image Ingestion

    Defined by: Event Domain
    Implemented by: PassthroughImageIngestion (app/infra/images/image_ingestion.py)

    Returns a normalized payload or raises ValidationFailed for non-image
    or oversized input.
    """

    async def ingest(self, filename: str, content: bytes, content_type: str) -> ImagePayload:
        ...
