# =============================================================================
# File: app/infra/images/image_ingestion.py
# Description: Image ingestion adapter (MIME and size checks, no re-encoding)
# =============================================================================

import logging
import mimetypes
from typing import Optional

from app.config.event_config import EventLimitsConfig, get_event_limits
from app.event.exceptions import ValidationFailed
from app.event.value_objects import ImagePayload

log = logging.getLogger("eventhub.images")

ALLOWED_CONTENT_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
})


class PassthroughImageIngestion:
    """Accepts images as uploaded. Content is stored unchanged."""

    def __init__(self, limits: Optional[EventLimitsConfig] = None):
        self.limits = limits or get_event_limits()

    async def ingest(self, filename: str, content: bytes, content_type: str) -> ImagePayload:
        content_type = (content_type or "").split(";")[0].strip().lower()
        if not content_type or content_type == "application/octet-stream":
            content_type = mimetypes.guess_type(filename)[0] or ""

        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationFailed(f"{filename}: unsupported image type '{content_type or 'unknown'}'", field="images")
        if not content:
            raise ValidationFailed(f"{filename}: empty file", field="images")
        if len(content) > self.limits.max_image_bytes:
            raise ValidationFailed(
                f"{filename}: {len(content)} bytes exceeds the {self.limits.max_image_bytes} byte limit",
                field="images",
            )

        log.debug(f"Ingested image {filename} ({content_type}, {len(content)} bytes)")
        return ImagePayload(filename=filename, content=content, content_type=content_type, size=len(content))
