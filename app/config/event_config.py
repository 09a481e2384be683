# =============================================================================
# File: app/config/event_config.py
# Description: Business limits for events and mega-events
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class EventLimitsConfig(BaseConfig):
    """Capacity, image and duration ceilings per aggregate type"""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='EVENT_LIMITS_',
    )

    event_max_capacity: int = Field(default=5000)
    mega_event_max_capacity: int = Field(default=10000)

    # Hard ceiling on stored images
    event_max_images: int = Field(default=10)
    mega_event_max_images: int = Field(default=20)

    # Per upload
    event_images_per_upload: int = Field(default=5)
    mega_event_images_per_upload: int = Field(default=10)
    max_image_bytes: int = Field(default=512 * 1024)

    mega_event_max_duration_days: int = Field(default=30)


@lru_cache(maxsize=1)
def get_event_limits() -> EventLimitsConfig:
    return EventLimitsConfig()
