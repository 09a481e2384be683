# =============================================================================
# File: app/config/mongo_config.py
# Description: Document store (MongoDB) configuration
# =============================================================================

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class DocumentStoreConfig(BaseConfig):
    """MongoDB client and collection settings"""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='MONGO_',
    )

    uri: SecretStr = Field(default=SecretStr("mongodb://localhost:27017"))
    database: str = Field(default="eventhub")

    events_collection: str = Field(default="events")
    mega_events_collection: str = Field(default="mega_events")

    server_selection_timeout_ms: int = Field(default=5000)
    connect_timeout_ms: int = Field(default=5000)
    socket_timeout_ms: int = Field(default=10000)
    max_pool_size: int = Field(default=100)
    app_name: str = Field(default="eventhub")

    ensure_indexes_on_startup: bool = Field(default=True)


@lru_cache(maxsize=1)
def get_document_store_config() -> DocumentStoreConfig:
    return DocumentStoreConfig()
