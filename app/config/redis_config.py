# =============================================================================
# File: app/config/redis_config.py
# Description: Configuration for the Redis client (distributed aggregate locks)
# =============================================================================

from functools import lru_cache
from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class RedisConfig(BaseConfig):
    """Redis connection settings. Only used when the redis lock backend is on."""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='REDIS_',
    )

    redis_url: str = Field(
        default="redis://localhost:6379/1",
        description="Redis connection URL"
    )
    password: Optional[SecretStr] = Field(default=None)

    max_connections: int = Field(default=50)
    socket_timeout: float = Field(default=5.0)
    socket_connect_timeout: float = Field(default=5.0)
    health_check_interval: int = Field(default=30)
    decode_responses: bool = Field(default=True)


@lru_cache(maxsize=1)
def get_redis_config() -> RedisConfig:
    return RedisConfig()
