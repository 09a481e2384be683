# =============================================================================
# File: app/config/reliability_config.py
# Description: Retry schedules for store access and the per-aggregate lock
#              that serializes event / mega-event mutations
# =============================================================================

from enum import Enum
from functools import lru_cache
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class JitterMode(str, Enum):
    NONE = "none"
    FULL = "full"      # uniform in [0, delay]
    EQUAL = "equal"    # half fixed, half uniform


class RetryConfig(BaseModel):
    """How often and how patiently to retry. Not env-backed; built in code."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    max_attempts: int = Field(default=3, ge=1)
    initial_delay_ms: int = 100
    max_delay_ms: int = 10000
    backoff_factor: float = 2.0
    jitter: bool = True
    jitter_type: JitterMode = JitterMode.FULL
    # None retries every exception
    retry_condition: Optional[Callable[[Exception], bool]] = None


class LockBackend(str, Enum):
    LOCAL = "local"    # one asyncio.Lock per aggregate, single process only
    REDIS = "redis"    # SET NX PX key shared by every worker


class AggregateLockConfig(BaseConfig):
    """AGGREGATE_LOCK_* settings"""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='AGGREGATE_LOCK_',
    )

    backend: LockBackend = LockBackend.LOCAL
    namespace: str = "eventhub:aggregate_lock"
    ttl_ms: int = Field(default=10000, description="Expiry of a Redis lock whose holder died")
    max_wait_ms: int = Field(default=5000, description="Acquire timeout; exceeded -> StoreUnavailable")
    retry_delay_ms: int = 25

    # Conditional document saves that lose a version race are replayed
    version_conflict_attempts: int = 5
    version_conflict_delay_ms: int = 10


@lru_cache(maxsize=1)
def get_aggregate_lock_config() -> AggregateLockConfig:
    return AggregateLockConfig()


class ReliabilityConfigs:
    """Named retry schedules, one per thing we retry"""

    @staticmethod
    def ledger_retry() -> RetryConfig:
        return RetryConfig(max_attempts=3, initial_delay_ms=100, max_delay_ms=2000)

    @staticmethod
    def document_store_retry() -> RetryConfig:
        return RetryConfig(max_attempts=4, initial_delay_ms=200, max_delay_ms=3000)

    @staticmethod
    def redis_retry() -> RetryConfig:
        return RetryConfig(max_attempts=3, initial_delay_ms=50, max_delay_ms=1000)

    @staticmethod
    def version_conflict_retry(config: Optional[AggregateLockConfig] = None) -> RetryConfig:
        # Short and equal-jittered: the competing writer holds the aggregate only briefly
        config = config or get_aggregate_lock_config()
        return RetryConfig(
            max_attempts=config.version_conflict_attempts,
            initial_delay_ms=config.version_conflict_delay_ms,
            max_delay_ms=config.version_conflict_delay_ms * 10,
            jitter_type=JitterMode.EQUAL,
        )
