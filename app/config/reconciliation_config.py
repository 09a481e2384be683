# =============================================================================
# File: app/config/reconciliation_config.py
# Description: Ledger / document store reconciliation pass
# =============================================================================

from functools import lru_cache

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class ReconciliationConfig(BaseConfig):
    """The pass always runs on demand; the loop only when enabled."""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='RECONCILIATION_',
    )

    enabled: bool = Field(default=False, description="Run the periodic loop")
    interval_seconds: float = Field(default=300.0, gt=0)
    grace_seconds: float = Field(
        default=120.0,
        ge=0,
        description="Documents created this recently are never soft-deleted; their ledger transaction may still be open",
    )


@lru_cache(maxsize=1)
def get_reconciliation_config() -> ReconciliationConfig:
    return ReconciliationConfig()
