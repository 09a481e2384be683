# =============================================================================
# File: app/config/pg_client_config.py
# Description: LEDGER_* settings for the PostgreSQL ledger pool
# =============================================================================

from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class LedgerConfig(BaseConfig):
    """The ledger holds identity rows, ownership and participation links"""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='LEDGER_',
        populate_by_name=True,
    )

    # Shared name with other services reading the same database
    dsn: Optional[SecretStr] = Field(default=None, alias="POSTGRES_DSN")

    pool_min_size: int = 2
    pool_max_size: int = 20
    pool_timeout: float = Field(default=5.0, description="Seconds to wait for a free connection")
    pool_command_timeout: float = 10.0
    pool_max_inactive_lifetime: float = 300.0

    run_schema_on_startup: bool = False
    schema_path: str = "app/database/ledger_schema.sql"

    connection_retry_attempts: int = 3
    connection_retry_delay_ms: int = 500

    slow_query_threshold_ms: float = 1000.0
    long_transaction_threshold_ms: float = 2000.0

    def pool_params(self) -> Dict[str, Any]:
        """Keyword arguments for asyncpg.create_pool"""
        return {
            "min_size": self.pool_min_size,
            "max_size": self.pool_max_size,
            "timeout": self.pool_timeout,
            "command_timeout": self.pool_command_timeout,
            "max_inactive_connection_lifetime": self.pool_max_inactive_lifetime,
        }

    def get_dsn(self) -> str:
        if self.dsn is None:
            raise ValueError("Ledger DSN not configured (set POSTGRES_DSN)")
        return self.dsn.get_secret_value()


@lru_cache(maxsize=1)
def get_ledger_config() -> LedgerConfig:
    return LedgerConfig()
