# =============================================================================
# File: app/common/base/base_config.py
# Description: Root of every env-backed settings class in EventHub.
#
# Each concern gets its own prefix and a cached getter:
#
#     class LedgerConfig(BaseConfig):
#         model_config = SettingsConfigDict(**BaseConfig.model_config, env_prefix="LEDGER_")
#         dsn: SecretStr
#
#     @lru_cache(maxsize=1)
#     def get_ledger_config() -> LedgerConfig:
#         return LedgerConfig()
# =============================================================================

from typing import Any, Dict

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

_MASK = "***"


class BaseConfig(BaseSettings):
    """Reads .env plus the process environment, case-insensitively. Unknown keys are ignored."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_nested_delimiter="__",
    )

    def summary(self) -> Dict[str, Any]:
        """Field values for startup logs. SecretStr fields are masked, empty secrets stay empty."""
        result = {}
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, SecretStr):
                value = _MASK if value.get_secret_value() else ""
            elif hasattr(value, "value") and isinstance(value.value, str):
                value = value.value
            result[name] = value
        return result
