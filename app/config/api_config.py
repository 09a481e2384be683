# =============================================================================
# File: app/config/api_config.py
# Description: HTTP process settings (environment, CORS, dev server)
# =============================================================================

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class ApiConfig(BaseConfig):
    """Unprefixed: these names are shared with the deployment manifests"""

    model_config = SettingsConfigDict(**BaseConfig.model_config)

    environment: str = "development"
    cors_allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Comma separated",
    )
    host: str = "0.0.0.0"
    port: int = 5001
    reload: bool = True
    log_file: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_api_config() -> ApiConfig:
    return ApiConfig()
