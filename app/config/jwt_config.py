# =============================================================================
# File: app/config/jwt_config.py - Identity token settings
# =============================================================================
# Tokens are issued elsewhere; this service only verifies them and reads the
# actor claims.
# =============================================================================

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import SettingsConfigDict

from app.common.base.base_config import BaseConfig


class JWTConfig(BaseConfig):
    """JWT verification settings"""

    model_config = SettingsConfigDict(
        BaseConfig.model_config,
        env_prefix='JWT_',
    )

    secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="JWT secret key shared with the issuer"
    )
    algorithm: str = Field(default="HS256")
    issuer: str = Field(default="", description="Expected iss claim, empty to skip the check")

    # Claim names
    role_claim: str = Field(default="role")
    ledger_id_claim: str = Field(default="ledger_id")


@lru_cache(maxsize=1)
def get_jwt_config() -> JWTConfig:
    return JWTConfig()
