# =============================================================================
# File: app/security/jwt_auth.py - JWT Authentication
# =============================================================================
# Responsibilities:
# - Verify Bearer tokens issued by the identity service
# - Turn the verified claims into the Actor every command carries
# Token issuance and refresh live with the identity service, not here.
# =============================================================================

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from app.config.jwt_config import JWTConfig, get_jwt_config
from app.event.value_objects import Actor

log = logging.getLogger("eventhub.security.jwt_auth")

security_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token_payload(token: str, config: Optional[JWTConfig] = None) -> Optional[Dict[str, Any]]:
    """Verified claims, or None when the signature, expiry or issuer is wrong."""
    config = config or get_jwt_config()
    secret = config.secret_key.get_secret_value()
    if not secret:
        log.error("JWT_SECRET_KEY is not set; every token is rejected")
        return None

    options = {"verify_iss": bool(config.issuer)}
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[config.algorithm],
            issuer=config.issuer or None,
            options=options,
        )
    except JWTError as e:
        log.debug(f"JWT validation failed: {e}")
        return None


def actor_from_claims(payload: Dict[str, Any], config: Optional[JWTConfig] = None) -> Actor:
    config = config or get_jwt_config()
    ledger_id = payload.get(config.ledger_id_claim)
    return Actor(
        actor_id=str(payload["sub"]),
        role=payload.get(config.role_claim),
        ledger_id=int(ledger_id) if ledger_id is not None else None,
    )


async def get_current_actor(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Actor:
    """
    FastAPI dependency for HTTP endpoints.
    - Expects 'Authorization: Bearer <token>'.
    - Returns the Actor or raises HTTPException(401).
    """
    if not credentials or credentials.scheme.lower() != "bearer":
        raise _unauthorized("Invalid auth scheme")

    payload = decode_token_payload(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")
    if not payload.get("sub"):
        raise _unauthorized("Invalid token subject")

    try:
        return actor_from_claims(payload)
    except (ValidationError, TypeError, ValueError) as e:
        log.warning(f"Token for {payload.get('sub')} carries unusable actor claims: {e}")
        raise _unauthorized("Invalid actor claims")
