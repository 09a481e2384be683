# =============================================================================
# File: tests/test_jwt_auth.py
# Description: Bearer token verification and actor extraction
# =============================================================================

import time

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from app.config.jwt_config import JWTConfig
from app.security import jwt_auth

SECRET = "test-secret"


@pytest.fixture
def config(monkeypatch) -> JWTConfig:
    cfg = JWTConfig(secret_key=SECRET, issuer="identity")
    monkeypatch.setattr(jwt_auth, "get_jwt_config", lambda: cfg)
    return cfg


def token(claims, secret=SECRET) -> str:
    base = {"iss": "identity", "exp": int(time.time()) + 300}
    base.update(claims)
    return jwt.encode(base, secret, algorithm="HS256")


def bearer(value: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=value)


def test_valid_token_decodes(config):
    payload = jwt_auth.decode_token_payload(token({"sub": "ngo-7", "role": "ngo", "ledger_id": 7}), config)
    assert payload["sub"] == "ngo-7"


def test_wrong_secret_wrong_issuer_and_expiry_are_rejected(config):
    assert jwt_auth.decode_token_payload(token({"sub": "x"}, secret="other"), config) is None
    assert jwt_auth.decode_token_payload(token({"sub": "x", "iss": "elsewhere"}), config) is None
    assert jwt_auth.decode_token_payload(token({"sub": "x", "exp": int(time.time()) - 10}), config) is None


def test_empty_secret_rejects_everything():
    assert jwt_auth.decode_token_payload(token({"sub": "x"}), JWTConfig(secret_key="")) is None


def test_issuer_is_optional():
    open_config = JWTConfig(secret_key=SECRET)
    assert jwt_auth.decode_token_payload(token({"sub": "x", "iss": "anyone"}), open_config)["sub"] == "x"


@pytest.mark.asyncio
async def test_current_actor_from_claims(config):
    actor = await jwt_auth.get_current_actor(bearer(token({"sub": "company-50", "role": "company", "ledger_id": "50"})))

    assert actor.actor_id == "company-50"
    assert actor.role == "company"
    assert actor.ledger_id == 50
    assert actor.is_company(50)


@pytest.mark.asyncio
async def test_super_admin_needs_no_ledger_id(config):
    actor = await jwt_auth.get_current_actor(bearer(token({"sub": "root", "role": "super_admin"})))
    assert actor.is_super_admin
    assert actor.ledger_id is None


@pytest.mark.asyncio
@pytest.mark.parametrize("claims", [
    {"role": "ngo"},
    {"sub": "u1", "role": "pirate"},
    {"sub": "u1", "role": "ngo", "ledger_id": "seven"},
])
async def test_unusable_claims_are_401(config, claims):
    with pytest.raises(HTTPException) as exc_info:
        await jwt_auth.get_current_actor(bearer(token(claims)))
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_missing_credentials_are_401(config):
    with pytest.raises(HTTPException) as exc_info:
        await jwt_auth.get_current_actor(None)
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


def test_config_summary_masks_the_secret():
    summary = JWTConfig(secret_key=SECRET, issuer="identity").summary()

    assert summary["secret_key"] == "***"
    assert summary["issuer"] == "identity"
    assert JWTConfig(secret_key="").summary()["secret_key"] == ""
