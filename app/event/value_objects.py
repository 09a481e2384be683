# =============================================================================
# File: app/event/value_objects.py
# Description: Immutable value objects shared across the event domain
# =============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.event.enums import ActorRole


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Actor(BaseModel):
    """Caller identity as supplied by the identity collaborator. Trusted as-is."""
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    actor_id: str
    role: ActorRole
    ledger_id: Optional[int] = None

    @property
    def is_super_admin(self) -> bool:
        return self.role == ActorRole.SUPER_ADMIN

    def is_ngo(self, ngo_id: Optional[int]) -> bool:
        return self.role == ActorRole.NGO and ngo_id is not None and self.ledger_id == ngo_id

    def is_member(self, member_id: int) -> bool:
        return self.role == ActorRole.EXTERNAL_MEMBER and self.ledger_id == member_id

    def is_company(self, company_id: int) -> bool:
        return self.role == ActorRole.COMPANY and self.ledger_id == company_id


class ImagePayload(BaseModel):
    """Normalized image produced by the ingestion collaborator"""
    model_config = ConfigDict(frozen=True)

    filename: str
    content: bytes
    content_type: str
    size: int = Field(ge=0)


class TransitionOption(BaseModel):
    """One allowed target state with the result of its guard"""
    model_config = ConfigDict(frozen=True)

    target: str
    allowed: bool
    reason: Optional[str] = None
