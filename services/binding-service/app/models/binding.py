from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ..core.normalize import normalize_code


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Binding(BaseModel):
    """
    Durable record locking one access code to one device fingerprint.

    `code` keeps the code exactly as first submitted; lookups always go
    through `code_norm`. Instances are frozen: a binding is created once and
    only ever deleted.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(default_factory=_new_id)
    code: str
    fingerprint: str
    token: str = Field(default_factory=_new_id)
    created_at: datetime = Field(
        default_factory=_now,
        validation_alias=AliasChoices("created_at", "createdAt"),
    )

    @property
    def code_norm(self) -> str:
        return normalize_code(self.code)

    @classmethod
    def issue(cls, *, code: str, fingerprint: str) -> "Binding":
        return cls(code=code, fingerprint=fingerprint)
