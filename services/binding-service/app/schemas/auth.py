from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel

AuthMode = Literal["token", "bound-first-time", "same-device"]


class AuthDecision(BaseModel):
    """
    Successful authorization outcome. `token` is only present for the code
    path (new or re-used binding); the token path does not echo it back.
    """
    ok: Literal[True] = True
    mode: AuthMode
    token: Optional[str] = None


class ErrorOut(BaseModel):
    ok: Literal[False] = False
    error: str
    reason: str


class StatusOut(BaseModel):
    ok: bool = True
    message: str


class ResetOut(BaseModel):
    ok: Literal[True] = True
    removed: int


class CodesOut(BaseModel):
    ok: Literal[True] = True
    codes: List[str]


