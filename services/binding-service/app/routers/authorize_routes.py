from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request

from ..schemas.auth import AuthDecision, ErrorOut, StatusOut

router = APIRouter(prefix="/authorize", tags=["authorize"])


@router.get("", response_model=StatusOut)
async def authorize_status():
    return StatusOut(ok=True, message="Auth server running. Use POST for auth.")


@router.post(
    "",
    response_model=AuthDecision,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorOut}, 401: {"model": ErrorOut}, 403: {"model": ErrorOut}},
)
async def authorize(request: Request, payload: Optional[Dict[str, Any]] = Body(default=None)):
    """
    Body: {token?, fingerprint, code?}.
    Field types are checked by the authorizer so malformed values map to the
    same error categories as missing ones.
    """
    authorizer = request.app.state.authorizer
    body = payload or {}
    return await authorizer.authorize(
        token=body.get("token"),
        code=body.get("code"),
        fingerprint=body.get("fingerprint"),
    )
