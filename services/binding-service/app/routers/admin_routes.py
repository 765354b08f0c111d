from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request

from ..schemas.auth import ErrorOut, ResetOut
from .deps import require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/bindings")
async def list_bindings(request: Request):
    """
    Full id -> binding map, tokens included.
    """
    authorizer = request.app.state.authorizer
    return await authorizer.list_bindings()


@router.post("/reset-code", response_model=ResetOut, responses={404: {"model": ErrorOut}})
async def reset_code(request: Request, payload: Optional[Dict[str, Any]] = Body(default=None)):
    authorizer = request.app.state.authorizer
    removed = await authorizer.reset_code((payload or {}).get("code"))
    return ResetOut(removed=removed)
