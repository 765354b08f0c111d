from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from ..schemas.auth import CodesOut
from ..settings import settings

router = APIRouter(prefix="/debug", tags=["debug"])


@router.get("/codes", response_model=CodesOut)
async def list_codes(request: Request):
    if not settings.DEBUG_CODES_ENABLED:
        raise HTTPException(404, "Not Found")
    return CodesOut(codes=request.app.state.authorizer.list_codes())
