from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["health"])


@router.get("/", response_class=PlainTextResponse)
def root():
    return "OK - use /authorize (POST)."


@router.get("/healthz")
def healthz():
    return {"ok": True}


@router.get("/readyz")
def readyz(request: Request):
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        return {"ready": False}
    return {"ready": True, "codes": len(registry)}
