from __future__ import annotations

import logging
import time

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from motor.motor_asyncio import AsyncIOMotorClient
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import Response

from .core.errors import BindingServiceError
from .dal import CodeDAL, InMemoryBindingDAL, JsonFileBindingDAL, MongoBindingDAL, load_codes_file
from .logger import setup_logging
from .middleware.correlation import CorrelationIdMiddleware
from .routers import admin_router, authorize_router, debug_router, health_router
from .services import Authorizer, CodeRegistry
from .settings import settings

setup_logging()
log = logging.getLogger("binding")

app = FastAPI(
    title="Binding Service (Device-bound access codes)",
    version="0.1.0",
    default_response_class=ORJSONResponse,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    start = time.time()
    path = request.url.path
    log.info(
        "REQ method=%s path=%s client=%s",
        request.method,
        path,
        request.client.host if request.client else None,
    )

    try:
        resp: Response = await call_next(request)
    except Exception as e:
        dur_ms = int((time.time() - start) * 1000)
        log.exception("ERR dur_ms=%s path=%s", dur_ms, path)
        return ORJSONResponse(status_code=500, content={"ok": False, "error": str(e) or "Internal Server Error"})

    dur_ms = int((time.time() - start) * 1000)
    log.info("RES status=%s dur_ms=%s path=%s", resp.status_code, dur_ms, path)
    return resp


# added last so it wraps everything above and sets the ids first
app.add_middleware(CorrelationIdMiddleware)


# ----------------------------
# Error rendering
# ----------------------------
@app.exception_handler(BindingServiceError)
async def binding_error_handler(request: Request, exc: BindingServiceError):
    if exc.status_code >= 500:
        log.error("request failed reason=%s error=%s", exc.reason, exc.message)
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": exc.message, "reason": exc.reason},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return ORJSONResponse(
        status_code=400,
        content={"ok": False, "error": "Malformed request body", "reason": "validation"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return ORJSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": str(exc.detail), "reason": "http"},
        headers=getattr(exc, "headers", None),
    )


# ----------------------------
# Lifecycle
# ----------------------------
@app.on_event("startup")
async def startup():
    log.info(
        "startup begin store_backend=%s codes_file=%s bindings_file=%s mongo_db=%s",
        settings.STORE_BACKEND,
        settings.CODES_FILE,
        settings.BINDINGS_FILE,
        settings.MONGO_DB,
    )

    if settings.STORE_BACKEND == "mongo":
        client = AsyncIOMotorClient(settings.MONGO_URI)
        db = client[settings.MONGO_DB]
        app.state.mongo_client = client

        code_dal = CodeDAL(db)
        await code_dal.ensure_indexes()
        await code_dal.ensure_default(settings.DEFAULT_CODE)
        codes = await code_dal.list_codes()

        binding_dal = MongoBindingDAL(db)
        await binding_dal.ensure_indexes()
    elif settings.STORE_BACKEND == "file":
        codes = load_codes_file(settings.CODES_FILE, default_code=settings.DEFAULT_CODE)
        binding_dal = JsonFileBindingDAL(settings.BINDINGS_FILE)
    else:
        codes = list(settings.CODES)
        binding_dal = InMemoryBindingDAL()

    app.state.registry = CodeRegistry(codes)
    app.state.authorizer = Authorizer(registry=app.state.registry, binding_dal=binding_dal)

    if not settings.ADMIN_TOKEN:
        log.warning("ADMIN_TOKEN not set: /admin routes are unauthenticated")
    if settings.DEBUG_CODES_ENABLED:
        log.warning("DEBUG_CODES_ENABLED: /debug/codes exposes every access code")

    log.info("startup complete")


@app.on_event("shutdown")
async def shutdown():
    c = getattr(app.state, "mongo_client", None)
    if c:
        c.close()


app.include_router(health_router)
app.include_router(authorize_router)
app.include_router(debug_router)
app.include_router(admin_router)


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.PORT,
    )
