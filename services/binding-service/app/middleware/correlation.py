# app/middleware/correlation.py
from __future__ import annotations

import contextvars
import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("correlation_id", default=None)


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.correlation_id = correlation_id_var.get() or "-"
        return True


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Reads (or mints) x-request-id / x-correlation-id, exposes them to log
    records through context vars and echoes them on the response.
    """
    async def dispatch(self, request: Request, call_next):
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        corr_id = request.headers.get("x-correlation-id") or req_id
        request.state.request_id = req_id
        rid_token = request_id_var.set(req_id)
        cid_token = correlation_id_var.set(corr_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(rid_token)
            correlation_id_var.reset(cid_token)
        response.headers["x-request-id"] = req_id
        response.headers["x-correlation-id"] = corr_id
        return response
