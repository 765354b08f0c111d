from __future__ import annotations

import hmac
import logging

from fastapi import Request

from ..core.errors import AdminAuthError
from ..settings import settings

log = logging.getLogger("binding.admin")


async def require_admin(request: Request) -> None:
    """
    Admin gate. Open when no ADMIN_TOKEN is configured (a warning is logged
    at startup); otherwise the configured header must carry the token.
    """
    expected = settings.ADMIN_TOKEN
    if not expected:
        return
    supplied = request.headers.get(settings.ADMIN_TOKEN_HEADER) or ""
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        log.warning("admin request rejected path=%s", request.url.path)
        raise AdminAuthError()
