from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from ..core.errors import (
    BindingConflictError,
    CodeAlreadyClaimedError,
    DeviceMismatchError,
    InvalidCodeError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from ..core.normalize import normalize_code
from ..dal.binding_dal import BindingDAL
from ..models.binding import Binding
from ..schemas.auth import AuthDecision
from .code_registry import CodeRegistry

log = logging.getLogger("binding.authorizer")


class Authorizer:
    """
    Decides every authorization request and owns all writes to the binding
    store.

    Decision order: fingerprint validation, then the token path when a token
    is given, otherwise the code path. First-time redemption and reset are
    read-modify-write sequences and run under a single lock.
    """
    def __init__(self, *, registry: CodeRegistry, binding_dal: BindingDAL):
        self.registry = registry
        self.binding_dal = binding_dal
        self._lock = asyncio.Lock()

    async def authorize(
        self,
        *,
        token: Any = None,
        code: Any = None,
        fingerprint: Any = None,
    ) -> AuthDecision:
        if not fingerprint or not isinstance(fingerprint, str):
            raise ValidationError("Missing fingerprint")

        if token:
            return await self._authorize_token(token, fingerprint)

        if not code or not isinstance(code, str):
            raise ValidationError("Missing code")
        return await self._authorize_code(code, fingerprint)

    async def _authorize_token(self, token: Any, fingerprint: str) -> AuthDecision:
        found = await self.binding_dal.find_by_token(token) if isinstance(token, str) else None
        if found is None:
            log.info("token rejected: unknown token")
            raise InvalidTokenError()
        if found.fingerprint != fingerprint:
            log.warning("token rejected: device mismatch binding_id=%s", found.id)
            raise DeviceMismatchError()
        return AuthDecision(mode="token")

    async def _authorize_code(self, code: str, fingerprint: str) -> AuthDecision:
        if not self.registry.is_valid(code):
            log.info("code rejected: not in registry")
            raise InvalidCodeError()

        code_norm = normalize_code(code)
        async with self._lock:
            existing = await self.binding_dal.find_by_normalized_code(code_norm)
            if existing is None:
                binding = Binding.issue(code=code, fingerprint=fingerprint)
                try:
                    await self.binding_dal.insert(binding)
                except BindingConflictError:
                    # another process bound the code between our read and write
                    existing = await self.binding_dal.find_by_normalized_code(code_norm)
                    if existing is None:
                        raise
                else:
                    log.info("code bound binding_id=%s", binding.id)
                    return AuthDecision(mode="bound-first-time", token=binding.token)

        _, binding = existing
        if binding.fingerprint == fingerprint:
            return AuthDecision(mode="same-device", token=binding.token)
        log.warning("code rejected: already claimed binding_id=%s", binding.id)
        raise CodeAlreadyClaimedError()

    async def reset_code(self, code: Any) -> int:
        """
        Remove every binding for `code` (normalized), returning the count.
        This is the only way a bound code becomes redeemable again.
        """
        if not code:
            raise ValidationError("Missing code")
        # non-string codes are stringified by normalize_code
        code_norm = normalize_code(code)
        if not code_norm:
            raise ValidationError("Missing code")

        async with self._lock:
            removed = await self.binding_dal.delete_by_normalized_code(code_norm)
        if not removed:
            raise NotFoundError()
        log.info("code reset removed=%s", removed)
        return removed

    async def list_bindings(self) -> Dict[str, Dict[str, Any]]:
        items = await self.binding_dal.list_all()
        return {bid: b.model_dump(mode="json") for bid, b in items.items()}

    def list_codes(self) -> List[str]:
        return list(self.registry.codes)

