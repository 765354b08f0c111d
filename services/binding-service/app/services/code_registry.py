from __future__ import annotations

import logging
from typing import Dict, Iterable, Tuple

from ..core.normalize import normalize_code

log = logging.getLogger("binding.registry")


class CodeRegistry:
    """
    Fixed set of valid access codes, loaded once per process.

    Membership is decided on normalized form only. Entries that normalize
    to "" are configuration errors: they are dropped (and logged) so a
    blank submission can never match.
    """
    def __init__(self, codes: Iterable[object]):
        by_norm: Dict[str, str] = {}
        for raw in codes:
            code = raw if isinstance(raw, str) else str(raw)
            norm = normalize_code(code)
            if not norm:
                log.error("ignoring configured access code that normalizes to an empty string: %r", code)
                continue
            by_norm.setdefault(norm, code)
        self._by_norm = by_norm
        log.info("code registry loaded count=%s", len(by_norm))

    def is_valid(self, submitted_code: object) -> bool:
        norm = normalize_code(submitted_code)
        return bool(norm) and norm in self._by_norm

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(self._by_norm.values())

    def __len__(self) -> int:
        return len(self._by_norm)
