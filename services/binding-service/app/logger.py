from __future__ import annotations

import logging

from .middleware.correlation import CorrelationIdFilter
from .settings import settings


def setup_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | rid=%(request_id)s | %(message)s",
    )
    # the format above needs request_id on every record reaching these handlers
    corr_filter = CorrelationIdFilter()
    for handler in logging.getLogger().handlers:
        handler.addFilter(corr_filter)
