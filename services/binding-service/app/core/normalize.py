from __future__ import annotations

import re
import unicodedata
from typing import Any

_WHITESPACE = re.compile(r"\s+")


def normalize_code(value: Any) -> str:
    """
    Canonical form used for every access-code comparison.

    NFKC folds compatibility forms (full-width letters and digits, ligatures),
    then all whitespace is removed and the result is uppercased.
    None / empty input yields "" which never matches a configured code.
    """
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    text = unicodedata.normalize("NFKC", text)
    return _WHITESPACE.sub("", text).upper()
