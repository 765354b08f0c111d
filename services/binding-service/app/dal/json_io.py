from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any

import orjson

from ..core.errors import StorageError


def ensure_file(path: Path, default: Any) -> None:
    if not path.exists():
        write_json_atomic(path, default)


def read_json(path: Path) -> Any:
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise StorageError(f"Cannot read {path.name}: {e.strerror or e}") from e
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        # never treat a corrupt file as empty: the next write-back would erase it
        raise StorageError(f"Corrupt JSON in {path.name}") from e


def write_json_atomic(path: Path, data: Any) -> None:
    """
    Write `data` to a sibling temp file, fsync it, then rename over `path`.
    Readers see either the old or the new document, never a partial one.
    """
    payload = orjson.dumps(data, option=orjson.OPT_INDENT_2)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise StorageError(f"Cannot write {path.name}: {e.strerror or e}") from e
