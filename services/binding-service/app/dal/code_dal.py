from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from ..core.errors import StorageError
from ..core.normalize import normalize_code
from ..settings import settings
from .json_io import ensure_file, read_json

log = logging.getLogger("binding.dal.codes")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def load_codes_file(path: str | Path, *, default_code: str) -> List[str]:
    """
    Read the authoritative code list from a JSON array file.
    A missing file is created holding just `default_code`.
    """
    p = Path(path)
    ensure_file(p, [default_code])
    data = read_json(p)
    if not isinstance(data, list):
        raise StorageError(f"{p.name} must hold a JSON array of codes")
    return [str(c) for c in data]


class CodeDAL:
    """
    Access codes kept in MongoDB, one document per code.
    """
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db[settings.COL_CODES]

    async def ensure_indexes(self) -> None:
        await self.col.create_index([("code_norm", ASCENDING)], unique=True)

    async def list_codes(self) -> List[str]:
        try:
            cur = self.col.find({}, {"code": 1}).sort("created_at", ASCENDING)
            return [str(d["code"]) async for d in cur]
        except PyMongoError as e:
            raise StorageError("Cannot load access codes") from e

    async def upsert(self, code: str) -> bool:
        """
        Insert `code` unless an equivalent (normalized) code exists.
        Returns True when a new document was created.
        """
        code_norm = normalize_code(code)
        if not code_norm:
            raise ValueError("Access code normalizes to an empty string")
        r = await self.col.update_one(
            {"code_norm": code_norm},
            {"$setOnInsert": {"code": code, "code_norm": code_norm, "created_at": _now()}},
            upsert=True,
        )
        return r.upserted_id is not None

    async def seed_many(self, codes: Iterable[str]) -> Dict[str, Any]:
        inserted = 0
        skipped = 0
        for c in codes:
            if await self.upsert(c):
                inserted += 1
            else:
                skipped += 1
        return {"inserted": inserted, "skipped": skipped}

    async def ensure_default(self, default_code: str) -> None:
        if await self.col.count_documents({}, limit=1) == 0:
            log.info("codes collection empty; seeding default code")
            await self.upsert(default_code)
