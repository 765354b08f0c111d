# services/binding-service/app/seeds/seed_codes.py
from __future__ import annotations

"""
Binding seed: load access codes into MongoDB.

Reads a JSON array of codes (default: settings.CODES_FILE) and upserts each
one into the codes collection, keyed on its normalized form.

Run:
  python -m app.seeds.seed_codes [path/to/codes.json]

Notes:
- Idempotent: codes already present (in any casing / spacing) are skipped.
- Blank codes are rejected before anything is written.
- Uses the DAL directly (no need to run the service).
"""

import asyncio
import sys
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient

from app.core.normalize import normalize_code
from app.dal import CodeDAL, load_codes_file
from app.settings import settings


def prepare_codes(codes: List[str]) -> List[str]:
    """
    Drop duplicates (by normalized form, first spelling wins) and refuse
    blank entries.
    """
    seen = set()
    out: List[str] = []
    for c in codes:
        norm = normalize_code(c)
        if not norm:
            raise ValueError(f"Blank access code in seed file: {c!r}")
        if norm in seen:
            continue
        seen.add(norm)
        out.append(c)
    return out


async def main(path: Optional[str] = None) -> None:
    codes = prepare_codes(load_codes_file(path or settings.CODES_FILE, default_code=settings.DEFAULT_CODE))

    client = AsyncIOMotorClient(settings.MONGO_URI)
    db = client[settings.MONGO_DB]

    code_dal = CodeDAL(db)
    await code_dal.ensure_indexes()
    result = await code_dal.seed_many(codes)

    client.close()
    print(f"Seed complete: inserted={result['inserted']} skipped={result['skipped']} (idempotent).")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
