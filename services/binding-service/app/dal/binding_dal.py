from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import anyio
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, WriteConcern
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..core.errors import BindingConflictError, StorageError
from ..models.binding import Binding
from ..settings import settings
from .json_io import ensure_file, read_json, write_json_atomic

log = logging.getLogger("binding.dal")


class BindingDAL(abc.ABC):
    """
    Mapping binding id -> Binding.

    Stores do not validate the one-binding-per-code rule; the authorizer
    does. A backend that can detect a duplicate normalized code on insert
    raises BindingConflictError instead of writing it.
    Every mutating call is durable once it returns.
    """

    @abc.abstractmethod
    async def find_by_token(self, token: str) -> Optional[Binding]: ...

    @abc.abstractmethod
    async def find_by_normalized_code(self, code_norm: str) -> Optional[Tuple[str, Binding]]: ...

    @abc.abstractmethod
    async def insert(self, binding: Binding) -> None: ...

    @abc.abstractmethod
    async def delete_by_normalized_code(self, code_norm: str) -> int: ...

    @abc.abstractmethod
    async def list_all(self) -> Dict[str, Binding]: ...


class InMemoryBindingDAL(BindingDAL):
    """
    Process-local store for tests and throwaway deployments.
    """
    def __init__(self) -> None:
        self._items: Dict[str, Binding] = {}

    async def find_by_token(self, token: str) -> Optional[Binding]:
        return next((b for b in self._items.values() if b.token == token), None)

    async def find_by_normalized_code(self, code_norm: str) -> Optional[Tuple[str, Binding]]:
        for bid, b in self._items.items():
            if b.code_norm == code_norm:
                return bid, b
        return None

    async def insert(self, binding: Binding) -> None:
        self._items[binding.id] = binding

    async def delete_by_normalized_code(self, code_norm: str) -> int:
        doomed = [bid for bid, b in self._items.items() if b.code_norm == code_norm]
        for bid in doomed:
            del self._items[bid]
        return len(doomed)

    async def list_all(self) -> Dict[str, Binding]:
        return dict(self._items)


class JsonFileBindingDAL(BindingDAL):
    """
    Whole-document JSON file: {"<id>": {id, code, fingerprint, token, created_at}}.

    Every call re-reads the file so out-of-band edits are picked up; every
    mutation rewrites it atomically.
    """
    def __init__(self, path: str | Path):
        self.path = Path(path)
        ensure_file(self.path, {})

    def _load(self) -> Dict[str, Binding]:
        data = read_json(self.path)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise StorageError(f"{self.path.name} must hold a JSON object")
        out: Dict[str, Binding] = {}
        for key, rec in data.items():
            if not isinstance(rec, dict):
                raise StorageError(f"Malformed binding record {key!r} in {self.path.name}")
            try:
                out[key] = Binding.model_validate({"id": key, **rec})
            except PydanticValidationError as e:
                raise StorageError(f"Malformed binding record {key!r} in {self.path.name}") from e
        return out

    def _save(self, items: Dict[str, Binding]) -> None:
        write_json_atomic(self.path, {bid: b.model_dump(mode="json") for bid, b in items.items()})

    def _insert(self, binding: Binding) -> None:
        items = self._load()
        items[binding.id] = binding
        self._save(items)

    def _delete(self, code_norm: str) -> int:
        items = self._load()
        kept = {bid: b for bid, b in items.items() if b.code_norm != code_norm}
        removed = len(items) - len(kept)
        if removed:
            self._save(kept)
        return removed

    # file work runs in a worker thread so the event loop keeps serving
    async def find_by_token(self, token: str) -> Optional[Binding]:
        items = await anyio.to_thread.run_sync(self._load)
        return next((b for b in items.values() if b.token == token), None)

    async def find_by_normalized_code(self, code_norm: str) -> Optional[Tuple[str, Binding]]:
        items = await anyio.to_thread.run_sync(self._load)
        for bid, b in items.items():
            if b.code_norm == code_norm:
                return bid, b
        return None

    async def insert(self, binding: Binding) -> None:
        await anyio.to_thread.run_sync(self._insert, binding)

    async def delete_by_normalized_code(self, code_norm: str) -> int:
        return await anyio.to_thread.run_sync(self._delete, code_norm)

    async def list_all(self) -> Dict[str, Binding]:
        return await anyio.to_thread.run_sync(self._load)


class MongoBindingDAL(BindingDAL):
    """
    One document per binding; `code_norm` carries a unique index so two
    processes racing on the same code cannot both insert.
    """
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db.get_collection(settings.COL_BINDINGS, write_concern=WriteConcern(w=1, j=True))

    async def ensure_indexes(self) -> None:
        await self.col.create_index([("code_norm", ASCENDING)], unique=True)
        await self.col.create_index([("token", ASCENDING)], unique=True)

    @staticmethod
    def _to_doc(b: Binding) -> Dict[str, Any]:
        return {
            "_id": b.id,
            "code": b.code,
            "code_norm": b.code_norm,
            "fingerprint": b.fingerprint,
            "token": b.token,
            "created_at": b.created_at,
        }

    @staticmethod
    def _to_model(doc: Dict[str, Any]) -> Binding:
        return Binding(
            id=str(doc["_id"]),
            code=doc["code"],
            fingerprint=doc["fingerprint"],
            token=doc["token"],
            created_at=doc["created_at"],
        )

    async def find_by_token(self, token: str) -> Optional[Binding]:
        try:
            d = await self.col.find_one({"token": token})
        except PyMongoError as e:
            raise StorageError("Binding lookup failed") from e
        return self._to_model(d) if d else None

    async def find_by_normalized_code(self, code_norm: str) -> Optional[Tuple[str, Binding]]:
        try:
            d = await self.col.find_one({"code_norm": code_norm})
        except PyMongoError as e:
            raise StorageError("Binding lookup failed") from e
        if not d:
            return None
        b = self._to_model(d)
        return b.id, b

    async def insert(self, binding: Binding) -> None:
        try:
            await self.col.insert_one(self._to_doc(binding))
        except DuplicateKeyError:
            log.warning("insert rejected: code already bound binding_id=%s", binding.id)
            raise BindingConflictError(binding.code_norm)
        except PyMongoError as e:
            raise StorageError("Binding insert failed") from e

    async def delete_by_normalized_code(self, code_norm: str) -> int:
        try:
            r = await self.col.delete_many({"code_norm": code_norm})
        except PyMongoError as e:
            raise StorageError("Binding delete failed") from e
        return r.deleted_count

    async def list_all(self) -> Dict[str, Binding]:
        out: Dict[str, Binding] = {}
        try:
            async for d in self.col.find({}).sort("created_at", ASCENDING):
                b = self._to_model(d)
                out[b.id] = b
        except PyMongoError as e:
            raise StorageError("Binding listing failed") from e
        return out


__all__ = [
    "BindingDAL",
    "InMemoryBindingDAL",
    "JsonFileBindingDAL",
    "MongoBindingDAL",
]
