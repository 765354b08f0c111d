import json
import os
import time
from types import SimpleNamespace

import anyio
import pytest
from pymongo.errors import DuplicateKeyError

from app.core.errors import BindingConflictError, StorageError
from app.dal import InMemoryBindingDAL, JsonFileBindingDAL, MongoBindingDAL
from app.models import Binding

pytestmark = pytest.mark.anyio


@pytest.fixture(params=["memory", "file"])
def dal(request, tmp_path):
    if request.param == "memory":
        return InMemoryBindingDAL()
    return JsonFileBindingDAL(tmp_path / "bindings.json")


async def test_insert_then_lookup(dal):
    b = Binding.issue(code="a b c123", fingerprint="F1")
    await dal.insert(b)

    assert await dal.find_by_token(b.token) == b
    found = await dal.find_by_normalized_code("ABC123")
    assert found == (b.id, b)
    assert found[1].code == "a b c123"
    assert await dal.find_by_token("nope") is None
    assert await dal.find_by_normalized_code("OTHER") is None


async def test_delete_by_normalized_code(dal):
    keep = Binding.issue(code="ZETA-42", fingerprint="F2")
    await dal.insert(Binding.issue(code="abc123", fingerprint="F1"))
    await dal.insert(keep)

    assert await dal.delete_by_normalized_code("ABC123") == 1
    assert await dal.delete_by_normalized_code("ABC123") == 0
    assert list((await dal.list_all()).values()) == [keep]


async def test_file_store_survives_reopen(tmp_path):
    path = tmp_path / "bindings.json"
    b = Binding.issue(code="ABC123", fingerprint="F1")
    await JsonFileBindingDAL(path).insert(b)

    reopened = JsonFileBindingDAL(path)
    assert await reopened.find_by_token(b.token) == b
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk[b.id]["fingerprint"] == "F1"
    assert on_disk[b.id]["code"] == "ABC123"


async def test_file_store_creates_empty_document(tmp_path):
    path = tmp_path / "nested" / "bindings.json"
    dal = JsonFileBindingDAL(path)
    assert path.exists()
    assert await dal.list_all() == {}


async def test_file_store_reads_legacy_records(tmp_path):
    path = tmp_path / "bindings.json"
    path.write_text(
        json.dumps(
            {
                "b-1": {
                    "id": "b-1",
                    "code": "abc123",
                    "fingerprint": "F1",
                    "token": "t-1",
                    "createdAt": "2024-05-01T10:00:00.000Z",
                }
            }
        ),
        encoding="utf-8",
    )
    dal = JsonFileBindingDAL(path)
    found = await dal.find_by_normalized_code("ABC123")
    assert found is not None
    assert found[1].token == "t-1"
    assert found[1].created_at.year == 2024


async def test_corrupt_file_is_never_overwritten(tmp_path):
    path = tmp_path / "bindings.json"
    path.write_text("{not json", encoding="utf-8")
    dal = JsonFileBindingDAL(path)

    with pytest.raises(StorageError):
        await dal.find_by_normalized_code("ABC123")
    with pytest.raises(StorageError):
        await dal.insert(Binding.issue(code="ABC123", fingerprint="F1"))
    assert path.read_text(encoding="utf-8") == "{not json"


async def test_file_store_keeps_event_loop_responsive(tmp_path, monkeypatch):
    dal = JsonFileBindingDAL(tmp_path / "bindings.json")
    real_fsync = os.fsync

    def slow_fsync(fd):
        time.sleep(0.3)
        real_fsync(fd)

    monkeypatch.setattr(os, "fsync", slow_fsync)
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            await anyio.sleep(0.01)
            ticks += 1

    async with anyio.create_task_group() as tg:
        tg.start_soon(ticker)
        await dal.insert(Binding.issue(code="ABC123", fingerprint="F1"))
        tg.cancel_scope.cancel()

    assert ticks > 5
    assert len(await dal.list_all()) == 1


async def test_malformed_record_is_a_storage_error(tmp_path):
    path = tmp_path / "bindings.json"
    path.write_text(json.dumps({"b-1": {"code": "ABC123"}}), encoding="utf-8")
    with pytest.raises(StorageError):
        await JsonFileBindingDAL(path).list_all()


# ---------------------------------------------------------------------------
# Mongo backend against a minimal in-process collection
# ---------------------------------------------------------------------------
class _Cursor:
    def __init__(self, docs):
        self._docs = list(docs)

    def sort(self, key, direction):
        self._docs.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    def __aiter__(self):
        self._it = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration


class _Collection:
    def __init__(self):
        self.docs = {}
        self.indexes = []

    async def create_index(self, keys, unique=False):
        self.indexes.append((tuple(keys), unique))

    async def insert_one(self, doc):
        if any(d["code_norm"] == doc["code_norm"] for d in self.docs.values()):
            raise DuplicateKeyError("E11000 duplicate key error")
        self.docs[doc["_id"]] = dict(doc)

    async def find_one(self, flt):
        return next((d for d in self.docs.values() if all(d.get(k) == v for k, v in flt.items())), None)

    async def delete_many(self, flt):
        doomed = [k for k, d in self.docs.items() if all(d.get(f) == v for f, v in flt.items())]
        for k in doomed:
            del self.docs[k]
        return SimpleNamespace(deleted_count=len(doomed))

    def find(self, flt):
        return _Cursor(self.docs.values())


class _Database:
    def __init__(self):
        self.collections = {}

    def get_collection(self, name, **kwargs):
        return self.collections.setdefault(name, _Collection())


async def test_mongo_store_maps_duplicate_key_to_conflict():
    db = _Database()
    dal = MongoBindingDAL(db)
    await dal.ensure_indexes()
    assert ((("code_norm", 1),), True) in db.collections["bindings"].indexes

    first = Binding.issue(code="abc123", fingerprint="F1")
    await dal.insert(first)
    with pytest.raises(BindingConflictError):
        await dal.insert(Binding.issue(code="A B C 123", fingerprint="F2"))

    stored = db.collections["bindings"].docs[first.id]
    assert stored["code_norm"] == "ABC123"
    assert stored["code"] == "abc123"
    assert (await dal.find_by_normalized_code("ABC123"))[1] == first
    assert await dal.find_by_token(first.token) == first
    assert list(await dal.list_all()) == [first.id]
    assert await dal.delete_by_normalized_code("ABC123") == 1
