# tests/test_store.py

from __future__ import annotations

from pathlib import Path

import pytest

from categorized_todo.storage.memory_store import MemoryStore
from categorized_todo.storage.sqlite_store import SqliteStore


@pytest.mark.asyncio
async def test_save_assigns_unique_increasing_ids(make_store) -> None:
    store = make_store("items")

    first = await store.save({"name": "a"})
    second = await store.save({"name": "b"})

    assert len(first) == 1 and first[0]["name"] == "a"
    assert second[0]["id"] > first[0]["id"]
    assert [r["name"] for r in await store.find_all()] == ["a", "b"]


@pytest.mark.asyncio
async def test_find_matches_every_predicate_field(make_store) -> None:
    store = make_store("items")
    await store.save({"title": "x", "completed": False, "category_id": 1})
    await store.save({"title": "y", "completed": True, "category_id": 1})
    await store.save({"title": "z", "completed": True, "category_id": 2})

    done_in_1 = await store.find({"completed": True, "category_id": 1})
    assert [r["title"] for r in done_in_1] == ["y"]

    assert len(await store.find({})) == 3
    assert await store.find({"title": "nope"}) == []


@pytest.mark.asyncio
async def test_find_by_id_coerces_string_ids(make_store) -> None:
    store = make_store("items")
    rid = (await store.save({"name": "a"}))[0]["id"]

    assert (await store.find_by_id(rid))["name"] == "a"
    assert (await store.find_by_id(str(rid)))["name"] == "a"
    assert await store.find_by_id(rid + 100) is None
    assert await store.find_by_id("not-a-number") is None


@pytest.mark.asyncio
async def test_save_with_id_merges_fields_and_returns_collection(make_store) -> None:
    store = make_store("items")
    rid = (await store.save({"title": "a", "completed": False}))[0]["id"]
    await store.save({"title": "b"})

    items = await store.save({"completed": True}, rid)

    assert len(items) == 2
    merged = await store.find_by_id(rid)
    assert merged == {"id": rid, "title": "a", "completed": True}


@pytest.mark.asyncio
async def test_save_with_unknown_id_is_a_noop(make_store) -> None:
    store = make_store("items")
    await store.save({"title": "a"})
    before = await store.find_all()

    after = await store.save({"title": "zzz"}, 99999)

    assert after == before


@pytest.mark.asyncio
async def test_save_never_changes_the_id(make_store) -> None:
    store = make_store("items")
    rid = (await store.save({"title": "a"}))[0]["id"]

    await store.save({"id": rid + 5, "title": "b"}, rid)

    assert (await store.find_by_id(rid))["title"] == "b"
    assert await store.find_by_id(rid + 5) is None


@pytest.mark.asyncio
async def test_remove_and_drop(make_store) -> None:
    store = make_store("items")
    a = (await store.save({"name": "a"}))[0]["id"]
    await store.save({"name": "b"})

    remaining = await store.remove(a)
    assert [r["name"] for r in remaining] == ["b"]

    # Unknown id: no error, collection unchanged.
    assert await store.remove(a) == remaining

    assert await store.drop() == []
    assert await store.find_all() == []


@pytest.mark.asyncio
async def test_ids_are_not_reused_after_remove(make_store) -> None:
    store = make_store("items")
    a = (await store.save({"name": "a"}))[0]["id"]
    await store.remove(a)

    b = (await store.save({"name": "b"}))[0]["id"]

    assert b != a


@pytest.mark.asyncio
async def test_returned_records_are_copies(make_store) -> None:
    store = make_store("items")
    data = {"name": "a"}
    saved = await store.save(data)

    assert "id" not in data
    saved[0]["name"] = "mutated"
    (await store.find_all())[0]["name"] = "mutated"
    assert (await store.find_by_id(saved[0]["id"]))["name"] == "a"


@pytest.mark.asyncio
async def test_memory_store_continues_after_preloaded_ids() -> None:
    store = MemoryStore("items", [{"id": 7, "name": "old"}])

    new = await store.save({"name": "new"})
    assert new[0]["id"] == 8


@pytest.mark.asyncio
async def test_sqlite_store_survives_reopen(tmp_path: Path) -> None:
    db = tmp_path / "todo.sqlite3"
    first = SqliteStore(db, "tasks")
    rid = (await first.save({"title": "persisted", "completed": False}))[0]["id"]

    reopened = SqliteStore(db, "tasks")

    assert await reopened.find_by_id(rid) == {"id": rid, "title": "persisted", "completed": False}


@pytest.mark.asyncio
async def test_sqlite_store_collections_are_independent(tmp_path: Path) -> None:
    db = tmp_path / "todo.sqlite3"
    tasks = SqliteStore(db, "tasks")
    categories = SqliteStore(db, "categories")

    await tasks.save({"title": "t"})
    await categories.drop()

    assert len(await tasks.find_all()) == 1


def test_sqlite_store_rejects_unsafe_collection_names(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        SqliteStore(tmp_path / "x.sqlite3", 'tasks"; DROP TABLE x; --')
