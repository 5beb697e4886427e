# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from categorized_todo.cli.bootstrap import create_initial_state
from categorized_todo.core.state import AppState
from categorized_todo.storage.memory_store import MemoryStore
from categorized_todo.storage.sqlite_store import SqliteStore
from categorized_todo.tasks.model import TodoModel


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and AppState.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="todo-test",
        log_level="DEBUG",
        backend="sqlite",
        data_dir=tmp_path,
        db_path=tmp_path / "todo.sqlite3",
        tasks_collection="tasks",
        categories_collection="categories",
    )


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path: Path):
    """Factory for a fresh Store of each backend, keyed by collection name."""

    def _make(name: str):
        if request.param == "memory":
            return MemoryStore(name)
        return SqliteStore(tmp_path / "store.sqlite3", name)

    return _make


@pytest.fixture()
def model(make_store) -> TodoModel:
    """
    TodoModel over both backends.

    NOTE: SqliteStore is real here because its ordering guarantees are part of
    what the model relies on.
    """
    return TodoModel(make_store("tasks"), make_store("categories"))


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    return create_initial_state(settings=settings)
