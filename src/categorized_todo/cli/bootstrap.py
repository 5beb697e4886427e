# src/categorized_todo/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the configured Store backend into a TodoModel and an AppState.
"""

from __future__ import annotations

import logging

from ..config import BACKEND_MEMORY, get_settings
from ..core.ports import Store
from ..core.state import AppState
from ..storage.memory_store import MemoryStore
from ..storage.sqlite_store import SqliteStore
from ..tasks.model import TodoModel

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def _open_store(settings, name: str) -> Store:
    if settings.backend == BACKEND_MEMORY:
        return MemoryStore(name)
    return SqliteStore(settings.db_path, name)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if settings.backend != BACKEND_MEMORY:
        _ensure_local_dirs(settings)

    task_store = _open_store(settings, settings.tasks_collection)
    category_store = _open_store(settings, settings.categories_collection)
    logger.debug("Stores wired backend=%s", settings.backend)

    return AppState(
        settings=settings,
        task_store=task_store,
        category_store=category_store,
        model=TodoModel(task_store, category_store),
    )
