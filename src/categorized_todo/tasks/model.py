# src/categorized_todo/tasks/model.py

from __future__ import annotations

"""
Task/category orchestration.

TodoModel is the only writer of the two stores. Categories are never managed
directly by callers:
- a category is created the first time a task names it,
- it is shared by every task using the same (trimmed, case-sensitive) name,
- it is deleted as soon as no task references it.

Every read joins tasks with their category name (`category_name`).

Per-name asyncio locks serialize the find-then-create of a category and the
count-then-delete of a category, so concurrent callers can never produce two
categories with the same name or delete a category a new task just picked up.
remove_all takes a model-wide gate exclusively and waits for those sections.
"""

import asyncio
import contextlib
import inspect
import logging
from collections.abc import AsyncIterator, Callable, Mapping
from typing import Any, TypeVar

from ..core.ports import Record, Store, coerce_id
from .task_models import (
    CATEGORY_ID,
    CATEGORY_NAME,
    COMPLETED,
    NAME,
    ReadById,
    ReadByPredicate,
    TaskCount,
    join_category,
    new_task,
    to_query,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
Callback = Callable[[Any], Any]


async def _deliver(callback: Callback | None, result: T) -> T:
    """Invoke the completion callback exactly once (sync or async) and pass the result through."""
    if callback is not None:
        ret = callback(result)
        if inspect.isawaitable(ret):
            await ret
    return result


class _NameLocks:
    """
    Registry of asyncio locks keyed by category name.

    Locks are reference-counted and dropped once nobody holds or waits on them,
    so the registry does not grow with every name ever used.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, name: str) -> AsyncIterator[None]:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        self._users[name] = self._users.get(name, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[name] -= 1
            if self._users[name] == 0:
                del self._users[name]
                del self._locks[name]

    def __len__(self) -> int:
        return len(self._locks)


class _WriteGate:
    """
    Shared/exclusive gate over the whole model.

    Name-locked sections enter it shared; remove_all enters it exclusively, so a
    wipe never lands between a category lookup and the task save that uses it.
    """

    def __init__(self) -> None:
        self._cond = asyncio.Condition()
        self._shared = 0
        self._exclusive = False

    @contextlib.asynccontextmanager
    async def shared(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._exclusive)
            self._shared += 1
        try:
            yield
        finally:
            async with self._cond:
                self._shared -= 1
                self._cond.notify_all()

    @contextlib.asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._cond:
            await self._cond.wait_for(lambda: not self._exclusive and self._shared == 0)
            self._exclusive = True
        try:
            yield
        finally:
            async with self._cond:
                self._exclusive = False
                self._cond.notify_all()


class TodoModel:
    """
    Task-centric API over a task Store and a category Store.

    Every public method is a coroutine taking an optional `callback`; the
    callback fires exactly once with the result, which is also returned.
    """

    def __init__(self, task_store: Store, category_store: Store) -> None:
        self.task_store = task_store
        self.category_store = category_store
        self._locks = _NameLocks()
        self._gate = _WriteGate()
        # name -> id; verified against the store before use.
        self._category_index: dict[str, int] = {}

    # ---- categories (private) ----

    @contextlib.asynccontextmanager
    async def _guard(self, name: str) -> AsyncIterator[None]:
        """Critical section for one category name; excluded by remove_all."""
        async with self._gate.shared(), self._locks.hold(name):
            yield

    async def _resolve_category(self, name: str) -> int:
        """Find-or-create the category called `name`. Caller must hold the name guard."""
        cached = self._category_index.get(name)
        if cached is not None:
            category = await self.category_store.find_by_id(cached)
            if category is not None and category.get(NAME) == name:
                return cached
            self._category_index.pop(name, None)

        found = await self.category_store.find({NAME: name})
        if found:
            category_id = int(found[0]["id"])
        else:
            created = await self.category_store.save({NAME: name})
            category_id = int(created[0]["id"])
            logger.info("Category created id=%s name=%r", category_id, name)

        self._category_index[name] = category_id
        return category_id

    async def _drop_category(self, category: Record) -> None:
        await self.category_store.remove(category["id"])
        name = category.get(NAME)
        if self._category_index.get(name) == category["id"]:
            del self._category_index[name]
        logger.info("Category deleted id=%s name=%r (no tasks left)", category["id"], name)

    async def _prune_category(self, category_id: Any) -> None:
        """Delete the category if no task references it anymore."""
        category = await self.category_store.find_by_id(category_id)
        if category is None:
            return
        async with self._guard(str(category.get(NAME, ""))):
            if not await self.task_store.find({CATEGORY_ID: category["id"]}):
                await self._drop_category(category)

    async def _category_names(self) -> dict[int, str]:
        return {c["id"]: c.get(NAME, "") for c in await self.category_store.find_all()}

    # ---- public API ----

    async def create(
        self,
        title: str | None,
        category_name: str | None,
        callback: Callback | None = None,
    ) -> list[Record]:
        title = (title or "").strip()
        name = (category_name or "").strip()

        async with self._guard(name):
            category_id = await self._resolve_category(name)
            saved = await self.task_store.save(new_task(title, category_id))

        logger.info("Task created id=%s category_id=%s", saved[0]["id"], category_id)
        return await _deliver(callback, saved)

    async def read(self, query: Any = None, callback: Callback | None = None) -> Any:
        """
        Read tasks joined with their category name.

        query:
        - None / ReadAll()          -> list of every task
        - int / str / ReadById(id)  -> one task or None
        - mapping / ReadByPredicate -> list of tasks whose fields match;
          a `category_name` key filters on the joined name
        """
        q = to_query(query)

        if isinstance(q, ReadById):
            return await _deliver(callback, await self._read_one(q.task_id))

        if isinstance(q, ReadByPredicate):
            stored = {k: v for k, v in q.fields.items() if k != CATEGORY_NAME}
            tasks = await self.task_store.find(stored)
        else:
            tasks = await self.task_store.find_all()

        names = await self._category_names()
        data = [join_category(t, names.get(t.get(CATEGORY_ID))) for t in tasks]

        if isinstance(q, ReadByPredicate) and CATEGORY_NAME in q.fields:
            wanted = q.fields[CATEGORY_NAME]
            data = [t for t in data if t.get(CATEGORY_NAME) == wanted]

        return await _deliver(callback, data)

    async def _read_one(self, raw_id: Any) -> Record | None:
        task_id = coerce_id(raw_id)
        if task_id is None:
            return None
        task = await self.task_store.find_by_id(task_id)
        if task is None:
            return None
        category = None
        if task.get(CATEGORY_ID) is not None:
            category = await self.category_store.find_by_id(task[CATEGORY_ID])
        return join_category(task, category.get(NAME) if category else None)

    async def update(
        self,
        task_id: Any,
        data: Mapping[str, Any],
        callback: Callback | None = None,
    ) -> list[Record]:
        """
        Merge `data` into a task.

        A `category_name` key is not stored: it is resolved to a category id
        (created if needed) and the previous category is dropped when this
        task was its last reference.
        """
        fields = dict(data)
        if CATEGORY_NAME not in fields:
            return await _deliver(callback, await self.task_store.save(fields, task_id))

        name = (fields.pop(CATEGORY_NAME) or "").strip()
        task = await self.task_store.find_by_id(task_id)
        if task is None:
            # Unknown task: plain no-op, no category gets created.
            return await _deliver(callback, await self.task_store.save(fields, task_id))

        previous_id = task.get(CATEGORY_ID)
        async with self._guard(name):
            category_id = await self._resolve_category(name)
            fields[CATEGORY_ID] = category_id
            items = await self.task_store.save(fields, task["id"])

        if not any(t.get("id") == task["id"] for t in items):
            # Task vanished between lookup and save.
            await self._prune_category(category_id)
        if previous_id is not None and previous_id != category_id:
            logger.debug(
                "Task %s moved category %s -> %s", task["id"], previous_id, category_id
            )
            await self._prune_category(previous_id)

        return await _deliver(callback, items)

    async def remove(self, task_id: Any, callback: Callback | None = None) -> list[Record]:
        task = await self.task_store.find_by_id(task_id)
        if task is None:
            return await _deliver(callback, await self.task_store.remove(task_id))

        category = None
        if task.get(CATEGORY_ID) is not None:
            category = await self.category_store.find_by_id(task[CATEGORY_ID])

        if category is None:
            items = await self.task_store.remove(task["id"])
        else:
            async with self._guard(str(category.get(NAME, ""))):
                siblings = await self.task_store.find({CATEGORY_ID: category["id"]})
                remaining = [t for t in siblings if t.get("id") != task["id"]]
                items = await self.task_store.remove(task["id"])
                if not remaining:
                    await self._drop_category(category)

        logger.info("Task removed id=%s", task["id"])
        return await _deliver(callback, items)

    async def remove_all(self, callback: Callback | None = None) -> list[Record]:
        """WARNING: wipes every task and every category."""
        async with self._gate.exclusive():
            await self.task_store.drop()
            await self.category_store.drop()
            self._category_index.clear()
        logger.info("All tasks and categories removed.")
        return await _deliver(callback, [])

    async def get_count(self, callback: Callback | None = None) -> TaskCount:
        tasks = await self.task_store.find_all()
        completed = sum(1 for t in tasks if t.get(COMPLETED))
        count = TaskCount(active=len(tasks) - completed, completed=completed, total=len(tasks))
        return await _deliver(callback, count)

    # ---- bulk helpers built on the public API ----

    async def toggle_all(self, completed: bool, callback: Callback | None = None) -> list[int]:
        changed: list[int] = []
        for task in await self.task_store.find_all():
            if bool(task.get(COMPLETED)) != completed:
                await self.task_store.save({COMPLETED: completed}, task["id"])
                changed.append(task["id"])
        logger.info("toggle_all completed=%s changed=%s", completed, len(changed))
        return await _deliver(callback, changed)

    async def remove_completed(self, callback: Callback | None = None) -> list[int]:
        removed: list[int] = []
        for task in await self.task_store.find({COMPLETED: True}):
            await self.remove(task["id"])
            removed.append(task["id"])
        return await _deliver(callback, removed)
