# src/categorized_todo/storage/memory_store.py

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping
from typing import Any

from ..core.ports import Record, coerce_id

logger = logging.getLogger(__name__)


class MemoryStore:
    """
    In-process Store: a plain list of dicts, insertion-ordered.

    Ids come from a counter that starts above the largest preloaded id, so they
    never collide even when two saves happen in the same instant.
    Every read returns deep copies; callers cannot mutate stored records.
    """

    def __init__(self, name: str, records: Iterable[Mapping[str, Any]] | None = None) -> None:
        self.name = name
        self._items: list[Record] = [dict(r) for r in (records or [])]
        self._last_id = max((int(r["id"]) for r in self._items if "id" in r), default=0)
        logger.info("MemoryStore ready name=%s total=%s", self.name, len(self._items))

    def _snapshot(self) -> list[Record]:
        return copy.deepcopy(self._items)

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    async def find(self, query: Mapping[str, Any]) -> list[Record]:
        return [
            copy.deepcopy(item)
            for item in self._items
            if all(item.get(k) == v for k, v in query.items())
        ]

    async def find_by_id(self, record_id: Any) -> Record | None:
        rid = coerce_id(record_id)
        if rid is None:
            return None
        for item in self._items:
            if item.get("id") == rid:
                return copy.deepcopy(item)
        return None

    async def find_all(self) -> list[Record]:
        return self._snapshot()

    async def save(self, data: Mapping[str, Any], record_id: int | None = None) -> list[Record]:
        if record_id is None:
            item = copy.deepcopy(dict(data))
            item["id"] = self._next_id()
            self._items.append(item)
            logger.debug("%s: inserted id=%s", self.name, item["id"])
            return [copy.deepcopy(item)]

        rid = coerce_id(record_id)
        for item in self._items:
            if rid is not None and item.get("id") == rid:
                fields = {k: copy.deepcopy(v) for k, v in data.items() if k != "id"}
                item.update(fields)
                logger.debug("%s: updated id=%s fields=%s", self.name, rid, sorted(fields))
                break
        else:
            logger.debug("%s: save skipped, no record id=%s", self.name, record_id)
        return self._snapshot()

    async def remove(self, record_id: Any) -> list[Record]:
        rid = coerce_id(record_id)
        for i, item in enumerate(self._items):
            if rid is not None and item.get("id") == rid:
                del self._items[i]
                logger.debug("%s: removed id=%s", self.name, rid)
                break
        return self._snapshot()

    async def drop(self) -> list[Record]:
        n = len(self._items)
        self._items.clear()
        logger.debug("%s: dropped %s records", self.name, n)
        return []
