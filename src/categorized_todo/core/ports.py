# src/categorized_todo/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The model depends on the Store protocol instead of a concrete backend.
This keeps persistence swappable (SQLite, in-memory) and makes testing easier.
"""

import numbers
from collections.abc import Mapping
from typing import Any, Protocol

Record = dict[str, Any]
# Flat, schemaless record. Every stored record carries an integer "id".


def coerce_id(raw: Any) -> int | None:
    """Loose id comparison: 3, 3.0, "3" and " 3 " all mean 3. Anything else -> None."""
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return raw
    try:
        if isinstance(raw, numbers.Real):
            # Truncates like parseInt: 2.7 -> 2.
            return int(raw)
        return int(str(raw).strip())
    except (ValueError, OverflowError):
        return None


class Store(Protocol):
    """
    Ordered collection of flat records keyed by an auto-assigned integer id.

    Every method is a coroutine; once awaited, the effect is durable and
    visible to the next call on the same store.
    """

    name: str

    async def find(self, query: Mapping[str, Any]) -> list[Record]: ...

    async def find_by_id(self, record_id: Any) -> Record | None: ...

    async def find_all(self) -> list[Record]: ...

    async def save(self, data: Mapping[str, Any], record_id: int | None = None) -> list[Record]:
        """
        Without record_id: insert, return [new_record].
        With record_id: merge fields into that record, return the full collection
        (unchanged if no record has that id).
        """
        ...

    async def remove(self, record_id: Any) -> list[Record]: ...

    async def drop(self) -> list[Record]: ...
