# src/categorized_todo/storage/sqlite_store.py

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import re
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from ..core.ports import Record, coerce_id

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqliteStore:
    """
    SQLite-backed Store: one table per collection, one JSON document per row.

    Schema:
      id   INTEGER PRIMARY KEY AUTOINCREMENT  (never reused, so ids never collide)
      data TEXT                               (record fields except "id", as JSON)

    Thread-safety:
    - each call opens its own SQLite connection
    - writes run inside BEGIN IMMEDIATE so read-merge-write is atomic

    The public methods are coroutines; the blocking work runs in a worker
    thread via asyncio.to_thread.
    """

    def __init__(self, db_path: str | Path, name: str) -> None:
        if not _NAME_RE.match(name or ""):
            raise ValueError(f"invalid collection name: {name!r}")
        self.name = name
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = len(self._load_all())
        except sqlite3.Error:
            total = -1
        logger.info("SqliteStore ready db=%s name=%s total=%s", self._db_path, self.name, total)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        # Autocommit mode; transactions are opened explicitly where needed.
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS "{self.name}" (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    data TEXT NOT NULL DEFAULT '{{}}'
                )
                """
            )
        finally:
            conn.close()

    @staticmethod
    def _encode(fields: Mapping[str, Any]) -> str:
        return json.dumps({k: v for k, v in fields.items() if k != "id"}, ensure_ascii=False)

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> Record:
        try:
            data = json.loads(row["data"] or "{}")
        except json.JSONDecodeError:
            logger.warning("Corrupt JSON in row id=%s; treating as empty record.", row["id"])
            data = {}
        if not isinstance(data, dict):
            data = {}
        return {**data, "id": int(row["id"])}

    def _load_all(self, conn: sqlite3.Connection | None = None) -> list[Record]:
        own = conn is None
        conn = conn or self._get_conn()
        try:
            cur = conn.execute(f'SELECT id, data FROM "{self.name}" ORDER BY id ASC')
            return [self._row_to_record(r) for r in cur.fetchall()]
        finally:
            if own:
                conn.close()

    # ---- blocking implementations ----

    def _find(self, query: Mapping[str, Any]) -> list[Record]:
        return [r for r in self._load_all() if all(r.get(k) == v for k, v in query.items())]

    def _find_by_id(self, record_id: Any) -> Record | None:
        rid = coerce_id(record_id)
        if rid is None:
            return None
        conn = self._get_conn()
        try:
            cur = conn.execute(f'SELECT id, data FROM "{self.name}" WHERE id = ?', (rid,))
            row = cur.fetchone()
            return self._row_to_record(row) if row else None
        finally:
            conn.close()

    def _insert(self, data: Mapping[str, Any]) -> list[Record]:
        conn = self._get_conn()
        try:
            cur = conn.execute(
                f'INSERT INTO "{self.name}"(data) VALUES (?)', (self._encode(data),)
            )
            rowid = cur.lastrowid
            if rowid is None:
                raise RuntimeError(f"SQLite did not return lastrowid for {self.name} insert")
            logger.debug("%s: inserted id=%s", self.name, rowid)
            return [{**json.loads(self._encode(data)), "id": int(rowid)}]
        finally:
            conn.close()

    def _merge(self, data: Mapping[str, Any], record_id: Any) -> list[Record]:
        rid = coerce_id(record_id)
        conn = self._get_conn()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = None
                if rid is not None:
                    row = conn.execute(
                        f'SELECT id, data FROM "{self.name}" WHERE id = ?', (rid,)
                    ).fetchone()
                if row is None:
                    logger.debug("%s: save skipped, no record id=%s", self.name, record_id)
                else:
                    merged = self._row_to_record(row)
                    merged.update(data)
                    conn.execute(
                        f'UPDATE "{self.name}" SET data = ? WHERE id = ?',
                        (self._encode(merged), rid),
                    )
                    logger.debug("%s: updated id=%s fields=%s", self.name, rid, sorted(data))
                items = self._load_all(conn)
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            return items
        finally:
            conn.close()

    def _remove(self, record_id: Any) -> list[Record]:
        rid = coerce_id(record_id)
        conn = self._get_conn()
        try:
            if rid is not None:
                cur = conn.execute(f'DELETE FROM "{self.name}" WHERE id = ?', (rid,))
                if cur.rowcount:
                    logger.debug("%s: removed id=%s", self.name, rid)
            return self._load_all(conn)
        finally:
            conn.close()

    def _drop(self) -> list[Record]:
        conn = self._get_conn()
        try:
            cur = conn.execute(f'DELETE FROM "{self.name}"')
            logger.debug("%s: dropped %s records", self.name, cur.rowcount)
            return []
        finally:
            conn.close()

    # ---- public API (Store) ----

    async def find(self, query: Mapping[str, Any]) -> list[Record]:
        return await asyncio.to_thread(self._find, dict(query))

    async def find_by_id(self, record_id: Any) -> Record | None:
        return await asyncio.to_thread(self._find_by_id, record_id)

    async def find_all(self) -> list[Record]:
        return await asyncio.to_thread(self._load_all)

    async def save(self, data: Mapping[str, Any], record_id: int | None = None) -> list[Record]:
        if record_id is None:
            return await asyncio.to_thread(self._insert, dict(data))
        return await asyncio.to_thread(self._merge, dict(data), record_id)

    async def remove(self, record_id: Any) -> list[Record]:
        return await asyncio.to_thread(self._remove, record_id)

    async def drop(self) -> list[Record]:
        return await asyncio.to_thread(self._drop)
