# src/categorized_todo/tasks/task_models.py

from __future__ import annotations

import numbers
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from ..core.ports import Record

# Record keys shared by the model and its callers.
TITLE = "title"
COMPLETED = "completed"
CATEGORY_ID = "category_id"
CATEGORY_NAME = "category_name"
NAME = "name"


@dataclass(frozen=True, slots=True)
class ReadAll:
    """Every task."""


@dataclass(frozen=True, slots=True)
class ReadById:
    task_id: int | float | str


@dataclass(frozen=True, slots=True)
class ReadByPredicate:
    """Tasks whose fields equal every field in `fields`."""

    fields: Mapping[str, Any] = field(default_factory=dict)


ReadQuery = Union[ReadAll, ReadById, ReadByPredicate]


def to_query(raw: Any) -> ReadQuery:
    """
    Normalize the loose call shapes accepted by TodoModel.read:
    - None                 -> ReadAll
    - number / str         -> ReadById
    - mapping              -> ReadByPredicate
    - a ReadQuery instance -> itself
    """
    if raw is None:
        return ReadAll()
    if isinstance(raw, (ReadAll, ReadById, ReadByPredicate)):
        return raw
    if isinstance(raw, (numbers.Real, str)) and not isinstance(raw, bool):
        return ReadById(raw)
    if isinstance(raw, Mapping):
        return ReadByPredicate(dict(raw))
    raise TypeError(f"unsupported read query: {type(raw).__name__}")


@dataclass(frozen=True, slots=True)
class TaskCount:
    active: int = 0
    completed: int = 0
    total: int = 0

    def as_dict(self) -> dict[str, int]:
        return {"active": self.active, "completed": self.completed, "total": self.total}


def new_task(title: str, category_id: int) -> Record:
    return {TITLE: title, CATEGORY_ID: category_id, COMPLETED: False}


def join_category(task: Record, category_name: str | None) -> Record:
    """Copy of `task` with category_name set; left unset when the category is gone."""
    out = dict(task)
    out.pop(CATEGORY_NAME, None)
    if category_name is not None:
        out[CATEGORY_NAME] = category_name
    return out
