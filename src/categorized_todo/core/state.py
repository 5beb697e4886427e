# src/categorized_todo/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.model import TodoModel
from .ports import Store


@dataclass(slots=True)
class AppState:
    """Everything a connector needs: settings plus the wired model and its stores."""

    settings: Any
    task_store: Store
    category_store: Store
    model: TodoModel
