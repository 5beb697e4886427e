# src/categorized_todo/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a local default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TODO"

BACKEND_SQLITE = "sqlite"
BACKEND_MEMORY = "memory"
_BACKENDS = {BACKEND_SQLITE, BACKEND_MEMORY}


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Local .env never overrides variables already set in the environment.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_choice(name: str, default: str, choices: set[str]) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    return value if value in choices else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Storage ----
    backend: str
    data_dir: Path
    db_path: Path
    tasks_collection: str
    categories_collection: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "todo").strip() or "todo"
        log_level = _env(_k("LOG_LEVEL"), "INFO").strip().upper() or "INFO"

        backend = _env_choice(_k("BACKEND"), BACKEND_SQLITE, _BACKENDS)
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/todo"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "todo.sqlite3")

        tasks_collection = _env(_k("TASKS_COLLECTION"), "tasks").strip() or "tasks"
        categories_collection = (
            _env(_k("CATEGORIES_COLLECTION"), "categories").strip() or "categories"
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            backend=backend,
            data_dir=data_dir,
            db_path=db_path,
            tasks_collection=tasks_collection,
            categories_collection=categories_collection,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
