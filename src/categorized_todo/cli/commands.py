# src/categorized_todo/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, cast

from ..core.ports import Record
from ..core.state import AppState
from ..tasks.task_models import (
    CATEGORY_NAME,
    COMPLETED,
    NAME,
    TITLE,
    ReadById,
    ReadByPredicate,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], Awaitable[str]]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def split_title_category(args: list[str]) -> tuple[str, str | None]:
    """'Buy milk @Groceries' -> ('Buy milk', 'Groceries'); no '@' -> (text, None)."""
    text = " ".join(args)
    if "@" not in text:
        return text.strip(), None
    title, _, category = text.rpartition("@")
    return title.strip(), category.strip()


def format_task(task: Record) -> str:
    mark = "x" if task.get(COMPLETED) else " "
    category = task.get(CATEGORY_NAME)
    suffix = f"  @{category}" if category else ""
    return f"[{mark}] {task['id']}: {task.get(TITLE, '')}{suffix}"


def _parse_id(args: list[str]) -> int | None:
    if not args:
        return None
    try:
        return int(args[0])
    except ValueError:
        return None


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_add(state: AppState, args: list[str]) -> str:
    title, category = split_title_category(args)
    if not title:
        return "Usage: /add <title> [@<category>]"
    saved = await state.model.create(title, category)
    return f"Added task {saved[0]['id']}."


async def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list            -> every task
    /list active     -> tasks not completed
    /list completed  -> completed tasks
    """
    sub = args[0].lower() if args else "all"
    if sub == "all":
        tasks = await state.model.read()
    elif sub == "active":
        tasks = await state.model.read(ReadByPredicate({COMPLETED: False}))
    elif sub in ("completed", "done"):
        tasks = await state.model.read(ReadByPredicate({COMPLETED: True}))
    else:
        return "Usage: /list [active|completed]"
    if not tasks:
        return "No tasks."
    return "\n".join(format_task(t) for t in tasks)


async def cmd_show(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /show <id>"
    task = await state.model.read(ReadById(task_id))
    if task is None:
        return f"No task with id={task_id}."
    return format_task(task)


async def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /done <id> | /undo <id>"
    if await state.model.read(ReadById(task_id)) is None:
        return f"No task with id={task_id}."
    await state.model.update(task_id, {COMPLETED: completed})
    return f"Task {task_id} marked {'completed' if completed else 'active'}."


async def cmd_done(state: AppState, args: list[str]) -> str:
    return await _set_completed(state, args, True)


async def cmd_undo(state: AppState, args: list[str]) -> str:
    return await _set_completed(state, args, False)


async def cmd_edit(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    title, category = split_title_category(args[1:])
    if task_id is None or not title:
        return "Usage: /edit <id> <title> [@<category>]"
    if await state.model.read(ReadById(task_id)) is None:
        return f"No task with id={task_id}."
    data: dict[str, Any] = {TITLE: title}
    if category is not None:
        data[CATEGORY_NAME] = category
    await state.model.update(task_id, data)
    return f"Task {task_id} updated."


async def cmd_move(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None or len(args) < 2:
        return "Usage: /move <id> <category>"
    if await state.model.read(ReadById(task_id)) is None:
        return f"No task with id={task_id}."
    await state.model.update(task_id, {CATEGORY_NAME: " ".join(args[1:])})
    return f"Task {task_id} moved."


async def cmd_rm(state: AppState, args: list[str]) -> str:
    task_id = _parse_id(args)
    if task_id is None:
        return "Usage: /rm <id>"
    if await state.model.read(ReadById(task_id)) is None:
        return f"No task with id={task_id}."
    await state.model.remove(task_id)
    return f"Task {task_id} removed."


async def cmd_toggle_all(state: AppState, args: list[str]) -> str:
    arg = args[0].lower() if args else ""
    if arg in ("on", "1", "true", "yes"):
        completed = True
    elif arg in ("off", "0", "false", "no"):
        completed = False
    else:
        return "Usage: /toggle-all on | /toggle-all off"
    changed = await state.model.toggle_all(completed)
    return f"{len(changed)} task(s) updated."


async def cmd_clear_completed(state: AppState, args: list[str]) -> str:
    removed = await state.model.remove_completed()
    return f"{len(removed)} completed task(s) removed."


async def cmd_clear(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if emit is not None:
        emit("Removing every task and category...")
    await state.model.remove_all()
    return "All tasks removed."


async def cmd_count(state: AppState, args: list[str]) -> str:
    count = await state.model.get_count()
    return f"Active: {count.active}  Completed: {count.completed}  Total: {count.total}"


async def cmd_categories(state: AppState, args: list[str]) -> str:
    categories = await state.category_store.find_all()
    if not categories:
        return "No categories."
    return "\n".join(f"{c['id']}: {c.get(NAME, '')}" for c in categories)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("add", cmd_add, help_text="Add a task: /add <title> @<category>.")
registry.register("list", cmd_list, help_text="List tasks: /list [active|completed].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <id>.")
registry.register("done", cmd_done, help_text="Mark a task completed: /done <id>.")
registry.register("undo", cmd_undo, help_text="Mark a task active again: /undo <id>.")
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> <title> [@<category>].")
registry.register("move", cmd_move, help_text="Change a task's category: /move <id> <category>.")
registry.register("rm", cmd_rm, help_text="Remove a task: /rm <id>.", aliases=["del"])
registry.register("toggle-all", cmd_toggle_all, help_text="Mark all tasks: /toggle-all on | off.")
registry.register(
    "clear-completed", cmd_clear_completed, help_text="Remove every completed task."
)
registry.register("clear", cmd_clear, help_text="Remove every task and category.")
registry.register("count", cmd_count, help_text="Show active/completed/total counts.")
registry.register("categories", cmd_categories, help_text="List categories in use.")
