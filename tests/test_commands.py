# tests/test_commands.py

from __future__ import annotations

import pytest

from categorized_todo.cli.commands import (
    CommandRegistry,
    format_task,
    registry,
    split_title_category,
)


@pytest.mark.asyncio
async def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    async def h2(state, args):
        called["h2"] += 1
        return "h2"

    async def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert await reg.handle(state, "/a x") == "h2"
    assert await reg.handle(state, "/b y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


def test_split_title_category() -> None:
    assert split_title_category(["Buy", "milk", "@Groceries"]) == ("Buy milk", "Groceries")
    assert split_title_category(["Email", "a@b.c", "@Work", "stuff"]) == (
        "Email a@b.c",
        "Work stuff",
    )
    assert split_title_category(["Plain"]) == ("Plain", None)


def test_format_task() -> None:
    line = format_task({"id": 3, "title": "A", "completed": True, "category_name": "Work"})
    assert line == "[x] 3: A  @Work"
    assert format_task({"id": 4, "title": "B", "completed": False}) == "[ ] 4: B"


@pytest.mark.asyncio
async def test_console_commands_end_to_end(state) -> None:
    assert await registry.handle(state, "/add Buy milk @Groceries") == "Added task 1."
    assert await registry.handle(state, "/add Call mom @Family") == "Added task 2."

    listing = await registry.handle(state, "/list")
    assert "[ ] 1: Buy milk  @Groceries" in listing
    assert "[ ] 2: Call mom  @Family" in listing

    assert "completed" in await registry.handle(state, "/done 1")
    assert await registry.handle(state, "/count") == "Active: 1  Completed: 1  Total: 2"
    assert "Buy milk" in await registry.handle(state, "/list completed")
    assert "Buy milk" not in await registry.handle(state, "/list active")

    assert await registry.handle(state, "/move 2 Errands") == "Task 2 moved."
    categories = await registry.handle(state, "/categories")
    assert "Errands" in categories and "Family" not in categories

    assert await registry.handle(state, "/clear-completed") == "1 completed task(s) removed."
    assert "Groceries" not in await registry.handle(state, "/categories")

    assert await registry.handle(state, "/show 99") == "No task with id=99."
    assert await registry.handle(state, "/rm 2") == "Task 2 removed."
    assert await registry.handle(state, "/list") == "No tasks."
    assert await registry.handle(state, "/categories") == "No categories."


@pytest.mark.asyncio
async def test_edit_and_clear(state) -> None:
    await registry.handle(state, "/add Draft @Work")

    assert await registry.handle(state, "/edit 1 Final draft @Writing") == "Task 1 updated."
    assert await registry.handle(state, "/show 1") == "[ ] 1: Final draft  @Writing"

    notes: list[str] = []
    assert await registry.handle(state, "/clear", emit=notes.append) == "All tasks removed."
    assert notes
    assert await registry.handle(state, "/count") == "Active: 0  Completed: 0  Total: 0"
