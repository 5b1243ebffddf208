"""Interpret raw tool-call arguments into typed payloads for rendering."""
from __future__ import annotations

from typing import Any, Callable, Optional

from agent_trace.models import (
    BashData,
    EditData,
    GenericToolData,
    GlobData,
    GrepData,
    ReadData,
    TodoItem,
    TodoWriteData,
)

_TODO_STATUSES = {"pending", "in_progress", "completed", "cancelled"}
_TODO_STATUS_ALIASES = {
    "in-progress": "in_progress",
    "done": "completed",
    "complete": "completed",
    "canceled": "cancelled",
}


def _str_field(args: dict[str, Any], key: str) -> Optional[str]:
    value = args.get(key)
    return value if isinstance(value, str) else None


def _int_field(args: dict[str, Any], key: str) -> Optional[int]:
    value = args.get(key)
    # bool is an int subclass; a flag is never an offset.
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _normalize_todo_status(raw: Any) -> str:
    token = raw.strip().lower() if isinstance(raw, str) else ""
    token = _TODO_STATUS_ALIASES.get(token, token)
    return token if token in _TODO_STATUSES else "pending"


def _todo_write(args: dict[str, Any]) -> Optional[TodoWriteData]:
    raw_todos = args.get("todos")
    if not isinstance(raw_todos, list):
        return None
    todos: list[TodoItem] = []
    for raw in raw_todos:
        if not isinstance(raw, dict):
            continue
        content = _str_field(raw, "content")
        if content is None:
            continue
        raw_id = raw.get("id")
        todos.append(
            TodoItem(
                id=str(raw_id) if isinstance(raw_id, (str, int)) and not isinstance(raw_id, bool) else None,
                content=content,
                status=_normalize_todo_status(raw.get("status")),
            )
        )
    merge = args.get("merge")
    return TodoWriteData(todos=todos, merge=merge if isinstance(merge, bool) else None)


def _read(args: dict[str, Any]) -> Optional[ReadData]:
    file_path = _str_field(args, "file_path")
    if file_path is None:
        return None
    return ReadData(filePath=file_path, offset=_int_field(args, "offset"), limit=_int_field(args, "limit"))


def _edit(args: dict[str, Any]) -> Optional[EditData]:
    file_path = _str_field(args, "file_path")
    if file_path is None:
        return None
    return EditData(
        filePath=file_path,
        oldString=_str_field(args, "old_string"),
        newString=_str_field(args, "new_string"),
    )


def _multi_edit(args: dict[str, Any]) -> Optional[EditData]:
    file_path = _str_field(args, "file_path")
    edits = args.get("edits")
    if file_path is None or not isinstance(edits, list):
        return None
    first = next((e for e in edits if isinstance(e, dict)), {})
    return EditData(
        filePath=file_path,
        oldString=_str_field(first, "old_string"),
        newString=_str_field(first, "new_string"),
    )


def _write(args: dict[str, Any]) -> Optional[EditData]:
    file_path = _str_field(args, "file_path")
    if file_path is None:
        return None
    return EditData(filePath=file_path, newString=_str_field(args, "content"))


def _glob(args: dict[str, Any]) -> Optional[GlobData]:
    pattern = _str_field(args, "pattern")
    return GlobData(pattern=pattern) if pattern is not None else None


def _grep(args: dict[str, Any]) -> Optional[GrepData]:
    pattern = _str_field(args, "pattern")
    if pattern is None:
        return None
    return GrepData(pattern=pattern, path=_str_field(args, "path"))


def _bash(args: dict[str, Any]) -> Optional[BashData]:
    command = _str_field(args, "command")
    return BashData(command=command) if command is not None else None


# Exact tool names -> extractor. Extractors return None when required fields are missing.
_TOOL_INTERPRETERS: dict[str, Callable[[dict[str, Any]], Any]] = {
    "TodoWrite": _todo_write,
    "Read": _read,
    "Edit": _edit,
    "MultiEdit": _multi_edit,
    "Write": _write,
    "Glob": _glob,
    "Grep": _grep,
    "Bash": _bash,
}


def interpret_tool_args(tool_name: str, raw_args: Any):
    """Map a tool name and its raw arguments to a typed payload.

    Unknown tools and recognized tools with unusable arguments fall back to a
    ``generic`` payload carrying ``raw_args`` unchanged. Returns None only when
    there are no arguments at all.
    """
    if raw_args is None:
        return None
    extractor = _TOOL_INTERPRETERS.get(tool_name or "")
    if extractor is not None and isinstance(raw_args, dict):
        try:
            data = extractor(raw_args)
        except Exception:
            data = None
        if data is not None:
            return data
    return GenericToolData(args=raw_args)
