"""Parse Claude Code stream-json (JSON Lines) output into conversation sessions."""
from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from agent_trace import config
from agent_trace.models import (
    AssistantEvent,
    ConversationSession,
    ExecResultEvent,
    NoteEvent,
    SessionMeta,
    SessionStartEvent,
    ToolCallEvent,
    ToolResultEvent,
    UserEvent,
)
from agent_trace.parsers.tool_args import interpret_tool_args

logger = logging.getLogger("agent_trace.parsers.claude_code")

_LINE_SPLIT_PATTERN = re.compile(r"\r?\n")
_STREAM_PREFIX_PATTERN = re.compile(r"^\[(stdout|stderr)\]\s*")

# Init payload keys that name the session being resumed, in priority order.
_PARENT_SESSION_KEYS = ("parent_session_id", "resumed_session_id", "resume_session_id")


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _optional_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # json accepts NaN and 1e400 (inf); neither is a usable duration or cost.
    if not math.isfinite(value):
        return None
    return value


def _content_blocks(message: Any) -> list[Any]:
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if isinstance(content, list):
        return content
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return []


def _join_text(blocks: list[Any], block_type: str = "text", key: str = "text") -> str:
    parts = [
        block[key]
        for block in blocks
        if isinstance(block, dict) and block.get("type") == block_type and isinstance(block.get(key), str) and block[key]
    ]
    return "\n".join(parts)


def _tool_result_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: list[str] = []
        for block in content:
            if isinstance(block, str):
                chunks.append(block)
            elif isinstance(block, dict):
                text = block.get("text")
                if isinstance(text, str) and text.strip():
                    chunks.append(text)
                elif isinstance(block.get("content"), str):
                    chunks.append(block["content"])
        return "\n".join(chunks)
    try:
        return json.dumps(content, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return str(content)


def _serialized_size(content: Any) -> int:
    try:
        return len(json.dumps(content, ensure_ascii=False))
    except (TypeError, ValueError, RecursionError):
        return len(str(content))


def _format_tool_input(raw_input: Any) -> str:
    if isinstance(raw_input, str):
        return raw_input
    if raw_input is None:
        return ""
    try:
        return json.dumps(raw_input, indent=2, ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return str(raw_input)


def _meta_from_init(entry: dict[str, Any]) -> SessionMeta:
    session_id = _optional_str(entry.get("session_id"))
    parent_session_id = next(
        (value for value in (_optional_str(entry.get(key)) for key in _PARENT_SESSION_KEYS) if value),
        None,
    )
    return SessionMeta(
        workdir=_optional_str(entry.get("cwd")),
        model=_optional_str(entry.get("model")),
        approval=_optional_str(entry.get("permissionMode")),
        sessionId=session_id,
        parentSessionId=parent_session_id,
        # Resumed runs are grouped under the conversation they resume.
        contextId=parent_session_id or session_id,
        version=_optional_str(entry.get("claude_code_version")),
    )


def _parse_entry(line: str) -> dict[str, Any] | None:
    json_str = _STREAM_PREFIX_PATTERN.sub("", line.strip())
    try:
        entry = json.loads(json_str)
    except (json.JSONDecodeError, ValueError, RecursionError):
        return None
    return entry if isinstance(entry, dict) else None


def _append_user(session: ConversationSession, entry: dict[str, Any]) -> None:
    blocks = _content_blocks(entry.get("message"))
    text = _join_text(blocks)
    if text:
        session.events.append(UserEvent(text=text))

    for block in blocks:
        if not isinstance(block, dict) or block.get("type") != "tool_result":
            continue
        content = block.get("content")
        # Large payloads duplicate output already shown by the tool call itself.
        if _serialized_size(content) >= config.TOOL_RESULT_MAX_CHARS:
            continue
        result_text = _tool_result_to_text(content)
        session.events.append(
            ToolResultEvent(
                ok=not bool(block.get("is_error")),
                text=result_text or None,
            )
        )


def _append_assistant(session: ConversationSession, entry: dict[str, Any]) -> None:
    blocks = _content_blocks(entry.get("message"))

    thinking = _join_text(blocks, block_type="thinking", key="thinking")
    if thinking:
        session.events.append(NoteEvent(channel="thinking", text=thinking))

    text = _join_text(blocks)
    if text:
        session.events.append(AssistantEvent(text=text))

    for block in blocks:
        if not isinstance(block, dict) or block.get("type") != "tool_use":
            continue
        name = block.get("name") if isinstance(block.get("name"), str) else ""
        raw_input = block.get("input")
        session.events.append(
            ToolCallEvent(
                name=name,
                argsText=_format_tool_input(raw_input),
                data=interpret_tool_args(name, raw_input),
            )
        )


def _append_result(session: ConversationSession, entry: dict[str, Any]) -> None:
    ok = entry.get("subtype") == "success" and not entry.get("is_error")
    result_text = _optional_str(entry.get("result"))
    duration = _optional_number(entry.get("duration_ms"))

    previous = session.events[-1] if session.events else None
    if result_text is not None and isinstance(previous, AssistantEvent) and previous.text == result_text:
        result_text = None

    session.events.append(
        ExecResultEvent(
            ok=ok,
            durationMs=int(duration) if duration is not None else None,
            text=result_text,
        )
    )

    cost = _optional_number(entry.get("total_cost_usd"))
    if cost is not None:
        session.meta.costUsd = float(cost)
    if duration is not None:
        session.meta.durationMs = int(duration)


_HANDLERS = {
    "user": _append_user,
    "assistant": _append_assistant,
    "result": _append_result,
}


def _parse_lines(lines: list[str]) -> list[ConversationSession]:
    sessions: list[ConversationSession] = []
    current: ConversationSession | None = None
    skipped = 0

    for line in lines:
        entry = _parse_entry(line)
        if entry is None:
            skipped += 1
            continue

        entry_type = entry.get("type")
        if entry_type == "system" and entry.get("subtype") == "init":
            meta = _meta_from_init(entry)
            current = ConversationSession(meta=meta)
            current.events.append(SessionStartEvent(meta=meta))
            sessions.append(current)
            continue

        if entry_type not in ("user", "assistant", "result"):
            continue

        if current is None:
            # Streams missing the init line still yield a usable session.
            current = ConversationSession()
            sessions.append(current)

        handler = _HANDLERS[entry_type]
        try:
            handler(current, entry)
        except Exception:
            logger.debug("Skipping unusable %s message in Claude Code log", entry_type, exc_info=True)

    if skipped:
        logger.debug("Skipped %d non-JSON lines in Claude Code log", skipped)
    return sessions


def parse_claude_code_log(text: str) -> list[ConversationSession] | None:
    """Parse Claude Code JSON Lines output.

    Returns None when the first non-blank line is not a JSON envelope with a
    ``type`` field, so the dispatcher can try the next format.
    """
    lines = [line for line in _LINE_SPLIT_PATTERN.split(text or "") if line.strip()]
    if not lines:
        return None

    try:
        first = json.loads(lines[0])
    except (json.JSONDecodeError, ValueError, RecursionError):
        return None
    if not isinstance(first, dict) or not isinstance(first.get("type"), str) or not first["type"]:
        return None

    try:
        sessions = _parse_lines(lines)
    except Exception:
        logger.debug("Claude Code parser failed; treating input as another format", exc_info=True)
        return None

    return sessions or None
