"""Parse OpenAI Codex CLI text output into conversation sessions.

Codex writes a banner with a key/value header, then free-form blocks that
start with marker lines (``user``, ``[stderr]codex``, ``[stderr]exec`` ...).
Each block runs until the next marker line.
"""
from __future__ import annotations

import logging
import re

from agent_trace.models import (
    AssistantEvent,
    ConversationSession,
    ExecCallEvent,
    ExecResultEvent,
    NoteEvent,
    PatchEvent,
    PlanUpdateEvent,
    SessionMeta,
    SessionStartEvent,
    StatsEvent,
    ToolCallEvent,
    ToolResultEvent,
    TruncatedEvent,
    UnknownEvent,
    UserEvent,
)

logger = logging.getLogger("agent_trace.parsers.codex")

_LINE_SPLIT_PATTERN = re.compile(r"\r?\n")

_SESSION_START_PATTERN = re.compile(r"^\[stderr\]OpenAI Codex v", re.IGNORECASE)
_VERSION_PATTERN = re.compile(r"OpenAI Codex v(\S+)", re.IGNORECASE)
_DASHES_PATTERN = re.compile(r"^-{4,}$")
_KV_PATTERN = re.compile(r"^(.*?):\s*(.*)$")
_USER_PATTERN = re.compile(r"^user$")
_ASSISTANT_PATTERN = re.compile(r"^\[stderr\]codex$")
_THINKING_PATTERN = re.compile(r"^(?:\[stderr\])?thinking$")
_EXEC_PATTERN = re.compile(r"^\[stderr\]exec$")
_SUCCEEDED_PATTERN = re.compile(r"^\[stderr\]\s*succeeded in\s*(\d+)ms:", re.IGNORECASE)
_EXITED_PATTERN = re.compile(r"^\[stderr\].*?exited\s*(\d+)\s*in\s*(\d+)ms:", re.IGNORECASE)
_TOOL_CALL_PATTERN = re.compile(r"^\[stderr\]tool\s+([^()]+)\((.*)\)\s*$")
_FILE_UPDATE_PATTERN = re.compile(r"^\[stderr\]file update", re.IGNORECASE)
_DIFF_START_PATTERN = re.compile(r"^diff --git ", re.IGNORECASE)
_PLAN_UPDATE_PATTERN = re.compile(r"^\[stderr\]Plan update$")
_TOKENS_USED_PATTERN = re.compile(r"^\[stderr\]tokens used$", re.IGNORECASE)
_TOTAL_LINES_PATTERN = re.compile(r"^Total output lines:\s*(\d+)")
_TRUNCATED_PATTERN = re.compile(r"^\[\.\.\. output truncated.*\]$")

# Any of these starts a new event and ends the block being collected.
_EVENT_START_PATTERNS = (
    _USER_PATTERN,
    _ASSISTANT_PATTERN,
    _THINKING_PATTERN,
    _EXEC_PATTERN,
    _PLAN_UPDATE_PATTERN,
    _FILE_UPDATE_PATTERN,
    _DIFF_START_PATTERN,
    _TOKENS_USED_PATTERN,
    _TOTAL_LINES_PATTERN,
    _TRUNCATED_PATTERN,
    _SESSION_START_PATTERN,
    _TOOL_CALL_PATTERN,
    _SUCCEEDED_PATTERN,
    _EXITED_PATTERN,
)

# Banner header keys (lower-cased) -> SessionMeta field.
_META_KEYS = {
    "workdir": "workdir",
    "model": "model",
    "provider": "provider",
    "approval": "approval",
    "sandbox": "sandbox",
    "session id": "sessionId",
    "reasoning effort": "reasoningEffort",
    "reasoning summaries": "reasoningSummaries",
}

_EXEC_WORKDIR_SEPARATOR = " in "


def _normalize_meta_key(key: str) -> str | None:
    token = " ".join((key or "").strip().lower().split())
    return _META_KEYS.get(token)


def _is_event_start(line: str) -> bool:
    return any(pattern.search(line) for pattern in _EVENT_START_PATTERNS)


def _split_exec_command(line: str) -> tuple[str, str | None]:
    idx = line.rfind(_EXEC_WORKDIR_SEPARATOR)
    if idx < 0:
        return line, None
    return line[:idx], line[idx + len(_EXEC_WORKDIR_SEPARATOR):]


class _CodexLogReader:
    """Line cursor over one Codex log."""

    def __init__(self, lines: list[str]) -> None:
        self.lines = lines
        self.index = 0
        self.sessions: list[ConversationSession] = []
        self.current: ConversationSession | None = None

    def peek(self, offset: int = 0) -> str:
        pos = self.index + offset
        return self.lines[pos] if 0 <= pos < len(self.lines) else ""

    def collect_block(self, start: int) -> tuple[str, int]:
        """Collect lines from ``start`` up to the next event marker.

        Returns the block text without trailing blank lines and the index of
        the marker line (or the end of input).
        """
        buf: list[str] = []
        j = start
        while j < len(self.lines):
            line = self.lines[j]
            if _is_event_start(line):
                break
            buf.append(line)
            j += 1
        while buf and not buf[-1].strip():
            buf.pop()
        return "\n".join(buf), j

    def read_session_header(self) -> SessionMeta:
        banner = self.lines[self.index]
        meta = SessionMeta()
        version = _VERSION_PATTERN.search(banner)
        if version:
            meta.version = version.group(1)

        self.index += 1
        if self.index < len(self.lines) and _DASHES_PATTERN.match(self.lines[self.index]):
            self.index += 1
        while self.index < len(self.lines) and not _DASHES_PATTERN.match(self.lines[self.index]):
            match = _KV_PATTERN.match(self.lines[self.index])
            if match:
                key = _normalize_meta_key(match.group(1))
                if key:
                    setattr(meta, key, match.group(2).strip())
            self.index += 1
        if self.index < len(self.lines) and _DASHES_PATTERN.match(self.lines[self.index]):
            self.index += 1

        if meta.sessionId:
            meta.contextId = meta.sessionId
        return meta

    def emit(self, event) -> None:
        if self.current is not None:
            self.current.events.append(event)

    def emit_block(self, factory) -> None:
        body, self.index = self.collect_block(self.index + 1)
        self.emit(factory(body))

    def step(self) -> None:
        line = self.lines[self.index]

        if _SESSION_START_PATTERN.search(line):
            meta = self.read_session_header()
            self.current = ConversationSession(meta=meta)
            self.current.events.append(SessionStartEvent(meta=meta))
            self.sessions.append(self.current)
            return

        if self.current is None:
            self.index += 1
            return

        if _USER_PATTERN.search(line):
            self.emit_block(lambda body: UserEvent(text=body))
            return

        if _ASSISTANT_PATTERN.search(line):
            self.emit_block(lambda body: AssistantEvent(text=body))
            return

        if _THINKING_PATTERN.search(line):
            self.emit_block(lambda body: NoteEvent(channel="thinking", text=body))
            return

        if _EXEC_PATTERN.search(line):
            command, workdir = _split_exec_command(self.peek(1))
            self.emit(ExecCallEvent(command=command, workdir=workdir))
            self.index += 2
            return

        succeeded = _SUCCEEDED_PATTERN.search(line)
        if succeeded:
            duration_ms = int(succeeded.group(1)) or None
            self.emit_block(lambda body: ExecResultEvent(ok=True, durationMs=duration_ms, text=body))
            return

        exited = _EXITED_PATTERN.search(line)
        if exited:
            code = int(exited.group(1))
            duration_ms = int(exited.group(2))
            # No call stack is tracked, so exit-coded outcomes stay tool results.
            self.emit_block(
                lambda body: ToolResultEvent(ok=code == 0, code=code, durationMs=duration_ms, text=body)
            )
            return

        tool_call = _TOOL_CALL_PATTERN.search(line)
        if tool_call:
            self.emit(ToolCallEvent(name=tool_call.group(1).strip(), argsText=tool_call.group(2).strip()))
            self.index += 1
            return

        if _FILE_UPDATE_PATTERN.search(line):
            self.emit_block(lambda body: PatchEvent(header="file update", diff=body))
            return

        if _DIFF_START_PATTERN.search(line):
            self.emit_block(lambda body: PatchEvent(header="diff", diff="\n".join(p for p in (line, body) if p)))
            return

        if _PLAN_UPDATE_PATTERN.search(line):
            self.emit_block(lambda body: PlanUpdateEvent(text=body))
            return

        if _TOKENS_USED_PATTERN.search(line):
            self.emit(StatsEvent(value=self.peek(1).strip()))
            self.index += 2
            return

        total_lines = _TOTAL_LINES_PATTERN.search(line)
        if total_lines:
            self.emit(TruncatedEvent(reason=f"Total output lines: {total_lines.group(1)}"))
            self.index += 1
            return

        if _TRUNCATED_PATTERN.search(line):
            self.emit(TruncatedEvent(reason="output truncated"))
            self.index += 1
            return

        if line.strip():
            self.emit(UnknownEvent(raw=line))
        self.index += 1

    def run(self) -> list[ConversationSession]:
        while self.index < len(self.lines):
            self.step()
        return self.sessions


def parse_codex_log(text: str) -> list[ConversationSession] | None:
    """Parse Codex CLI text output; None when no session banner is present."""
    if not text:
        return None
    try:
        sessions = _CodexLogReader(_LINE_SPLIT_PATTERN.split(text)).run()
    except Exception:
        logger.debug("Codex parser failed; treating input as another format", exc_info=True)
        return None
    return sessions or None
