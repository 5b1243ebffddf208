"""Pydantic models for parsed agent traces, matching the renderer's TypeScript types."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Annotated, Any, Literal, Optional, Union

# ── Session metadata ────────────────────────────────────────────────

class SessionMeta(BaseModel):
    workdir: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    approval: Optional[str] = None
    sandbox: Optional[str] = None
    sessionId: Optional[str] = None
    parentSessionId: Optional[str] = None  # session being resumed
    contextId: Optional[str] = None  # runner CLI context identifier
    reasoningEffort: Optional[str] = None
    reasoningSummaries: Optional[str] = None
    version: Optional[str] = None
    costUsd: Optional[float] = None
    durationMs: Optional[int] = None


# ── Structured tool-call payloads ───────────────────────────────────

class TodoItem(BaseModel):
    id: Optional[str] = None
    content: str
    status: Literal["pending", "in_progress", "completed", "cancelled"] = "pending"


class TodoWriteData(BaseModel):
    kind: Literal["todo_write"] = "todo_write"
    todos: list[TodoItem] = Field(default_factory=list)
    merge: Optional[bool] = None


class ReadData(BaseModel):
    kind: Literal["read"] = "read"
    filePath: str
    offset: Optional[int] = None
    limit: Optional[int] = None


class EditData(BaseModel):
    kind: Literal["edit"] = "edit"
    filePath: str
    oldString: Optional[str] = None
    newString: Optional[str] = None


class GlobData(BaseModel):
    kind: Literal["glob"] = "glob"
    pattern: str


class GrepData(BaseModel):
    kind: Literal["grep"] = "grep"
    pattern: str
    path: Optional[str] = None


class BashData(BaseModel):
    kind: Literal["bash"] = "bash"
    command: str


class GenericToolData(BaseModel):
    kind: Literal["generic"] = "generic"
    args: Any = None


ToolCallData = Annotated[
    Union[TodoWriteData, ReadData, EditData, GlobData, GrepData, BashData, GenericToolData],
    Field(discriminator="kind"),
]


# ── Timeline events ─────────────────────────────────────────────────

class SessionStartEvent(BaseModel):
    type: Literal["session_start"] = "session_start"
    meta: SessionMeta


class UserEvent(BaseModel):
    type: Literal["user"] = "user"
    text: str


class AssistantEvent(BaseModel):
    type: Literal["assistant"] = "assistant"
    text: str


class NoteEvent(BaseModel):
    type: Literal["note"] = "note"
    channel: Literal["thinking", "system"]
    text: str


class ToolCallEvent(BaseModel):
    type: Literal["tool_call"] = "tool_call"
    name: str
    argsText: str
    data: Optional[ToolCallData] = None


class ToolResultEvent(BaseModel):
    type: Literal["tool_result"] = "tool_result"
    ok: bool
    code: Optional[int] = None
    durationMs: Optional[int] = None
    text: Optional[str] = None


class ExecCallEvent(BaseModel):
    type: Literal["exec_call"] = "exec_call"
    command: str
    workdir: Optional[str] = None


class ExecResultEvent(BaseModel):
    type: Literal["exec_result"] = "exec_result"
    ok: bool
    code: Optional[int] = None
    durationMs: Optional[int] = None
    text: Optional[str] = None


class PatchEvent(BaseModel):
    type: Literal["patch"] = "patch"
    header: str
    diff: str


class PlanUpdateEvent(BaseModel):
    type: Literal["plan_update"] = "plan_update"
    text: str


class StatsEvent(BaseModel):
    type: Literal["stats"] = "stats"
    name: Literal["tokens used"] = "tokens used"
    value: str


class TruncatedEvent(BaseModel):
    type: Literal["truncated"] = "truncated"
    reason: str


class UnknownEvent(BaseModel):
    type: Literal["unknown"] = "unknown"
    raw: str


LogEvent = Annotated[
    Union[
        SessionStartEvent,
        UserEvent,
        AssistantEvent,
        NoteEvent,
        ToolCallEvent,
        ToolResultEvent,
        ExecCallEvent,
        ExecResultEvent,
        PatchEvent,
        PlanUpdateEvent,
        StatsEvent,
        TruncatedEvent,
        UnknownEvent,
    ],
    Field(discriminator="type"),
]


class ConversationSession(BaseModel):
    meta: SessionMeta = Field(default_factory=SessionMeta)
    events: list[LogEvent] = Field(default_factory=list)


# ── API payloads ────────────────────────────────────────────────────

class ParseTraceRequest(BaseModel):
    text: Optional[str] = None
    chunks: Optional[list[str]] = None
    maxChars: Optional[int] = Field(default=None, ge=1)


class ParseTraceResponse(BaseModel):
    format: Optional[str] = None
    sessionCount: int = 0
    eventCount: int = 0
    sessions: list[ConversationSession] = Field(default_factory=list)
