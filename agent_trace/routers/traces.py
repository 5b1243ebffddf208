"""Agent trace parsing API."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from agent_trace import config
from agent_trace.models import ParseTraceRequest, ParseTraceResponse
from agent_trace.parsers.registry import (
    join_log_chunks,
    parse_agent_trace_with_format,
    tail_text,
)

logger = logging.getLogger("agent_trace.api")

traces_router = APIRouter(prefix="/api/traces", tags=["traces"])


def _request_text(req: ParseTraceRequest) -> str:
    if req.text is None and req.chunks is None:
        raise HTTPException(status_code=400, detail="Provide either 'text' or 'chunks'")
    text = req.text if req.text is not None else join_log_chunks(req.chunks or [])
    limit = min(req.maxChars or config.MAX_INPUT_CHARS, config.MAX_INPUT_CHARS)
    if len(text) > limit:
        logger.info("Trimming trace input from %d to %d chars", len(text), limit)
        text = tail_text(text, limit)
    return text


@traces_router.post("/parse", response_model=ParseTraceResponse, response_model_exclude_none=True)
async def parse_trace(req: ParseTraceRequest):
    """Parse a raw agent log into sessions and timeline events."""
    text = _request_text(req)
    fmt, sessions = parse_agent_trace_with_format(text)
    return ParseTraceResponse(
        format=fmt,
        sessionCount=len(sessions),
        eventCount=sum(len(s.events) for s in sessions),
        sessions=sessions,
    )


@traces_router.post("/detect")
async def detect_trace_format(req: ParseTraceRequest):
    """Report which log format (if any) the input matches."""
    fmt, _ = parse_agent_trace_with_format(_request_text(req))
    return {"format": fmt}
