"""Log parser registry and format auto-detection."""
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional

from agent_trace import config
from agent_trace.models import ConversationSession
from agent_trace.parsers.claude_code import parse_claude_code_log
from agent_trace.parsers.codex import parse_codex_log

logger = logging.getLogger("agent_trace.parsers")

LogParser = Callable[[str], Optional[list[ConversationSession]]]

# Tried in order; the first parser returning sessions wins. Claude Code goes
# first because its first-line JSON check rejects Codex text cheaply.
PARSERS: list[tuple[str, LogParser]] = [
    ("claude_code", parse_claude_code_log),
    ("codex", parse_codex_log),
]


def parse_agent_trace_with_format(text: str) -> tuple[str | None, list[ConversationSession]]:
    """Parse a joined log and report which format matched."""
    if not text or not text.strip():
        return None, []
    for name, parser in PARSERS:
        try:
            sessions = parser(text)
        except Exception:
            logger.debug("Parser %s raised; skipping", name, exc_info=True)
            continue
        if sessions:
            logger.debug("Parsed %d session(s) as %s", len(sessions), name)
            return name, sessions
    logger.debug("No parser matched input (%d chars)", len(text))
    return None, []


def parse_agent_trace(text: str) -> list[ConversationSession]:
    """Auto-detect the log format and parse it into sessions.

    Always returns a list; unrecognized input yields ``[]``.
    """
    return parse_agent_trace_with_format(text)[1]


def detect_format(text: str) -> str | None:
    return parse_agent_trace_with_format(text)[0]


def join_log_chunks(chunks: Iterable[str], max_chunks: int | None = config.MAX_LOG_CHUNKS) -> str:
    """Join streamed stdout/stderr chunks into one log text.

    A newline is inserted between chunks whose boundary is not already a line
    break so partial lines never merge. Only the last ``max_chunks`` non-empty
    chunks are kept when a cap is given.
    """
    kept = [str(chunk) for chunk in chunks if chunk]
    if max_chunks is not None and max_chunks >= 0 and len(kept) > max_chunks:
        kept = kept[len(kept) - max_chunks:]
    pieces: list[str] = []
    for chunk in kept:
        if pieces and not pieces[-1].endswith("\n") and not chunk.startswith("\n"):
            pieces.append("\n")
        pieces.append(chunk)
    return "".join(pieces)


def tail_text(text: str, max_chars: int) -> str:
    """Keep at most ``max_chars`` trailing characters, starting on a line boundary."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    cut = len(text) - max_chars
    tail = text[cut:]
    if text[cut - 1] == "\n":
        return tail
    newline = tail.find("\n")
    return tail[newline + 1:] if newline >= 0 else tail
