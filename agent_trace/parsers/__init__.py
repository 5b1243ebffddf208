"""Agent log parsers."""

from agent_trace.parsers.claude_code import parse_claude_code_log
from agent_trace.parsers.codex import parse_codex_log
from agent_trace.parsers.registry import (
    detect_format,
    join_log_chunks,
    parse_agent_trace,
    parse_agent_trace_with_format,
)
from agent_trace.parsers.tool_args import interpret_tool_args

__all__ = [
    "detect_format",
    "interpret_tool_args",
    "join_log_chunks",
    "parse_agent_trace",
    "parse_agent_trace_with_format",
    "parse_claude_code_log",
    "parse_codex_log",
]
