#!/usr/bin/env python3
"""Parse a captured agent CLI log and print its conversation timeline.

Usage:
  python -m agent_trace.scripts.parse_log run.log
  python -m agent_trace.scripts.parse_log run.log --json
  cat run.log | python -m agent_trace.scripts.parse_log --summary
  python -m agent_trace.scripts.parse_log run.log --format
"""
from __future__ import annotations

import argparse
import json
import sys
from collections import Counter
from pathlib import Path

from agent_trace.models import ConversationSession
from agent_trace.parsers.registry import parse_agent_trace_with_format


def _read_input(path: str | None) -> str:
    if not path or path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


def _event_line(event) -> str:
    kind = event.type
    if kind == "session_start":
        return f"session_start model={event.meta.model or '-'} id={event.meta.contextId or '-'}"
    if kind in ("user", "assistant", "plan_update"):
        return f"{kind}: {_first_line(event.text)}"
    if kind == "note":
        return f"note[{event.channel}]: {_first_line(event.text)}"
    if kind == "tool_call":
        data_kind = event.data.kind if event.data is not None else "-"
        return f"tool_call {event.name} ({data_kind}): {_first_line(event.argsText)}"
    if kind in ("tool_result", "exec_result"):
        status = "ok" if event.ok else "failed"
        code = f" code={event.code}" if event.code is not None else ""
        duration = f" {event.durationMs}ms" if event.durationMs is not None else ""
        return f"{kind} {status}{code}{duration}"
    if kind == "exec_call":
        where = f" (in {event.workdir})" if event.workdir else ""
        return f"exec_call: {event.command}{where}"
    if kind == "patch":
        return f"patch [{event.header}] {len(event.diff.splitlines())} lines"
    if kind == "stats":
        return f"stats {event.name}: {event.value}"
    if kind == "truncated":
        return f"truncated: {event.reason}"
    return f"unknown: {event.raw}"


def _first_line(text: str, limit: int = 100) -> str:
    line = (text or "").strip().splitlines()[0] if (text or "").strip() else ""
    return line if len(line) <= limit else line[: limit - 1] + "…"


def _print_timeline(sessions: list[ConversationSession]) -> None:
    for idx, session in enumerate(sessions, start=1):
        print(f"== Session {idx} - {session.meta.model or 'model'} - {session.meta.contextId or 'id'}")
        for event in session.events:
            print(f"  {_event_line(event)}")


def _print_summary(fmt: str | None, sessions: list[ConversationSession]) -> None:
    print(f"format: {fmt}")
    for idx, session in enumerate(sessions, start=1):
        counts = Counter(event.type for event in session.events)
        breakdown = ", ".join(f"{kind}={count}" for kind, count in sorted(counts.items()))
        print(f"session {idx}: {len(session.events)} events ({breakdown})")
        if session.meta.costUsd is not None:
            print(f"  cost: ${session.meta.costUsd:.4f}")
        if session.meta.durationMs is not None:
            print(f"  duration: {session.meta.durationMs}ms")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Parse a Claude Code or Codex CLI log into a conversation timeline.")
    parser.add_argument("path", nargs="?", help="Log file to parse (default: stdin)")
    parser.add_argument("--json", action="store_true", help="Emit sessions as JSON")
    parser.add_argument("--summary", action="store_true", help="Print per-session event counts only")
    parser.add_argument("--format", action="store_true", help="Print the detected log format only")
    args = parser.parse_args(argv)

    try:
        text = _read_input(args.path)
    except OSError as exc:
        print(f"error: cannot read {args.path}: {exc}", file=sys.stderr)
        return 1

    fmt, sessions = parse_agent_trace_with_format(text)

    if args.format:
        print(fmt or "unknown")
        return 0
    if args.json:
        payload = [session.model_dump(exclude_none=True) for session in sessions]
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0
    if not sessions:
        print("no events parsed")
        return 0
    if args.summary:
        _print_summary(fmt, sessions)
    else:
        _print_timeline(sessions)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
