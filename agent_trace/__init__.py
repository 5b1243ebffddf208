"""Parse AI coding-assistant CLI logs into typed conversation timelines."""

from agent_trace.parsers.registry import parse_agent_trace as parse

__all__ = ["parse"]
