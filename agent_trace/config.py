"""Agent Trace configuration."""
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default

# Parsing limits
TOOL_RESULT_MAX_CHARS = _env_int("AGENT_TRACE_TOOL_RESULT_MAX_CHARS", 500)
MAX_LOG_CHUNKS = _env_int("AGENT_TRACE_MAX_LOG_CHUNKS", 5000)
MAX_INPUT_CHARS = _env_int("AGENT_TRACE_MAX_INPUT_CHARS", 2_000_000)

# Logging
LOG_LEVEL = os.getenv("AGENT_TRACE_LOG_LEVEL", "INFO").upper()
DEBUG_PARSERS = _env_bool("AGENT_TRACE_DEBUG_PARSERS", False)

# Server settings
HOST = os.getenv("AGENT_TRACE_HOST", "127.0.0.1")
PORT = _env_int("AGENT_TRACE_PORT", 8000)

# CORS
FRONTEND_ORIGIN = os.getenv("AGENT_TRACE_FRONTEND_ORIGIN", "http://localhost:5173")
