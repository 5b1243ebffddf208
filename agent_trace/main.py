"""Agent Trace FastAPI app - main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agent_trace import config
from agent_trace.routers.traces import traces_router

logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger("agent_trace")
if config.DEBUG_PARSERS:
    logging.getLogger("agent_trace.parsers").setLevel(logging.DEBUG)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("Agent Trace API starting up")
    yield
    logger.info("Agent Trace API shutting down")


app = FastAPI(
    title="Agent Trace API",
    description="Parses Claude Code and Codex CLI logs into conversation timelines",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(traces_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("agent_trace.main:app", host=config.HOST, port=config.PORT, reload=False)
