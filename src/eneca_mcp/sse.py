"""SSE transport for HTTP clients (workflow engines such as n8n).

GET /sse opens the event stream, POST /messages/?session_id=... carries
client messages and is rate limited per session, GET / reports health.
"""
import logging
import threading
import time
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import parse_qs

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from mcp.server.sse import SseServerTransport

from eneca_core.config import Settings, get_settings

from . import __version__
from .server import app as mcp_server

logger = logging.getLogger("eneca-mcp.sse")

SERVICE_NAME = "eneca-mcp"


class RateLimiter:
    """
    Sliding-window request counter keyed by session id.

    Args:
        max_requests: Requests allowed per window
        window_seconds: Window length
        clock: Time source, injectable for tests
    """

    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def allow(self, key: str) -> bool:
        """Record a request and return False once the window is full."""
        now = self._clock()
        with self._lock:
            self._expire(now)
            hits = self._hits.setdefault(key, deque())
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def _expire(self, now: float) -> None:
        # Sessions with no hits left in the window are dropped
        for key in list(self._hits):
            hits = self._hits[key]
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if not hits:
                del self._hits[key]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application serving the MCP server over SSE."""
    settings = settings or get_settings()
    sse = SseServerTransport("/messages/")
    limiter = RateLimiter(settings.rate_limit_requests, settings.rate_limit_window)

    app = FastAPI(
        title="Eneca MCP Server",
        description="Project management tools over MCP (SSE transport)",
        version=__version__,
    )
    app.state.rate_limiter = limiter

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def health_check():
        """Health check endpoint with server info."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "endpoints": {"sse": "/sse", "messages": "/messages/"},
        }

    @app.get("/sse")
    async def handle_sse(request: Request):
        """Open an SSE stream and run the MCP server over it."""
        logger.info(f"SSE connection from {request.client.host if request.client else 'unknown'}")
        async with sse.connect_sse(request.scope, request.receive, request._send) as streams:
            await mcp_server.run(streams[0], streams[1], mcp_server.create_initialization_options())
        logger.info("SSE connection closed")
        return Response()

    async def handle_messages(scope, receive, send):
        """Rate-limit per session, then hand the message to the SSE transport."""
        query = parse_qs(scope.get("query_string", b"").decode())
        session_id = query.get("session_id", [""])[0]
        if session_id and not limiter.allow(session_id):
            logger.warning(f"Rate limit exceeded for session {session_id}")
            response = JSONResponse(
                {
                    "error": "Too many requests",
                    "limit": settings.rate_limit_requests,
                    "window_seconds": settings.rate_limit_window,
                },
                status_code=429,
            )
            await response(scope, receive, send)
            return
        await sse.handle_post_message(scope, receive, send)

    app.mount("/messages/", app=handle_messages)
    return app


async def run_sse(host: str, port: int) -> None:
    """Run the server in SSE mode."""
    app = create_app()
    config = uvicorn.Config(app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    logger.info(f"MCP Server starting (SSE) on http://{host}:{port}/sse")
    await server.serve()
