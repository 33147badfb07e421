"""Eneca MCP Server - Model Context Protocol integration.

This package exposes the Eneca project tree (projects, stages, objects,
sections) and its people to AI assistants and workflow engines.

Modules:
- server: tool dispatch and the stdio transport
- sse: SSE transport over FastAPI
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers
"""

__version__ = "0.3.0"

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
