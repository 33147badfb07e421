"""Eneca MCP Server - expose project management to AI assistants and workflow tools."""
import argparse
import asyncio
import logging
import sys
import traceback
from typing import Any, Callable, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import EmbeddedResource, Tool, TextContent
from pydantic import ValidationError
from sqlalchemy.orm import Session

from eneca_core.config import get_settings
from eneca_core.database import SessionLocal
from eneca_core.errors import EnecaError

# Import shared tools and handlers
from . import tools
from . import handlers

settings = get_settings()

# Configure logging to stderr; stdout carries the stdio transport
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("eneca-mcp")


# MCP Server instance
app = Server("eneca-mcp")

# Map tool names to handler functions
HANDLER_MAP: dict[str, Callable[[dict, Session], list[TextContent | EmbeddedResource]]] = {
    # Project handlers
    "create_project": handlers.handle_create_project,
    "search_projects": handlers.handle_search_projects,
    "update_project": handlers.handle_update_project,
    "delete_project": handlers.handle_delete_project,
    # Stage handlers
    "create_stage": handlers.handle_create_stage,
    "search_stages": handlers.handle_search_stages,
    "update_stage": handlers.handle_update_stage,
    "delete_stage": handlers.handle_delete_stage,
    # Object handlers
    "create_object": handlers.handle_create_object,
    "search_objects": handlers.handle_search_objects,
    "update_object": handlers.handle_update_object,
    "delete_object": handlers.handle_delete_object,
    # Section handlers
    "create_section": handlers.handle_create_section,
    "search_sections": handlers.handle_search_sections,
    "update_section": handlers.handle_update_section,
    "delete_section": handlers.handle_delete_section,
    # People handlers
    "search_users": handlers.handle_search_users,
    "search_employee_full_info": handlers.handle_search_employee_full_info,
    "search_by_responsible": handlers.handle_search_by_responsible,
    "get_employee_workload": handlers.handle_get_employee_workload,
    "get_project_team": handlers.handle_get_project_team,
    "get_project_sections": handlers.handle_get_project_sections,
    # Notes and reports
    "create_note": handlers.handle_create_note,
    "generate_project_report": handlers.handle_generate_project_report,
}


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools for project management."""
    return tools.get_tools()


def _run_handler(
    handler: Callable[[dict, Session], list[TextContent | EmbeddedResource]],
    arguments: dict,
    session_factory: Callable[[], Session],
) -> list[TextContent | EmbeddedResource]:
    db = session_factory()
    try:
        return handler(arguments, db)
    finally:
        db.close()


async def dispatch(
    name: str,
    arguments: Optional[dict],
    session_factory: Callable[[], Session] = SessionLocal,
) -> list[TextContent | EmbeddedResource]:
    """
    Route a tool call to its handler.

    The handler runs in a worker thread with its own session. Expected
    failures come back as a single error text block; unexpected exceptions
    are logged with their traceback and reported generically, never raised
    to the transport.
    """
    handler = HANDLER_MAP.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    arguments = arguments or {}
    try:
        return await asyncio.to_thread(_run_handler, handler, arguments, session_factory)

    except EnecaError as e:
        logger.warning(f"{name} rejected: {type(e).__name__}: {e.message}")
        return [TextContent(type="text", text=f"Error: {e.message}")]

    except ValidationError as e:
        logger.warning(f"{name} received invalid arguments: {e}")
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        return [TextContent(type="text", text=f"Error: Invalid arguments - {problems}")]

    except Exception as e:
        # Catch-all for unexpected errors
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Arguments: {arguments}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        return [TextContent(type="text", text=f"Error: {type(e).__name__}: {str(e)}")]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent | EmbeddedResource]:
    """Handle MCP tool calls by delegating to shared handlers."""
    logger.info(f"Tool call: {name} with arguments: {arguments}")
    return await dispatch(name, arguments)


async def main():
    """Run the MCP server over stdio."""
    logger.info(f"MCP Server starting (stdio) with database: {settings.database_url.split('@')[-1]}")
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())


def run(argv: Optional[list[str]] = None):
    """Console entry point: choose the transport and start serving."""
    parser = argparse.ArgumentParser(prog="eneca-mcp", description="Eneca MCP server")
    parser.add_argument("--transport", choices=["stdio", "sse"], default="stdio")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args(argv)

    if args.transport == "sse":
        from .sse import run_sse

        asyncio.run(run_sse(args.host, args.port))
    else:
        asyncio.run(main())


if __name__ == "__main__":
    run()
