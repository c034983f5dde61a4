"""Productive.io MCP Server - Expose Productive projects, tasks and budgets to AI assistants."""
import asyncio
import logging
import sys
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from . import __version__
from . import handlers
from . import tools
from .client import ProductiveClient
from .config import Settings, WorkspaceConfig, load_settings, load_workspace_config
from .errors import ConfigurationError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger("productive-mcp")


def configure_logging(level: str = "INFO") -> None:
    """Send all logging to stderr; stdout carries the MCP stdio transport."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True
    )
    # A closed stderr pipe must not print tracebacks from inside logging
    logging.raiseExceptions = False


class ToolCallError(Exception):
    """Raised from call_tool so the MCP SDK marks the response ``isError``."""


# MCP Server instance
app = Server("productive-mcp-server", version=__version__)

# Process-lifetime state, set by serve()
_client: Optional[ProductiveClient] = None
_workspace: WorkspaceConfig = WorkspaceConfig()


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools for Productive.io."""
    return tools.get_tools()


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle MCP tool calls by delegating to the shared dispatcher."""
    logger.info(f"Tool call: {name}")

    if _client is None:
        raise ToolCallError("Error: Productive client is not initialized.")

    result = await handlers.run_tool(name, arguments, _client, _workspace)
    if result.isError:
        raise ToolCallError(result.content[0].text)
    return result.content


async def serve(settings: Settings, workspace: WorkspaceConfig) -> None:
    """Run the stdio server with one client and one rate limiter for its lifetime."""
    global _client, _workspace

    async with ProductiveClient(settings.api_token, settings.org_id, base_url=settings.api_url) as client:
        _client = client
        _workspace = workspace
        logger.info(f"Productive MCP server v{__version__} running on stdio (API: {settings.api_url})")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await app.run(read_stream, write_stream, app.create_initialization_options())
        finally:
            _client = None


async def main():
    """Run the MCP server.

    Configuration is validated before any client exists; a missing credential
    or an unreadable workspace config exits with status 1.
    """
    configure_logging()
    try:
        settings = load_settings()
        configure_logging(settings.log_level)
        workspace = load_workspace_config(settings.config_path)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        raise SystemExit(1) from e

    await serve(settings, workspace)


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
