"""MCP server wiring for productive-time-mcp.

Lists the Productive tools, dispatches calls, and returns each result as a single
TextContent block.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any

try:
    from mcp.server import Server
    from mcp.types import CallToolResult, Resource, TextContent, Tool
except ImportError as exc:  # pragma: no cover
    raise ImportError("MCP library not installed. Install with: pip install mcp") from exc

from . import __version__
from .errors import SafeError
from .tools import TOOL_METADATA, dispatch_tool, initialize_runtime_from_env

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)
logger = logging.getLogger(__name__)

SERVER_NAME = "productive-time-tracking"
STATUS_URI = "productive-time-mcp://server-status"

server = Server(SERVER_NAME)


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    tools: list[Tool] = []
    for tool_name, metadata in TOOL_METADATA.items():
        tools.append(
            Tool(
                name=tool_name,
                description=metadata["description"],
                inputSchema=metadata["inputSchema"],
            )
        )

    logger.info("Listed %s tools", len(tools))
    return tools


# Arguments are validated by dispatch_tool, after the configuration check.
@server.call_tool(validate_input=False)
async def call_tool(name: str, arguments: dict[str, Any] | None) -> CallToolResult:
    """Execute a tool and return its text as MCP content."""
    logger.info("Tool called: %s", name)

    result = await dispatch_tool(name, arguments or {})
    return CallToolResult(
        content=[TextContent(type="text", text=result.text)],
        isError=result.is_error,
    )


@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=STATUS_URI,
            name="Server Status",
            description="Non-secret configuration status and available tools",
            mimeType="application/json",
        ),
    ]


@server.read_resource()
async def read_resource(uri: Any) -> str:
    """Read resource content."""
    uri_s = (uri if isinstance(uri, str) else str(uri)).rstrip("/")

    if uri_s == STATUS_URI:
        status: dict[str, Any] = {
            "server": SERVER_NAME,
            "version": __version__,
            "tools_available": len(TOOL_METADATA),
            "tool_names": sorted(TOOL_METADATA.keys()),
            "configured": False,
            "missing_variables": [],
        }
        try:
            runtime = initialize_runtime_from_env()
            missing = runtime.config.missing_variables()
            status["configured"] = not missing
            status["missing_variables"] = missing
            status["limits"] = {
                "timeout_s": runtime.config.limits.timeout_s,
                "page_size": runtime.config.limits.page_size,
            }
        except SafeError as err:
            status["config_error"] = err.message

        return json.dumps(status, indent=2)

    return json.dumps({"ok": False, "code": "NotFound", "message": "Unknown resource"}, indent=2)


async def run_server() -> None:
    """Run the server over stdio.

    Missing credentials are logged but do not stop startup; each tool call reports them.
    """
    try:
        missing = initialize_runtime_from_env().config.missing_variables()
    except SafeError as exc:
        logger.error("Startup configuration error: %s", exc.message)
        raise
    if missing:
        logger.warning("Missing environment variables: %s", ", ".join(missing))

    from mcp.server.stdio import stdio_server

    logger.info("Productive MCP Server running on stdio")
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


async def test_server() -> None:
    """Lightweight self-test to ensure tool/resource listing works."""
    tools = [
        Tool(name=name, description=meta["description"], inputSchema=meta["inputSchema"])
        for name, meta in TOOL_METADATA.items()
    ]
    print(f"OK: {len(tools)} tools defined", file=sys.stderr)
    status = json.loads(await read_resource(STATUS_URI))
    print(f"OK: configured={status['configured']}", file=sys.stderr)
