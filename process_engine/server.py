"""Main MCP server implementation for the process engine."""

import asyncio
import json
import logging
from typing import Optional

from mcp import Tool
from mcp.server import NotificationOptions, Server
from mcp.server.models import InitializationOptions
from mcp.types import TextContent

from .config.settings import get_store_dir
from .core.version_store import (
    InMemoryProcessMetaStore,
    InMemoryVersionStore,
    JsonFileVersionStore,
    ProcessMetaStore,
    VersionStore,
)
from .tools.process_tools import ProcessTools
from .utils.response import error_response

logger = logging.getLogger(__name__)


class ProcessEngineMCPServer:
    """MCP Server exposing process graph mutation and versioning."""

    def __init__(
        self,
        version_store: Optional[VersionStore] = None,
        meta_store: Optional[ProcessMetaStore] = None,
    ):
        """Initialize the server; stores default from PROCESS_STORE_DIR."""
        if version_store is None:
            store_dir = get_store_dir()
            if store_dir:
                version_store = JsonFileVersionStore(store_dir)
                logger.info(f"Persisting process versions under {store_dir}")
            else:
                version_store = InMemoryVersionStore()

        self.version_store = version_store
        self.meta_store = meta_store or InMemoryProcessMetaStore()
        self.process_tools = ProcessTools(self.version_store, self.meta_store)

        self.server = Server("process-engine")
        self._register_handlers()

    def _register_handlers(self):
        """Register all MCP handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            """List all available tools."""
            return self.process_tools.get_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
            """Route tool calls to appropriate handlers."""
            return await self.call_tool(name, arguments)

    async def call_tool(self, name: str, arguments: dict) -> list[TextContent]:
        """Dispatch one tool call and wrap the envelope as text content."""
        if name.startswith("process_"):
            result = await self.process_tools.handle_tool(name, arguments)
        else:
            logger.error(f"Unknown tool: {name}")
            result = error_response(f"Unknown tool: {name}", "UNKNOWN_TOOL")
        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    async def run(self):
        """Run the MCP server over stdio."""
        from mcp.server.stdio import stdio_server

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                InitializationOptions(
                    server_name="process-engine",
                    server_version="0.1.0",
                    capabilities=self.server.get_capabilities(
                        notification_options=NotificationOptions(),
                        experimental_capabilities={}
                    )
                )
            )


def main():
    """Main entry point for the MCP server."""
    logging.basicConfig(level=logging.INFO)
    server = ProcessEngineMCPServer()
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
