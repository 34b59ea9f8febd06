"""Greet tools served by the mock MCP server.

Two tools are exposed: ``single-greet`` answers immediately, ``multi-greet``
emits two log notifications on the calling request's stream before it
answers. Listing the tools renames ``single-greet`` to ``single-greeting``
and the refresh timer keeps announcing ``notifications/tools/list_changed``,
so clients can exercise tool list refreshes.
"""

from collections.abc import Awaitable, Callable
from typing import Any

import anyio
import mcp.types as types
from mcp.server.lowlevel import Server

from mock_mcp.log import get_logger

logger = get_logger(__name__)

SINGLE_GREET_TOOL = "single-greet"
SINGLE_GREET_REFRESHED_TOOL = "single-greeting"
MULTI_GREET_TOOL = "multi-greet"

GREET_NAME_PROPERTIES: dict[str, Any] = {
    "greetName": {
        "type": "string",
        "description": "name to greet",
    },
}

SINGLE_GREET_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": GREET_NAME_PROPERTIES,
    "required": ["greetName"],
}

# Requires a key it does not declare; calls are not validated against schemas
MULTI_GREET_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": GREET_NAME_PROPERTIES,
    "required": ["name"],
}

Notify = Callable[[str], Awaitable[None]]


class GreetTools:
    """Tool catalog and call dispatch for the greet tools."""

    def __init__(self, greet_delay: float = 1.0) -> None:
        self.greet_delay = greet_delay
        self.single_greet_name = SINGLE_GREET_TOOL
        self.multi_greet_name = MULTI_GREET_TOOL

    def refresh(self) -> None:
        """Rename single greet; every tools/list does this before answering."""
        self.single_greet_name = SINGLE_GREET_REFRESHED_TOOL

    def descriptors(self) -> list[types.Tool]:
        return [
            types.Tool(
                name=self.single_greet_name,
                description="Greet a person with a name",
                inputSchema=SINGLE_GREET_INPUT_SCHEMA,
            ),
            types.Tool(
                name=self.multi_greet_name,
                description="Greet the user multiple times with delay in between.",
                inputSchema=MULTI_GREET_INPUT_SCHEMA,
            ),
        ]

    async def call(
        self, name: str, arguments: dict[str, Any], notify: Notify
    ) -> list[types.TextContent]:
        """Run a tool by its current name.

        Args:
            name: Tool name as the client sent it.
            arguments: Tool arguments.
            notify: Sends an info log notification tied to the calling request.

        Raises:
            ValueError: Unknown tool or missing name to greet. The SDK turns
                this into an ``isError`` tool result.
        """
        greet_name = arguments.get("greetName")

        if name == self.single_greet_name:
            if not greet_name:
                raise ValueError("Name to greet undefined.")
            return [types.TextContent(type="text", text=f"Hey {greet_name}! Welcome to Ballerina!")]

        if name == self.multi_greet_name:
            await notify(f"First greet to {greet_name}")
            await anyio.sleep(self.greet_delay)
            await notify(f"Second greet to {greet_name}")
            await anyio.sleep(self.greet_delay)
            return [types.TextContent(type="text", text="Hope you enjoy your day!")]

        raise ValueError("Tool not found")

    def register(self, server: Server) -> None:
        """Install the tool and logging handlers on a low-level server."""

        @server.list_tools()
        async def list_tools() -> list[types.Tool]:
            self.refresh()
            return self.descriptors()

        # Argument checks belong to the tools so clients see their error messages
        @server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
            ctx = server.request_context
            logger.info("tool_call_received", tool=name, arguments=arguments, request_id=ctx.request_id)

            async def notify(data: str) -> None:
                await ctx.session.send_log_message(
                    level="info",
                    data=data,
                    related_request_id=ctx.request_id,
                )

            return await self.call(name, arguments, notify)

        @server.set_logging_level()
        async def set_logging_level(level: types.LoggingLevel) -> None:
            logger.info("client_logging_level_set", level=level)


def create_server(name: str, version: str, tools: GreetTools) -> Server:
    server: Server = Server(name, version=version)
    tools.register(server)
    return server
