"""FastAPI application hosting the mock MCP endpoint.

``POST /mcp`` carries client JSON-RPC messages and ``GET /mcp`` opens the
server-to-client SSE stream of an existing session. Both are raw ASGI routes
so the SDK transport can write its own (streaming) responses.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from starlette.responses import PlainTextResponse
from starlette.types import Receive, Scope, Send

from mock_mcp.config import Config, config
from mock_mcp.log import configure_logging, get_logger
from mock_mcp.sessions import SessionManager
from mock_mcp.tools import GreetTools, create_server

logger = get_logger(__name__)

# endpoint for the client to use for sending messages
MCP_ENDPOINT = "/mcp"


class MCPEndpoint:
    """ASGI app dispatching ``/mcp`` requests to the session manager."""

    def __init__(self, manager: SessionManager) -> None:
        self.manager = manager

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        method = scope["method"]
        if method == "POST":
            await self.manager.handle_post_request(scope, receive, send)
        elif method == "GET":
            await self.manager.handle_get_request(scope, receive, send)
        else:
            response = PlainTextResponse(
                "Method Not Allowed", status_code=405, headers={"Allow": "GET, POST"}
            )
            await response(scope, receive, send)


def create_app(settings: Config = config) -> FastAPI:
    tools = GreetTools(greet_delay=settings.greet_delay_seconds)
    server = create_server(settings.server_name, settings.server_version, tools)
    manager = SessionManager(server, tools, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(
            json_logs=settings.environment == "production",
            log_level=settings.log_level,
        )
        logger.info("mcp_server_starting", name=settings.server_name, version=settings.server_version)
        async with manager.run():
            yield
            logger.info("mcp_server_shutting_down")
        logger.info("mcp_server_shutdown_complete")

    app = FastAPI(
        title="Mock MCP Server",
        version=settings.server_version,
        description="Streamable HTTP MCP server fixture for client tests",
        lifespan=lifespan,
    )
    app.state.session_manager = manager
    app.add_route(MCP_ENDPOINT, MCPEndpoint(manager), methods=["GET", "POST"])

    @app.get("/health", tags=["admin"])
    def health() -> dict[str, Any]:
        return {
            "status": "ok",
            "server": settings.server_name,
            "version": settings.server_version,
            "sessions": len(manager.transports),
        }

    return app


app = create_app()
