"""Run the mock MCP server over Streamable HTTP.

Uses the FastAPI app from ``mock_mcp.app`` and runs it with uvicorn. Ctrl+C
shuts uvicorn down gracefully, which exits the app lifespan and terminates
every session transport.

Usage: python -m mock_mcp.server [port]
"""

import sys

import uvicorn

from mock_mcp.app import create_app
from mock_mcp.config import config
from mock_mcp.log import configure_logging, get_logger

logger = get_logger(__name__)


def main() -> None:
    port = int(sys.argv[1]) if len(sys.argv) > 1 else config.port
    configure_logging(
        json_logs=config.environment == "production",
        log_level=config.log_level,
    )
    logger.info("mcp_server_listening", host=config.host, port=port)
    uvicorn.run(create_app(config), host=config.host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
