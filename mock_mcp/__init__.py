"""Mock MCP server speaking the Streamable HTTP transport, for client e2e tests."""

__version__ = "1.0.0"
