"""Configuration for the mock MCP server.

Values come from environment variables, optionally loaded from a ``.env``
file. Defaults reproduce the fixture the MCP client tests expect: port 3000,
a tool refresh every five seconds and a two-message SSE feed.
"""

import os

from dotenv import load_dotenv

load_dotenv()


class ConfigError(Exception):
    """Raised when a configuration value cannot be parsed."""
    pass


class Config:
    """Server configuration loaded from environment variables."""

    def __init__(self) -> None:
        # Listener
        self.host = os.getenv("MCP_HOST", "0.0.0.0")
        self.port = self._get_int("MCP_PORT", 3000)

        # Advertised in the initialize result
        self.server_name = os.getenv("MCP_SERVER_NAME", "mock-mcp-server")
        self.server_version = os.getenv("MCP_SERVER_VERSION", "1.0.0")

        # Timers
        self.tool_refresh_seconds = self._get_float("MCP_TOOL_REFRESH_SECONDS", 5.0)
        self.stream_interval_seconds = self._get_float("MCP_STREAM_INTERVAL_SECONDS", 1.0)
        self.stream_message_count = self._get_int("MCP_STREAM_MESSAGE_COUNT", 2)
        self.stream_start_delay_seconds = self._get_float("MCP_STREAM_START_DELAY_SECONDS", 0.1)
        self.greet_delay_seconds = self._get_float("MCP_GREET_DELAY_SECONDS", 1.0)

        # Application settings
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    def _get_int(self, key: str, default: int) -> int:
        """Get an integer environment variable.

        Args:
            key: The environment variable name.
            default: Used when the variable is unset or empty.

        Raises:
            ConfigError: If the value is not an integer.
        """
        value = os.getenv(key, "")
        if not value:
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise ConfigError(
                f"Environment variable '{key}' must be an integer, got {value!r}."
            ) from exc

    def _get_float(self, key: str, default: float) -> float:
        """Get a float environment variable.

        Raises:
            ConfigError: If the value is not a number.
        """
        value = os.getenv(key, "")
        if not value:
            return default
        try:
            return float(value)
        except ValueError as exc:
            raise ConfigError(
                f"Environment variable '{key}' must be a number, got {value!r}."
            ) from exc


# Global config instance
config = Config()
