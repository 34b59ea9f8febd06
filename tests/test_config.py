import pytest

from mock_mcp.config import Config, ConfigError


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    for key in (
        "MCP_HOST",
        "MCP_PORT",
        "MCP_TOOL_REFRESH_SECONDS",
        "MCP_STREAM_INTERVAL_SECONDS",
        "MCP_STREAM_MESSAGE_COUNT",
        "MCP_GREET_DELAY_SECONDS",
        "MCP_SERVER_NAME",
    ):
        monkeypatch.delenv(key, raising=False)

    config = Config()

    assert config.host == "0.0.0.0"
    assert config.port == 3000
    assert config.server_name == "mock-mcp-server"
    assert config.tool_refresh_seconds == 5.0
    assert config.stream_interval_seconds == 1.0
    assert config.stream_message_count == 2
    assert config.greet_delay_seconds == 1.0


def test_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MCP_PORT", "3100")
    monkeypatch.setenv("MCP_STREAM_MESSAGE_COUNT", "5")
    monkeypatch.setenv("MCP_GREET_DELAY_SECONDS", "0.25")

    config = Config()

    assert config.port == 3100
    assert config.stream_message_count == 5
    assert config.greet_delay_seconds == 0.25


def test_empty_value_uses_default(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MCP_PORT", "")
    assert Config().port == 3000


@pytest.mark.parametrize(
    ("key", "value"),
    [("MCP_PORT", "three-thousand"), ("MCP_STREAM_INTERVAL_SECONDS", "soon")],
)
def test_malformed_numbers(monkeypatch: pytest.MonkeyPatch, key: str, value: str):
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigError, match=key):
        Config()
