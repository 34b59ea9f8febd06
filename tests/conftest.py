import asyncio
import socket
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
import sse_starlette.sse
import uvicorn
from client_helpers import NotificationRecorder

from mock_mcp.app import create_app
from mock_mcp.config import Config


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette keeps a process-wide exit event bound to the first event loop."""
    app_status = getattr(sse_starlette.sse, "AppStatus", None)
    if app_status is not None and hasattr(app_status, "should_exit_event"):
        app_status.should_exit_event = None
    yield


@pytest.fixture
def server_config(monkeypatch: pytest.MonkeyPatch) -> Config:
    monkeypatch.setenv("MCP_TOOL_REFRESH_SECONDS", "0")
    monkeypatch.setenv("MCP_STREAM_INTERVAL_SECONDS", "0.05")
    monkeypatch.setenv("MCP_STREAM_START_DELAY_SECONDS", "0.2")
    monkeypatch.setenv("MCP_GREET_DELAY_SECONDS", "0.01")
    return Config()


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest_asyncio.fixture
async def mcp_http_url(server_config: Config) -> AsyncIterator[str]:
    """Serve the app with uvicorn on a free port for the duration of a test."""
    port = _free_port()
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(server_config),
            host="127.0.0.1",
            port=port,
            log_level="warning",
            timeout_graceful_shutdown=5,
        )
    )
    task = asyncio.create_task(server.serve())
    while not server.started:
        if task.done():
            task.result()
        await asyncio.sleep(0.01)

    yield f"http://127.0.0.1:{port}"

    server.should_exit = True
    await task


@pytest.fixture
def recorder() -> NotificationRecorder:
    return NotificationRecorder()
