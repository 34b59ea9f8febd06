"""Per-session Streamable HTTP transports for the mock MCP server.

The SDK does all the protocol work. This module only decides which transport
a request belongs to, starts a server loop for every new session and pushes
the fixture's server-initiated notifications.
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import anyio
import mcp.types as types
from anyio.abc import TaskGroup, TaskStatus
from anyio.streams.memory import MemoryObjectSendStream
from mcp.server.lowlevel import NotificationOptions, Server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from mcp.shared.message import SessionMessage
from pydantic import ValidationError
from starlette.requests import Request
from starlette.types import Message, Receive, Scope, Send

from mock_mcp.config import Config
from mock_mcp.errors import INVALID_JSON_MESSAGE, bad_request, internal_error
from mock_mcp.log import get_logger
from mock_mcp.tools import GreetTools

logger = get_logger(__name__)


@dataclass
class Session:
    session_id: str
    transport: StreamableHTTPServerTransport
    # Clone of the transport's write stream, for server-initiated notifications
    outbound: MemoryObjectSendStream[SessionMessage]


def is_initialize_request(body: Any) -> bool:
    """Return True if *body* is an initialize request or a batch holding one."""
    if isinstance(body, list):
        return any(_is_initialize(item) for item in body)
    return _is_initialize(body)


def _is_initialize(data: Any) -> bool:
    try:
        types.InitializeRequest.model_validate(data)
    except ValidationError:
        return False
    return True


def _replay_body(body: bytes, receive: Receive) -> Receive:
    """Hand an already-read request body to the next consumer of *receive*."""
    consumed = False

    async def replay() -> Message:
        nonlocal consumed
        if not consumed:
            consumed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class SessionManager:
    """Maps session ids to SDK transports and forwards HTTP requests to them.

    ``run()`` must be entered before requests are handled: it owns the task
    group in which session server loops, SSE feeders and the tool refresh
    timer live.
    """

    def __init__(self, server: Server, tools: GreetTools, config: Config) -> None:
        self.server = server
        self.tools = tools
        self.config = config
        self.transports: dict[str, Session] = {}
        self._task_group: TaskGroup | None = None

    @asynccontextmanager
    async def run(self) -> AsyncIterator[None]:
        async with anyio.create_task_group() as tg:
            self._task_group = tg
            tg.start_soon(self._refresh_tools)
            try:
                yield
            finally:
                await self.cleanup()

    async def cleanup(self) -> None:
        """Stop the timers and terminate every session transport."""
        logger.info("session_manager_cleanup", sessions=len(self.transports))
        try:
            for session in list(self.transports.values()):
                await session.transport.terminate()
        finally:
            if self._task_group is not None:
                self._task_group.cancel_scope.cancel()
                self._task_group = None

    async def handle_post_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        logger.info("post_request_received", session_id=session_id)

        response_status: int | None = None

        async def tracked_send(message: Message) -> None:
            nonlocal response_status
            if message["type"] == "http.response.start":
                response_status = message["status"]
            await send(message)

        try:
            # Reuse existing transport
            session = self.transports.get(session_id) if session_id else None
            if session is not None:
                await session.transport.handle_request(scope, receive, tracked_send)
                return

            if session_id is None:
                body = await request.body()
                try:
                    payload = json.loads(body)
                except ValueError:
                    logger.warning("post_request_invalid_json")
                    await bad_request(INVALID_JSON_MESSAGE)(scope, receive, send)
                    return
                logger.debug("post_request_body", body=payload)

                if is_initialize_request(payload):
                    session = await self._start_session()
                    try:
                        await session.transport.handle_request(
                            scope, _replay_body(body, receive), tracked_send
                        )
                    finally:
                        # The client only learns the id from a successful initialize
                        if response_status != 200:
                            await self._discard_session(session)
                    return

            logger.warning("post_request_rejected", session_id=session_id)
            await bad_request()(scope, receive, send)
        except Exception:
            logger.exception("mcp_request_failed", session_id=session_id)
            if response_status is not None:
                raise
            await internal_error()(scope, receive, send)

    async def handle_get_request(self, scope: Scope, receive: Receive, send: Send) -> None:
        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        logger.info("get_request_received", session_id=session_id)

        session = self.transports.get(session_id) if session_id else None
        if session is None:
            logger.warning("get_request_rejected", session_id=session_id)
            await bad_request()(scope, receive, send)
            return

        logger.info("sse_stream_establishing", session_id=session_id)
        self._require_task_group().start_soon(self._stream_messages, session_id, session)
        await session.transport.handle_request(scope, receive, send)

    async def send_notification(self, session: Session, notification: types.Notification) -> None:
        """Write a server notification to the session's transport.

        Messages not tied to a request go out on the session's GET stream and
        are dropped by the transport when no such stream is open.
        """
        message = types.JSONRPCNotification(
            jsonrpc="2.0",
            **notification.model_dump(by_alias=True, mode="json", exclude_none=True),
        )
        await session.outbound.send(SessionMessage(types.JSONRPCMessage(message)))

    async def send_log(self, session: Session, data: str) -> None:
        notification = types.LoggingMessageNotification(
            method="notifications/message",
            params=types.LoggingMessageNotificationParams(level="info", data=data),
        )
        await self.send_notification(session, notification)

    def _require_task_group(self) -> TaskGroup:
        if self._task_group is None:
            raise RuntimeError("SessionManager.run() has not been entered")
        return self._task_group

    async def _start_session(self) -> Session:
        session_id = str(uuid4())
        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=False,
        )
        outbound = await self._require_task_group().start(self._run_session, session_id, transport)
        session = Session(session_id=session_id, transport=transport, outbound=outbound)

        self.transports[session_id] = session
        logger.info("session_created", session_id=session_id)
        return session

    async def _discard_session(self, session: Session) -> None:
        logger.warning("session_discarded", session_id=session.session_id)
        self.transports.pop(session.session_id, None)
        await session.transport.terminate()

    async def _run_session(
        self,
        session_id: str,
        transport: StreamableHTTPServerTransport,
        *,
        task_status: TaskStatus[MemoryObjectSendStream[SessionMessage]] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        async with transport.connect() as (read_stream, write_stream):
            outbound = write_stream.clone()
            task_status.started(outbound)
            try:
                await self.server.run(
                    read_stream,
                    write_stream,
                    self.server.create_initialization_options(
                        notification_options=NotificationOptions(tools_changed=True),
                    ),
                )
            except Exception:
                logger.exception("session_server_crashed", session_id=session_id)
            finally:
                outbound.close()
                logger.info("session_server_stopped", session_id=session_id)

    async def _stream_messages(self, session_id: str, session: Session) -> None:
        """Feed a freshly opened GET stream a few log notifications."""
        await anyio.sleep(self.config.stream_start_delay_seconds)
        try:
            await self.send_log(session, "SSE Connection established")

            for count in range(1, self.config.stream_message_count + 1):
                await anyio.sleep(self.config.stream_interval_seconds)
                data = f"Message {count} at {_timestamp()}"
                await self.send_log(session, data)
                logger.info("stream_message_sent", session_id=session_id, data=data)

            await self.send_log(session, "Streaming complete!")
            logger.info("stream_completed", session_id=session_id)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.exception("stream_message_failed", session_id=session_id)

    async def _refresh_tools(self) -> None:
        """Tell every session, on a timer, that the tool list changed."""
        if self.config.tool_refresh_seconds <= 0:
            return
        notification = types.ToolListChangedNotification(method="notifications/tools/list_changed")
        while True:
            await anyio.sleep(self.config.tool_refresh_seconds)
            for session_id, session in list(self.transports.items()):
                try:
                    await self.send_notification(session, notification)
                except (anyio.BrokenResourceError, anyio.ClosedResourceError):
                    logger.warning("tool_list_changed_not_delivered", session_id=session_id)
