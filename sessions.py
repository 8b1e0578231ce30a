"""Streamable HTTP session multiplexer.

Maps the Mcp-Session-Id header to a live session context: one
StreamableHTTPServerTransport plus one run of the MCP server, started in the
multiplexer's task group. A session is only created by a POST without a
session id whose body is an initialize request (or a batch containing one);
it ends on DELETE, when its server run finishes, on the idle sweep, or at
shutdown.

An in-flight tool call is not cancelled when its session closes; it runs to
completion and its result is dropped.
"""

import json
import logging
import secrets
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import anyio
from anyio.abc import TaskGroup, TaskStatus
from mcp.server.lowlevel import Server
from mcp.server.streamable_http import MCP_SESSION_ID_HEADER, StreamableHTTPServerTransport
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.types import Message, Receive, Scope, Send

from oauth.errors import BadRequest, InvalidOrMissingSession, MCPAuthError

logger = logging.getLogger(__name__)


def is_initialize_request(message) -> bool:
    return (
        isinstance(message, dict)
        and message.get("jsonrpc") == "2.0"
        and message.get("method") == "initialize"
        and "id" in message
    )


def is_initialize_body(body) -> bool:
    """True for an initialize request or a batch containing at least one."""
    if isinstance(body, list):
        return any(is_initialize_request(message) for message in body)
    return is_initialize_request(body)


def _replay_receive(body: bytes, receive: Receive) -> Receive:
    """Hand an already-read body to the next ASGI app, then defer to receive."""
    delivered = False

    async def replay() -> Message:
        nonlocal delivered
        if not delivered:
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return replay


def _error_response(error: MCPAuthError) -> Response:
    if isinstance(error, BadRequest):
        return JSONResponse({
            "jsonrpc": "2.0",
            "error": {"code": -32000, "message": f"Bad Request: {error.description}"},
            "id": None,
        }, status_code=error.status_code)
    return PlainTextResponse(error.description, status_code=error.status_code)


@dataclass
class SessionContext:
    """One logical MCP connection."""

    session_id: str
    transport: StreamableHTTPServerTransport
    created_at: float
    last_seen: float
    active_requests: int = 0


class SessionMultiplexer:
    """ASGI app routing MCP traffic to per-session transports."""

    def __init__(self, server: Server, json_response: bool = False,
                 idle_timeout: float = 0, clock: Callable[[], float] = time.monotonic):
        self.server = server
        self.json_response = json_response
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._sessions: Dict[str, SessionContext] = {}
        self._task_group: Optional[TaskGroup] = None

    @asynccontextmanager
    async def run(self):
        """Own the task group that session server runs live in.

        Wrap the application lifespan in this.
        """
        if self._task_group is not None:
            raise RuntimeError("SessionMultiplexer.run() is already active")

        async with anyio.create_task_group() as tg:
            self._task_group = tg
            logger.info("[SESSION] Session multiplexer started")
            try:
                yield
            finally:
                tg.cancel_scope.cancel()
                self._task_group = None
                self._sessions.clear()
                logger.info("[SESSION] Session multiplexer stopped")

    def get(self, session_id: str) -> Optional[SessionContext]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        request = Request(scope, receive)
        session_id = request.headers.get(MCP_SESSION_ID_HEADER)
        logger.info(f"[SESSION] MCP {request.method}{f' session {session_id}' if session_id else ''}")

        try:
            if request.method == "POST":
                await self._handle_post(request, session_id, scope, receive, tracking_send)
            else:
                context = self._require(session_id)
                await self._dispatch(context, scope, receive, tracking_send)
        except MCPAuthError as e:
            await _error_response(e)(scope, receive, send)
        except Exception as e:
            logger.exception(f"[SESSION] Error handling MCP {request.method}: {e}")
            if not response_started:
                await JSONResponse({
                    "jsonrpc": "2.0",
                    "error": {"code": -32603, "message": "Internal server error"},
                    "id": None,
                }, status_code=500)(scope, receive, send)

    async def _handle_post(self, request: Request, session_id: Optional[str],
                           scope: Scope, receive: Receive, send: Send) -> None:
        if session_id:
            context = self._sessions.get(session_id)
            if context is None:
                raise BadRequest("No valid session ID provided")
            await self._dispatch(context, scope, receive, send)
            return

        body = await request.body()
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        if not is_initialize_body(payload):
            raise BadRequest("No valid session ID provided")

        context = await self._create_session()
        status = None

        async def status_send(message: Message) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self._dispatch(context, scope, _replay_receive(body, receive), status_send)
        finally:
            # The session only exists once the transport accepted the initialize
            if status is None or not 200 <= status < 300:
                logger.warning(f"[SESSION] Initialize rejected (status {status}), dropping {context.session_id}")
                await self.close(context.session_id)

    def _require(self, session_id: Optional[str]) -> SessionContext:
        context = self._sessions.get(session_id) if session_id else None
        if context is None:
            raise InvalidOrMissingSession("Invalid or missing session ID")
        return context

    async def _dispatch(self, context: SessionContext, scope: Scope,
                        receive: Receive, send: Send) -> None:
        context.last_seen = self._clock()
        context.active_requests += 1
        try:
            await context.transport.handle_request(scope, receive, send)
        finally:
            context.active_requests -= 1
            context.last_seen = self._clock()

        if context.transport.is_terminated:
            self._forget(context)

    async def _create_session(self) -> SessionContext:
        if self._task_group is None:
            raise RuntimeError("SessionMultiplexer.run() must be active to create sessions")

        session_id = secrets.token_urlsafe(32)
        while session_id in self._sessions:
            session_id = secrets.token_urlsafe(32)

        transport = StreamableHTTPServerTransport(
            mcp_session_id=session_id,
            is_json_response_enabled=self.json_response,
        )
        now = self._clock()
        context = SessionContext(session_id=session_id, transport=transport,
                                 created_at=now, last_seen=now)
        self._sessions[session_id] = context

        async def run_server(*, task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED) -> None:
            async with transport.connect() as (read_stream, write_stream):
                task_status.started()
                try:
                    await self.server.run(
                        read_stream,
                        write_stream,
                        self.server.create_initialization_options(),
                        stateless=False,
                    )
                except Exception as e:
                    logger.error(f"[SESSION] Session {session_id} crashed: {e}", exc_info=True)
                finally:
                    self._forget(context)

        await self._task_group.start(run_server)
        logger.info(f"[SESSION] MCP session initialized: {session_id}")
        return context

    def _forget(self, context: SessionContext) -> None:
        if self._sessions.get(context.session_id) is context:
            del self._sessions[context.session_id]
            logger.info(f"[SESSION] MCP session closed: {context.session_id}")

    async def close(self, session_id: str) -> bool:
        """Terminate a session. Returns False if it was not live."""
        context = self._sessions.get(session_id)
        if context is None:
            return False
        self._forget(context)
        await context.transport.terminate()
        return True

    async def sweep_idle(self) -> int:
        """Close sessions with no request in flight for idle_timeout seconds."""
        if self.idle_timeout <= 0:
            return 0
        cutoff = self._clock() - self.idle_timeout
        idle = [
            sid for sid, context in self._sessions.items()
            if context.active_requests == 0 and context.last_seen < cutoff
        ]
        for sid in idle:
            await self.close(sid)
        if idle:
            logger.info(f"[SWEEP] Closed {len(idle)} idle session(s)")
        return len(idle)
