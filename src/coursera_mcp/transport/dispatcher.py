"""Session-keyed message dispatcher shared by every transport binding.

Lifecycle of a session:

    uninitialized --initialize, no session id--> active --close / EOF / shutdown--> closed

Requests that name an unknown session, or that carry no session id and are not
an initialization, are rejected with a ``ProtocolError`` before any handler runs
and without touching the session table.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any

import anyio
from pydantic import ValidationError

from coursera_mcp.exceptions import MalformedRequestError, TransportMismatchError, UnknownSessionError
from coursera_mcp.server import CourseraServer, ServerFactory
from coursera_mcp.transport.sessions import Session, SessionStore, TransportKind
from coursera_mcp.types.json_rpc import (
    JSONRPCErrorResponse,
    JSONRPCMessage,
    JSONRPCMessageAdapter,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    dump_message,
)

logger = logging.getLogger(__name__)

# Upper bound on releasing one session's resources during bulk shutdown.
SESSION_TEARDOWN_TIMEOUT = 10.0


def decode_body(raw: bytes | str) -> Any:
    """Decode a request body as JSON.

    Raises:
        MalformedRequestError: with a PARSE_ERROR code if the body is not valid JSON
    """
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedRequestError.parse_error(str(e)) from e


def parse_messages(body: Any) -> tuple[list[JSONRPCMessage], bool]:
    """Validate a decoded body as one JSON-RPC message or a batch of them.

    Returns the messages and whether the body was a batch.
    """
    if isinstance(body, list):
        if not body:
            raise MalformedRequestError("Invalid Request: empty batch")
        items, batch = body, True
    else:
        items, batch = [body], False
    try:
        return [JSONRPCMessageAdapter.validate_python(item) for item in items], batch
    except ValidationError as e:
        raise MalformedRequestError("Invalid Request: body is not a JSON-RPC 2.0 message") from e


def find_initialize_request(messages: list[JSONRPCMessage]) -> JSONRPCRequest | None:
    for message in messages:
        if isinstance(message, JSONRPCRequest) and message.method == "initialize":
            return message
    return None


@dataclass
class DispatchResult:
    """What a transport should send back for one inbound body.

    ``session_id`` is ``None`` only when an initialization was refused.
    """

    session_id: str | None
    responses: list[JSONRPCResponse] = field(default_factory=list)
    batch: bool = False
    created: bool = False

    @property
    def body(self) -> dict[str, Any] | list[dict[str, Any]] | None:
        """The JSON body to write, or ``None`` when only notifications were received."""
        if not self.responses:
            return None
        if self.batch:
            return [dump_message(response) for response in self.responses]
        return dump_message(self.responses[0])


class SessionDispatcher:
    """Routes inbound messages to per-session servers.

    One dispatcher per process. It owns the session store; ``dispatch``,
    ``close_session`` and ``shutdown`` are the only ways sessions come and go.

    Usage:
        async with SessionDispatcher(server_factory(settings)) as dispatcher:
            result = await dispatcher.dispatch(TransportKind.STREAMABLE_HTTP, session_id, body)
    """

    def __init__(self, server_factory: ServerFactory, store: SessionStore | None = None) -> None:
        self._server_factory = server_factory
        self.store = store or SessionStore()

    async def __aenter__(self) -> SessionDispatcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        with anyio.CancelScope(shield=True):
            await self.shutdown()

    def lookup(self, session_id: str, transport: TransportKind) -> Session:
        """Return the active session for ``session_id`` on ``transport``.

        Raises:
            UnknownSessionError: if no active session has this id
            TransportMismatchError: if the session was created on another transport
        """
        session = self.store.get(session_id)
        if session is None or not session.active:
            raise UnknownSessionError()
        if session.transport is not transport:
            raise TransportMismatchError()
        return session

    async def dispatch(self, transport: TransportKind, session_id: str | None, body: Any) -> DispatchResult:
        """Handle one decoded body (a message or a batch) received on ``transport``.

        Raises:
            ProtocolError: for unknown sessions, transport mismatches and malformed bodies
        """
        if session_id is not None:
            session = self.lookup(session_id, transport)
            messages, batch = parse_messages(body)
            async with session.lock:
                # The session may have been closed while this request waited its turn.
                if not session.active:
                    raise UnknownSessionError()
                responses = await self._route(session.server, messages)
            return DispatchResult(session.session_id, responses, batch)

        messages, batch = parse_messages(body)
        init = find_initialize_request(messages)
        if init is None:
            raise UnknownSessionError()
        return await self._open_session(transport, init, messages, batch)

    async def _open_session(
        self,
        transport: TransportKind,
        init: JSONRPCRequest,
        messages: list[JSONRPCMessage],
        batch: bool,
    ) -> DispatchResult:
        server = self._server_factory()
        init_response = await server.initialize(init)
        if isinstance(init_response, JSONRPCErrorResponse):
            logger.info("Refused initialization: %s", init_response.error.message)
            await self._release(server)
            return DispatchResult(None, [init_response], batch)

        session = self.store.create(transport, server)
        async with session.lock:
            responses: list[JSONRPCResponse] = []
            for message in messages:
                if message is init:
                    responses.append(init_response)
                else:
                    responses.extend(await self._route(server, [message]))
        return DispatchResult(session.session_id, responses, batch, created=True)

    async def _route(self, server: CourseraServer, messages: list[JSONRPCMessage]) -> list[JSONRPCResponse]:
        responses: list[JSONRPCResponse] = []
        for message in messages:
            if isinstance(message, JSONRPCRequest):
                responses.append(await server.dispatch_request(message))
            elif isinstance(message, JSONRPCNotification):
                await server.dispatch_notification(message)
            else:
                # The server never sends requests of its own, so client responses answer nothing.
                logger.debug("Ignoring client response for id %s", message.id)
        return responses

    async def close_session(self, session_id: str) -> bool:
        """Tear down a session. Returns ``False`` if it was unknown or already closed.

        The session stops accepting messages immediately; its server (and any
        browser it launched) is released before the record is removed.
        """
        session = self.store.get(session_id)
        if session is None or not session.active:
            return False
        self.store.mark_closed(session_id)
        logger.info("Closing session %s", session_id)
        try:
            await session.server.aclose()
        finally:
            self.store.remove(session_id)
        return True

    async def shutdown(self) -> None:
        """Tear down every live session, logging and skipping individual failures."""
        session_ids = self.store.ids()
        if session_ids:
            logger.info("Shutting down %d session(s)", len(session_ids))
        for session_id in session_ids:
            try:
                with anyio.fail_after(SESSION_TEARDOWN_TIMEOUT):
                    await self.close_session(session_id)
            except Exception:
                logger.exception("Failed to tear down session %s", session_id)

    async def _release(self, server: CourseraServer) -> None:
        try:
            await server.aclose()
        except Exception:
            logger.exception("Failed to release server after refused initialization")
