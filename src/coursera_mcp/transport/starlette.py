"""Streamable HTTP binding - a Starlette app around the session dispatcher.

Every response is a plain JSON body; no SSE streams are opened.

Usage:
    dispatcher = SessionDispatcher(server_factory(coursera_settings))
    app = create_starlette_app(dispatcher, http_settings)
    uvicorn.run(app, host=http_settings.http_host, port=http_settings.http_port)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route, request_response

from coursera_mcp.config import HttpSettings
from coursera_mcp.exceptions import ProtocolError, UnknownSessionError
from coursera_mcp.server import SERVER_NAME
from coursera_mcp.transport.dispatcher import SessionDispatcher, decode_body
from coursera_mcp.transport.security import HostValidationMiddleware, RequireApiKeyMiddleware, default_allowed_hosts
from coursera_mcp.transport.sessions import TransportKind
from coursera_mcp.types.json_rpc import INTERNAL_ERROR, dump_message, error_response

logger = logging.getLogger(__name__)

MCP_PATH = "/mcp"
MCP_SESSION_ID_HEADER = "mcp-session-id"


def _protocol_error_response(error: ProtocolError, status_code: int | None = None) -> JSONResponse:
    return JSONResponse(dump_message(error.to_response()), status_code=status_code or int(error.status_code))


async def _handle_post(dispatcher: SessionDispatcher, session_id: str | None, request: Request) -> Response:
    body = decode_body(await request.body())
    result = await dispatcher.dispatch(TransportKind.STREAMABLE_HTTP, session_id, body)

    headers = {MCP_SESSION_ID_HEADER: result.session_id} if result.session_id else None
    if result.body is None:
        return Response(status_code=202, headers=headers)
    if result.session_id is None:
        # Initialization refused; no session exists to hand out.
        return JSONResponse(result.body, status_code=400)
    return JSONResponse(result.body, headers=headers)


async def _handle_get(dispatcher: SessionDispatcher, session_id: str | None) -> Response:
    if not session_id:
        raise UnknownSessionError()
    dispatcher.lookup(session_id, TransportKind.STREAMABLE_HTTP)
    error = ProtocolError("Method Not Allowed: server-initiated streams are not supported", status_code=405)
    response = _protocol_error_response(error)
    response.headers["Allow"] = "POST, DELETE"
    return response


async def _handle_delete(dispatcher: SessionDispatcher, session_id: str | None) -> Response:
    if not session_id:
        raise UnknownSessionError()
    try:
        dispatcher.lookup(session_id, TransportKind.STREAMABLE_HTTP)
    except UnknownSessionError as e:
        return _protocol_error_response(e, status_code=404)
    if not await dispatcher.close_session(session_id):
        return _protocol_error_response(UnknownSessionError(), status_code=404)
    return Response(status_code=200)


async def handle_mcp(request: Request) -> Response:
    dispatcher: SessionDispatcher = request.app.state.dispatcher
    session_id = request.headers.get(MCP_SESSION_ID_HEADER)
    try:
        if request.method == "POST":
            return await _handle_post(dispatcher, session_id, request)
        if request.method == "DELETE":
            return await _handle_delete(dispatcher, session_id)
        return await _handle_get(dispatcher, session_id)
    except ProtocolError as e:
        logger.info("Rejected %s %s: %s", request.method, MCP_PATH, e.message)
        return _protocol_error_response(e)
    except Exception:
        logger.exception("Error handling %s %s", request.method, MCP_PATH)
        return JSONResponse(dump_message(error_response(INTERNAL_ERROR, "Internal server error")), status_code=500)


async def handle_health(request: Request) -> Response:
    return JSONResponse({"status": "ok", "service": SERVER_NAME})


def create_starlette_app(dispatcher: SessionDispatcher, settings: HttpSettings) -> Starlette:
    """Create the ASGI app serving ``/mcp`` and ``/health``.

    The dispatcher is entered by the app lifespan, so every live session is
    torn down when the server stops.
    """

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        async with dispatcher:
            logger.info("Streamable HTTP endpoint ready at %s", MCP_PATH)
            yield
        logger.info("Streamable HTTP endpoint stopped")

    mcp_endpoint: Callable[..., Any] = handle_mcp
    if settings.api_key:
        mcp_endpoint = RequireApiKeyMiddleware(request_response(handle_mcp), settings.api_key)

    app = Starlette(
        lifespan=lifespan,
        routes=[
            Route(MCP_PATH, endpoint=mcp_endpoint, methods=["GET", "POST", "DELETE"]),
            Route("/health", endpoint=handle_health, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                HostValidationMiddleware,
                allowed_hosts=default_allowed_hosts(settings.http_host, settings.allowed_hosts),
            )
        ],
    )
    app.state.dispatcher = dispatcher
    return app
