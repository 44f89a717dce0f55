"""Per-session protocol server - handler table and dispatch.

No I/O and no transport knowledge: the dispatcher owns one ``CourseraServer``
per session and feeds it decoded JSON-RPC messages.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from pydantic import BaseModel, ValidationError

from coursera_mcp.config import CourseraSettings
from coursera_mcp.exceptions import ToolNotFoundError
from coursera_mcp.tools.handlers import CourseraTools
from coursera_mcp.tools.registry import ToolRegistry
from coursera_mcp.types.base import LATEST_PROTOCOL_VERSION, SUPPORTED_PROTOCOL_VERSIONS
from coursera_mcp.types.initialize import (
    Implementation,
    InitializeRequestParams,
    InitializeResult,
    ServerCapabilities,
)
from coursera_mcp.types.json_rpc import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    JSONRPCResultResponse,
    error_response,
)
from coursera_mcp.types.tools import CallToolRequestParams, ListToolsResult
from coursera_mcp.upstream.browser import BrowserHandle
from coursera_mcp.upstream.client import CourseraClient

logger = logging.getLogger(__name__)

SERVER_NAME = "coursera-mcp"

try:
    SERVER_VERSION = version("coursera-mcp")
except PackageNotFoundError:
    SERVER_VERSION = "0.0.0"

RequestHandler = Callable[[JSONRPCRequest], Awaitable[BaseModel | dict[str, Any]]]
ServerFactory = Callable[[], "CourseraServer"]


class CourseraServer:
    """Handler registry and dispatch for one session.

    Usage:
        server = CourseraServer(registry)
        response = await server.initialize(init_request)
        response = await server.dispatch_request(request)
        await server.aclose()
    """

    def __init__(self, registry: ToolRegistry, *, name: str = SERVER_NAME, version: str = SERVER_VERSION) -> None:
        self.name = name
        self.version = version
        self.registry = registry
        self.initialized = False
        self.client_info: Implementation | None = None
        self.protocol_version: str | None = None
        self._request_handlers: dict[str, RequestHandler] = {}

        @self.request_handler("ping")
        async def _ping(request: JSONRPCRequest) -> dict[str, Any]:
            return {}

        @self.request_handler("tools/list")
        async def _list_tools(request: JSONRPCRequest) -> ListToolsResult:
            return ListToolsResult(tools=self.registry.list_tools())

        @self.request_handler("tools/call")
        async def _call_tool(request: JSONRPCRequest) -> BaseModel:
            params = CallToolRequestParams.model_validate(request.params or {})
            return await self.registry.call(params.name, params.arguments)

    def request_handler(self, method: str) -> Callable[[RequestHandler], RequestHandler]:
        """Decorator to register a request handler for a given method."""

        def decorator(fn: RequestHandler) -> RequestHandler:
            self._request_handlers[method] = fn
            return fn

        return decorator

    def get_capabilities(self) -> ServerCapabilities:
        return ServerCapabilities(tools={})

    async def initialize(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """Answer the initialize handshake.

        Echoes the client's protocol version when supported, otherwise offers the latest one.
        """
        try:
            params = InitializeRequestParams.model_validate(request.params or {})
        except ValidationError as e:
            return error_response(INVALID_PARAMS, f"Invalid initialize params: {e.errors()[0]['msg']}", request.id)

        if params.protocol_version in SUPPORTED_PROTOCOL_VERSIONS:
            self.protocol_version = params.protocol_version
        else:
            self.protocol_version = LATEST_PROTOCOL_VERSION
        self.client_info = params.client_info

        result = InitializeResult(
            protocol_version=self.protocol_version,
            capabilities=self.get_capabilities(),
            server_info=Implementation(name=self.name, version=self.version),
        )
        return JSONRPCResultResponse(id=request.id, result=result.model_dump(by_alias=True, exclude_none=True))

    async def dispatch_request(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """Dispatch a request to the appropriate handler."""
        if request.method == "initialize":
            return error_response(INVALID_REQUEST, "Session is already initialized", request.id)

        handler = self._request_handlers.get(request.method)
        if not handler:
            return error_response(METHOD_NOT_FOUND, f"Method not found: {request.method}", request.id)
        try:
            result = await handler(request)
        except ToolNotFoundError as e:
            return error_response(e.code, str(e), request.id)
        except ValidationError as e:
            return error_response(INVALID_PARAMS, f"Invalid params: {e.errors()[0]['msg']}", request.id)
        except Exception:
            logger.exception("Handler error for %s", request.method)
            return error_response(INTERNAL_ERROR, "Internal error", request.id)

        if isinstance(result, BaseModel):
            result_data = result.model_dump(by_alias=True, exclude_none=True)
        else:
            result_data = result
        return JSONRPCResultResponse(id=request.id, result=result_data)

    async def dispatch_notification(self, notification: JSONRPCNotification) -> None:
        if notification.method == "notifications/initialized":
            self.initialized = True
            return
        # Tool calls are short and uninterruptible, so cancellations have nothing to act on.
        logger.debug("Ignoring notification %s", notification.method)

    async def aclose(self) -> None:
        """Release the session's registry, including any browser it launched."""
        await self.registry.aclose()


def create_coursera_server(
    settings: CourseraSettings,
    *,
    client: CourseraClient | None = None,
    browser: BrowserHandle | None = None,
) -> CourseraServer:
    """Build a fresh server with its own API client and (not yet launched) browser."""
    tools = CourseraTools(settings, client or CourseraClient(settings), browser or BrowserHandle(settings))
    return CourseraServer(ToolRegistry(tools))


def server_factory(settings: CourseraSettings) -> ServerFactory:
    return lambda: create_coursera_server(settings)
