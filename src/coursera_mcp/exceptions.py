"""Exceptions raised by the Coursera MCP server."""

from http import HTTPStatus

from coursera_mcp.types.json_rpc import (
    INVALID_PARAMS,
    INVALID_REQUEST,
    PARSE_ERROR,
    SERVER_ERROR,
    ErrorData,
    JSONRPCErrorResponse,
    RequestId,
)

REFRESH_CREDENTIAL_HINT = "Try refreshing your CAUTH cookie from the browser"


class CourseraMCPError(Exception):
    """Base exception for all Coursera MCP errors."""


class ConfigError(CourseraMCPError):
    """Configuration error (missing credentials, invalid settings)."""


class ProtocolError(CourseraMCPError):
    """A request was rejected before reaching any session.

    Attributes:
        code: JSON-RPC error code reported to the caller
        status_code: HTTP status used by the HTTP binding
    """

    code: int = SERVER_ERROR
    status_code: int = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, *, code: int | None = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code

    def to_response(self, request_id: RequestId | None = None) -> JSONRPCErrorResponse:
        return JSONRPCErrorResponse(id=request_id, error=ErrorData(code=self.code, message=self.message))


class UnknownSessionError(ProtocolError):
    def __init__(self, message: str = "Bad Request: No valid session ID provided"):
        super().__init__(message)


class TransportMismatchError(ProtocolError):
    def __init__(self, message: str = "Bad Request: Session exists but uses a different transport protocol"):
        super().__init__(message)


class MalformedRequestError(ProtocolError):
    def __init__(self, message: str, *, code: int = INVALID_REQUEST):
        super().__init__(message, code=code)

    @classmethod
    def parse_error(cls, detail: str) -> "MalformedRequestError":
        return cls(f"Parse error: {detail}", code=PARSE_ERROR)


class UnauthorizedError(ProtocolError):
    status_code = HTTPStatus.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ToolNotFoundError(CourseraMCPError):
    code = INVALID_PARAMS

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolValidationError(CourseraMCPError):
    """Tool arguments do not satisfy the tool's input schema."""


class UpstreamError(CourseraMCPError):
    """The Coursera API or the browser layer reported a failure.

    Attributes:
        status_code: upstream HTTP status, when there was one
        body: upstream response body truncated for diagnostics
        hint: optional remediation advice for the caller
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        hint: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body
        self.hint = hint

    def to_dict(self) -> dict[str, str]:
        data = {"error": self.message}
        if self.hint:
            data["hint"] = self.hint
        return data
