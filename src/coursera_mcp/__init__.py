from coursera_mcp.config import CourseraSettings, HttpSettings, load_coursera_settings, load_http_settings
from coursera_mcp.exceptions import (
    ConfigError,
    CourseraMCPError,
    ProtocolError,
    ToolNotFoundError,
    ToolValidationError,
    UpstreamError,
)
from coursera_mcp.server import CourseraServer, create_coursera_server, server_factory

__all__ = [
    "ConfigError",
    "CourseraMCPError",
    "CourseraServer",
    "CourseraSettings",
    "HttpSettings",
    "ProtocolError",
    "ToolNotFoundError",
    "ToolValidationError",
    "UpstreamError",
    "create_coursera_server",
    "load_coursera_settings",
    "load_http_settings",
    "server_factory",
]
