"""Logging utilities for the Coursera MCP server."""

import logging
from collections.abc import Mapping
from typing import Any, Literal

from rich.console import Console
from rich.logging import RichHandler

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

SENSITIVE_KEYS = frozenset({"authorization", "cookie", "cookies", "cauth", "x-api-key", "api_key"})


def configure_logging(level: LogLevel = "INFO") -> None:
    """Configure logging for the server.

    Everything goes to stderr: the stdio binding owns stdout for protocol traffic.

    Args:
        level: the log level to use
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO, including the full URL
    logging.getLogger("httpx").setLevel(logging.WARNING)


def redact_sensitive_data(
    data: Mapping[str, Any] | None,
    sensitive_keys: frozenset[str] = SENSITIVE_KEYS,
) -> Mapping[str, Any] | None:
    """Return a shallow copy with sensitive values replaced by "***"."""
    if data is None:
        return None
    return {key: "***" if key.lower() in sensitive_keys else value for key, value in data.items()}
