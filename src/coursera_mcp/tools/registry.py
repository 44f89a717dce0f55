"""Tool registry: descriptor lookup, argument validation and handler dispatch."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import jsonschema

from coursera_mcp.exceptions import ToolNotFoundError, ToolValidationError, UpstreamError
from coursera_mcp.logging import redact_sensitive_data
from coursera_mcp.tools.definitions import TOOLS
from coursera_mcp.tools.handlers import CourseraTools
from coursera_mcp.types.results import ToolResult
from coursera_mcp.types.tools import CallToolResult, TextContent, Tool

logger = logging.getLogger(__name__)

ToolHandler = Callable[..., Awaitable[ToolResult]]


def _to_document(result: ToolResult) -> dict[str, Any]:
    return result.model_dump(mode="json", by_alias=True, exclude_none=True)


def _text_result(document: dict[str, Any], *, is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(text=json.dumps(document, indent=2, ensure_ascii=False))],
        structured_content=document,
        is_error=is_error,
    )


class ToolRegistry:
    """Maps tool names to descriptors and handlers for one session.

    Handlers are looked up on ``handlers`` by tool name, so a ``CourseraTools``
    instance serves every descriptor in ``TOOLS``.
    """

    def __init__(self, handlers: CourseraTools, tools: Iterable[Tool] = TOOLS) -> None:
        self.handlers = handlers
        self._tools: dict[str, Tool] = {}
        self._functions: dict[str, ToolHandler] = {}
        for tool in tools:
            function = getattr(handlers, tool.name, None)
            if function is None:
                raise ValueError(f"No handler for tool {tool.name!r}")
            self._tools[tool.name] = tool
            self._functions[tool.name] = function

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def get_tool(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def validate(self, name: str, arguments: dict[str, Any]) -> None:
        """Check ``arguments`` against the tool's input schema.

        Raises:
            ToolNotFoundError: if no tool has this name
            ToolValidationError: if the arguments do not match the schema
        """
        tool = self.get_tool(name)
        try:
            jsonschema.validate(instance=arguments, schema=tool.input_schema)
        except jsonschema.ValidationError as e:
            raise ToolValidationError(e.message) from e

    async def call(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        """Validate and run a tool, wrapping whatever happens in a CallToolResult.

        Only an unknown tool name escapes as an exception (``ToolNotFoundError``);
        argument and upstream failures are reported as error results.
        """
        arguments = arguments or {}
        try:
            self.validate(name, arguments)
        except ToolValidationError as e:
            return _text_result({"error": f"Input validation error: {e}"}, is_error=True)

        logger.info("Calling tool %s with %s", name, redact_sensitive_data(arguments))
        try:
            result = await self._functions[name](**arguments)
        except ToolValidationError as e:
            return _text_result({"error": f"Input validation error: {e}"}, is_error=True)
        except UpstreamError as e:
            logger.warning("Tool %s failed upstream: %s", name, e)
            return _text_result(e.to_dict(), is_error=True)
        except Exception as e:
            logger.exception("Tool %s raised", name)
            return _text_result({"error": str(e) or type(e).__name__}, is_error=True)

        return _text_result(_to_document(result))

    async def aclose(self) -> None:
        await self.handlers.aclose()
