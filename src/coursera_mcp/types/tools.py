"""Types for tool listing and invocation."""

from typing import Annotated, Any, Literal

from pydantic import Field

from coursera_mcp.types.base import MCPModel, RequestParams, Result


class TextContent(MCPModel):
    """Text provided to or from an LLM."""

    type: Literal["text"] = "text"
    text: str


class ToolAnnotations(MCPModel):
    """Additional properties describing a Tool to clients."""

    destructive_hint: Annotated[bool | None, Field(alias="destructiveHint")] = None
    idempotent_hint: Annotated[bool | None, Field(alias="idempotentHint")] = None
    open_world_hint: Annotated[bool | None, Field(alias="openWorldHint")] = None
    read_only_hint: Annotated[bool | None, Field(alias="readOnlyHint")] = None
    title: str | None = None


READ_ONLY = ToolAnnotations(read_only_hint=True, destructive_hint=False, idempotent_hint=True, open_world_hint=True)


class Tool(MCPModel):
    """Definition of a tool the server provides."""

    name: str
    description: str | None = None
    input_schema: Annotated[dict[str, Any], Field(alias="inputSchema")]
    annotations: ToolAnnotations | None = None


class ListToolsResult(Result):
    """Server's response to a tools/list request."""

    tools: list[Tool]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class CallToolRequestParams(RequestParams):
    """Parameters for tools/call request."""

    name: str
    arguments: dict[str, Any] | None = None


class CallToolResult(Result):
    """Server's response to a tools/call request."""

    content: list[TextContent]
    structured_content: Annotated[dict[str, Any] | None, Field(alias="structuredContent")] = None
    is_error: Annotated[bool, Field(alias="isError")] = False
