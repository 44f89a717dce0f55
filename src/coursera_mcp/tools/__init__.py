from coursera_mcp.tools.definitions import TOOLS
from coursera_mcp.tools.handlers import CourseraTools
from coursera_mcp.tools.registry import ToolRegistry

__all__ = ["TOOLS", "CourseraTools", "ToolRegistry"]
