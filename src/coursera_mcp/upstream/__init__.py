from coursera_mcp.upstream.browser import BrowserHandle
from coursera_mcp.upstream.client import CourseraClient, create_http_client

__all__ = ["BrowserHandle", "CourseraClient", "create_http_client"]
