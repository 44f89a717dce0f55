from coursera_mcp.transport.dispatcher import DispatchResult, SessionDispatcher
from coursera_mcp.transport.sessions import Session, SessionState, SessionStore, TransportKind
from coursera_mcp.transport.starlette import create_starlette_app
from coursera_mcp.transport.stdio import run_stdio

__all__ = [
    "DispatchResult",
    "Session",
    "SessionDispatcher",
    "SessionState",
    "SessionStore",
    "TransportKind",
    "create_starlette_app",
    "run_stdio",
]
