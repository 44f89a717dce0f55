"""Session records and the store that owns them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

import anyio

from coursera_mcp.server import CourseraServer

logger = logging.getLogger(__name__)


class TransportKind(str, Enum):
    """The physical channel a session was created on."""

    STDIO = "stdio"
    STREAMABLE_HTTP = "streamable-http"


class SessionState(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Session:
    """One logical client connection.

    ``lock`` serialises the session's messages so they are handled in arrival order.
    """

    session_id: str
    transport: TransportKind
    server: CourseraServer
    state: SessionState = SessionState.ACTIVE
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: anyio.Lock = field(default_factory=anyio.Lock, repr=False)

    @property
    def active(self) -> bool:
        return self.state is SessionState.ACTIVE


class SessionStore:
    """Session table keyed by session id.

    ``create``, ``mark_closed`` and ``remove`` are the only mutation points. Ids are
    never reissued, even after the session they named has been removed.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._issued: set[str] = set()

    def _new_id(self) -> str:
        while True:
            session_id = uuid4().hex
            if session_id not in self._issued:
                self._issued.add(session_id)
                return session_id

    def create(self, transport: TransportKind, server: CourseraServer) -> Session:
        session = Session(session_id=self._new_id(), transport=transport, server=server)
        self._sessions[session.session_id] = session
        logger.info("Created %s session %s", transport.value, session.session_id)
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def mark_closed(self, session_id: str) -> Session | None:
        """Stop a session accepting messages while its record stays in the table."""
        session = self._sessions.get(session_id)
        if session is not None:
            session.state = SessionState.CLOSED
        return session

    def remove(self, session_id: str) -> Session | None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.state = SessionState.CLOSED
        return session

    def ids(self) -> list[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
