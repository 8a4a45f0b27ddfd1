from __future__ import annotations

from typing import TYPE_CHECKING

from party.session.models import Session

if TYPE_CHECKING:
    from party.messaging.protocol import ConnectionProtocol


class SessionStore:
    """In-memory store of live sessions, keyed by connection id."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}  # connection_id -> Session

    def add(self, connection: ConnectionProtocol) -> Session:
        """Create a session for a new connection. Return the existing one if already present."""
        session = self._sessions.get(connection.connection_id)
        if session is None:
            session = Session(connection=connection)
            self._sessions[connection.connection_id] = session
        return session

    def get(self, connection_id: str) -> Session | None:
        return self._sessions.get(connection_id)

    def remove(self, connection_id: str) -> Session | None:
        return self._sessions.pop(connection_id, None)

    def sessions(self) -> list[Session]:
        """Snapshot of all sessions; safe to iterate across awaits."""
        return list(self._sessions.values())

    def __len__(self) -> int:
        return len(self._sessions)
