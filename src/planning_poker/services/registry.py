"""Session registry: the single owner of session and membership state."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol
from uuid import uuid4

from planning_poker.domain.errors import InvalidInputError, NotFoundError
from planning_poker.domain.sessions import Participant, Session, SessionProjection
from planning_poker.services.projection import project_session

_logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """Outbound handle for one connection."""

    def deliver(self, event: str, payload: dict[str, object] | None) -> None:
        """Queue an event for the connection without blocking."""


@dataclass(frozen=True)
class DisconnectResult:
    """Outcome of removing a connection from its session."""

    session_id: str
    session: Session
    was_host: bool
    remaining: list[tuple[str, Subscriber]]


def _new_session_id() -> str:
    return str(uuid4())


@dataclass
class SessionRegistry:
    """Owns sessions, the connection to session map and broadcast rooms.

    Callers never keep a Session between calls; every operation looks the
    session up again by id.
    """

    id_factory: Callable[[], str] = _new_session_id
    _sessions: dict[str, Session] = field(default_factory=dict, init=False)
    _connections: dict[str, str] = field(default_factory=dict, init=False)
    _rooms: dict[str, dict[str, Subscriber]] = field(
        default_factory=dict, init=False
    )

    def create_session(
        self, host_connection_id: str, host_name: str, subscriber: Subscriber
    ) -> tuple[str, Session]:
        """Create a session hosted by the connection and join it to the room."""
        self._ensure_unattached(host_connection_id, None)
        session_id = self.id_factory()
        session = Session(id=session_id, host_id=host_connection_id)
        session.participants[host_connection_id] = Participant(
            id=host_connection_id, name=host_name
        )
        self._sessions[session_id] = session
        self._connections[host_connection_id] = session_id
        self._rooms[session_id] = {host_connection_id: subscriber}
        _logger.info("Session created: session=%s host=%s", session_id, host_name)
        return session_id, session

    def join_session(
        self,
        connection_id: str,
        session_id: str,
        name: str,
        subscriber: Subscriber,
    ) -> Session:
        """Add the connection as a participant and subscribe it to the room."""
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        self._ensure_unattached(connection_id, session_id)
        existing = session.participants.get(connection_id)
        if existing is not None:
            existing.name = name
        else:
            session.participants[connection_id] = Participant(
                id=connection_id, name=name
            )
        self._connections[connection_id] = session_id
        self._rooms.setdefault(session_id, {})[connection_id] = subscriber
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Return the live session, if any."""
        return self._sessions.get(session_id)

    def get_session_projection(
        self, session_id: str, viewer_id: str | None = None
    ) -> SessionProjection | None:
        """Return a fresh projection of the session, if it exists."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return project_session(session, viewer_id)

    def session_for_connection(self, connection_id: str) -> str | None:
        """Return the id of the session the connection belongs to."""
        return self._connections.get(connection_id)

    def room(self, session_id: str) -> list[tuple[str, Subscriber]]:
        """Return a snapshot of the connections subscribed to a session."""
        return list(self._rooms.get(session_id, {}).items())

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def disconnect_connection(self, connection_id: str) -> DisconnectResult | None:
        """Remove the connection from its session.

        A departing host deletes the session and releases the remaining
        connections, which become orphans. Unknown connections return None.
        """
        session_id = self._connections.pop(connection_id, None)
        if session_id is None:
            return None
        session = self._sessions.get(session_id)
        room = self._rooms.get(session_id, {})
        room.pop(connection_id, None)
        if session is None:
            return None
        session.participants.pop(connection_id, None)
        remaining = list(room.items())
        if session.host_id != connection_id:
            return DisconnectResult(
                session_id=session_id,
                session=session,
                was_host=False,
                remaining=remaining,
            )

        del self._sessions[session_id]
        self._rooms.pop(session_id, None)
        for orphan_id, _ in remaining:
            self._connections.pop(orphan_id, None)
        _logger.info(
            "Session ended by host: session=%s orphans=%s", session_id, len(remaining)
        )
        return DisconnectResult(
            session_id=session_id,
            session=session,
            was_host=True,
            remaining=remaining,
        )

    def _ensure_unattached(self, connection_id: str, session_id: str | None) -> None:
        current = self._connections.get(connection_id)
        if current is not None and current != session_id:
            raise InvalidInputError("Connection already belongs to another session")
