"""Session membership actions: create, join, read and meet link."""

from dataclasses import dataclass

from planning_poker.domain.errors import (
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from planning_poker.domain.sessions import SessionProjection
from planning_poker.services.broadcast import MEET_LINK, BroadcastCoordinator
from planning_poker.services.registry import SessionRegistry, Subscriber

MAX_NAME_LENGTH = 64


@dataclass
class SessionService:
    """Application service for joining and reading sessions."""

    registry: SessionRegistry
    broadcaster: BroadcastCoordinator

    def create_session(
        self, connection_id: str, host_name: str, subscriber: Subscriber
    ) -> str:
        """Create a session hosted by the connection and return its id."""
        name = _clean_name(host_name)
        session_id, _ = self.registry.create_session(connection_id, name, subscriber)
        self.broadcaster.publish_session(session_id)
        return session_id

    def join_session(
        self,
        connection_id: str,
        session_id: str,
        name: str,
        subscriber: Subscriber,
    ) -> SessionProjection:
        """Join a session and return its current state for the joiner.

        The returned snapshot is what a late joiner renders first; it does not
        depend on the broadcast that follows reaching the new connection.
        """
        cleaned = _clean_name(name)
        self.registry.join_session(connection_id, session_id, cleaned, subscriber)
        self.broadcaster.publish_session(session_id)
        return self.get_session(session_id, viewer_id=connection_id)

    def get_session(
        self, session_id: str, viewer_id: str | None = None
    ) -> SessionProjection:
        """Return the current projection or raise NotFoundError."""
        projection = self.registry.get_session_projection(session_id, viewer_id)
        if projection is None:
            raise NotFoundError("Session not found")
        return projection

    def share_meet_link(
        self, connection_id: str, session_id: str, meet_link: str | None
    ) -> None:
        """Store a meeting link on the session and announce it to the room."""
        session = self.registry.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if session.host_id != connection_id:
            raise UnauthorizedError("Not authorized")
        link = meet_link.strip() if meet_link else ""
        session.meet_link = link or None
        self.broadcaster.publish(session_id, MEET_LINK, {"meetLink": session.meet_link})
        self.broadcaster.publish_session(session_id)


def _clean_name(raw: str) -> str:
    name = raw.strip() if isinstance(raw, str) else ""
    if not name:
        raise InvalidInputError("Name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidInputError(f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name
