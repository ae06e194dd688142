"""State machine for voting rounds inside a session."""

import logging
import math
from dataclasses import dataclass

from planning_poker.domain.errors import (
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from planning_poker.domain.sessions import RoundPhase, Session
from planning_poker.domain.votes import is_valid_vote
from planning_poker.domain.work_items import WorkItem
from planning_poker.services.broadcast import (
    ISSUE_ESTIMATION_UPDATED,
    MEET_LINK,
    BroadcastCoordinator,
)
from planning_poker.services.jira import JiraService
from planning_poker.services.registry import SessionRegistry

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EstimationResult:
    """Outcome of committing an estimate to the work-item system."""

    issue_id: str
    point_value: int | float
    stale: bool = False


@dataclass
class VotingService:
    """Drive Idle -> Open -> Revealed transitions for a session.

    Round-control actions come from the host only. Actions that fail an
    authority or phase check are ignored and return False; nothing is
    mutated and nothing is broadcast.
    """

    registry: SessionRegistry
    broadcaster: BroadcastCoordinator
    jira_service: JiraService
    freeze_votes_after_reveal: bool = False

    def start_voting(self, connection_id: str, session_id: str, story: str) -> bool:
        """Open a new round on a free-text story."""
        session = self._host_session(connection_id, session_id, "start_voting")
        if session is None:
            return False
        label = story.strip() if isinstance(story, str) else ""
        session.current_issue = None
        session.board_id = None
        session.sprint_id = None
        self._open_round(session, label or None)
        self.broadcaster.publish_session(session_id)
        return True

    def start_voting_on_issue(  # noqa: PLR0913
        self,
        connection_id: str,
        session_id: str,
        board_id: int | None,
        sprint_id: int | None,
        issue: WorkItem,
    ) -> bool:
        """Open a new round on a tracker issue."""
        session = self._host_session(connection_id, session_id, "start_voting_issue")
        if session is None:
            return False
        session.board_id = board_id
        session.sprint_id = sprint_id
        session.current_issue = issue
        self._open_round(session, issue.summary or None)
        self.broadcaster.publish_session(session_id)
        return True

    def vote(self, connection_id: str, session_id: str, symbol: str) -> bool:
        """Record a participant's vote; the last vote wins."""
        session = self.registry.get_session(session_id)
        if session is None or not session.is_voting_open:
            _logger.debug("Vote ignored, round closed: session=%s", session_id)
            return False
        if self.freeze_votes_after_reveal and session.phase is RoundPhase.REVEALED:
            _logger.debug("Vote ignored, votes revealed: session=%s", session_id)
            return False
        participant = session.participants.get(connection_id)
        if participant is None:
            _logger.debug("Vote ignored, not a participant: session=%s", session_id)
            return False
        if not is_valid_vote(symbol):
            _logger.debug("Vote ignored, unknown symbol %r", symbol)
            return False
        participant.vote = symbol
        self.broadcaster.publish_session(session_id)
        return True

    def reveal_votes(self, connection_id: str, session_id: str) -> bool:
        """Make votes visible in projections."""
        session = self._host_session(connection_id, session_id, "reveal_votes")
        if session is None:
            return False
        if not session.is_voting_open:
            _logger.debug("Reveal ignored, no open round: session=%s", session_id)
            return False
        session.revealed_votes = True
        self.broadcaster.publish_session(session_id)
        return True

    def reset_votes(self, connection_id: str, session_id: str) -> bool:
        """Close the round and clear votes and the meet link.

        Issue context is kept so the same issue can be voted again.
        """
        session = self._host_session(connection_id, session_id, "reset_votes")
        if session is None:
            return False
        self._close_round(session)
        session.meet_link = None
        self.broadcaster.publish(session_id, MEET_LINK, {"meetLink": None})
        self.broadcaster.publish_session(session_id)
        return True

    async def commit_estimation(
        self,
        connection_id: str,
        session_id: str,
        issue_id: str,
        point_value: object,
    ) -> EstimationResult:
        """Write story points upstream, then close the round.

        The session is looked up again once the upstream call returns. A
        session that vanished meanwhile is reported as not found; a round
        that was reset or restarted meanwhile is left alone and the result is
        flagged stale.
        """
        session = self.registry.get_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if session.host_id != connection_id:
            raise UnauthorizedError("Not authorized")
        if not isinstance(issue_id, str) or not issue_id.strip():
            raise InvalidInputError("Issue id is required")
        points = parse_point_value(point_value)
        round_number = session.round_number

        await self.jira_service.set_story_points(issue_id, points)

        session = self.registry.get_session(session_id)
        if session is None or session.host_id != connection_id:
            _logger.warning(
                "Estimate for %s stored but session %s is gone", issue_id, session_id
            )
            raise NotFoundError("Session not found")
        notification = {"issueId": issue_id, "pointValue": points}
        if session.round_number != round_number:
            _logger.info(
                "Estimate for %s stored after the round moved on: session=%s",
                issue_id,
                session_id,
            )
            self.broadcaster.publish(session_id, ISSUE_ESTIMATION_UPDATED, notification)
            return EstimationResult(issue_id=issue_id, point_value=points, stale=True)

        self._close_round(session)
        session.current_issue = None
        self.broadcaster.publish(session_id, ISSUE_ESTIMATION_UPDATED, notification)
        self.broadcaster.publish_session(session_id)
        return EstimationResult(issue_id=issue_id, point_value=points)

    def _host_session(
        self, connection_id: str, session_id: str, action: str
    ) -> Session | None:
        session = self.registry.get_session(session_id)
        if session is None:
            _logger.debug("%s ignored, unknown session %s", action, session_id)
            return None
        if session.host_id != connection_id:
            _logger.debug("%s ignored, not the host: session=%s", action, session_id)
            return None
        return session

    def _open_round(self, session: Session, story: str | None) -> None:
        session.clear_votes()
        session.current_story = story
        session.is_voting_open = True
        session.revealed_votes = False
        session.round_number += 1

    def _close_round(self, session: Session) -> None:
        session.clear_votes()
        session.current_story = None
        session.is_voting_open = False
        session.revealed_votes = False
        session.round_number += 1


def parse_point_value(value: object) -> int | float:
    """Parse a manual or suggested story point value."""
    if isinstance(value, bool):
        raise InvalidInputError("Point value must be a number")
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise InvalidInputError("Point value must be a number") from None
    else:
        raise InvalidInputError("Point value must be a number")
    if not math.isfinite(number) or number < 0:
        raise InvalidInputError("Point value must be a non-negative number")
    return int(number) if number.is_integer() else number
