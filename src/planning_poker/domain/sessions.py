"""Domain models for estimation sessions."""

from dataclasses import dataclass, field, replace
from enum import Enum

from planning_poker.domain.votes import VoteSummary
from planning_poker.domain.work_items import WorkItem


class RoundPhase(Enum):
    """Observable phase of a session's voting round."""

    IDLE = "idle"
    OPEN = "open"
    REVEALED = "revealed"


@dataclass
class Participant:
    """A connected person inside a session; ``id`` is the connection id."""

    id: str
    name: str
    vote: str | None = None


@dataclass
class Session:
    """Mutable session state owned by the registry."""

    id: str
    host_id: str
    participants: dict[str, Participant] = field(default_factory=dict)
    current_story: str | None = None
    current_issue: WorkItem | None = None
    is_voting_open: bool = False
    revealed_votes: bool = False
    board_id: int | None = None
    sprint_id: int | None = None
    meet_link: str | None = None
    round_number: int = 0

    @property
    def phase(self) -> RoundPhase:
        if self.revealed_votes:
            return RoundPhase.REVEALED
        if self.is_voting_open:
            return RoundPhase.OPEN
        return RoundPhase.IDLE

    def clear_votes(self) -> None:
        for participant in self.participants.values():
            participant.vote = None


@dataclass(frozen=True)
class ParticipantView:
    """Participant as seen by other connections."""

    id: str
    name: str
    has_voted: bool
    vote: str | None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "id": self.id,
            "name": self.name,
            "hasVoted": self.has_voted,
        }
        if self.vote is not None:
            payload["vote"] = self.vote
        return payload


@dataclass(frozen=True)
class SessionProjection:
    """Externally visible view of a session."""

    session_id: str
    is_host: bool
    current_story: str | None
    current_issue: WorkItem | None
    is_voting_open: bool
    revealed_votes: bool
    participants: list[ParticipantView]
    meet_link: str | None = None
    vote_summary: VoteSummary | None = None

    def for_viewer(self, is_host: bool) -> "SessionProjection":
        return replace(self, is_host=is_host)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "sessionId": self.session_id,
            "isHost": self.is_host,
            "currentStory": self.current_story,
            "currentIssue": (
                self.current_issue.to_dict() if self.current_issue else None
            ),
            "isVotingOpen": self.is_voting_open,
            "revealedVotes": self.revealed_votes,
            "participants": [p.to_dict() for p in self.participants],
            "meetLink": self.meet_link,
        }
        if self.vote_summary is not None:
            payload["voteSummary"] = self.vote_summary.to_dict()
        return payload
