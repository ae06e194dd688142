"""Pydantic models for WebSocket frames sent by clients."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ClientEnvelope(BaseModel):
    """Outer frame: an action name, its payload and an optional ack id."""

    event: str
    data: dict[str, Any] = Field(default_factory=dict)
    ack: int | str | None = None


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateSessionPayload(_Payload):
    """create-session payload."""

    host_name: str = Field(alias="hostName")


class JoinSessionPayload(_Payload):
    """join-session payload."""

    session_id: str = Field(alias="sessionId")
    name: str


class SessionRefPayload(_Payload):
    """Payload naming only a session (get-session, reveal-votes, reset-votes)."""

    session_id: str = Field(alias="sessionId")


class StartVotingPayload(_Payload):
    """start-voting payload."""

    session_id: str = Field(alias="sessionId")
    story: str = ""


class StartVotingIssuePayload(_Payload):
    """start-voting-issue payload; ``issue`` is a Jira issue or flat record."""

    session_id: str = Field(alias="sessionId")
    board_id: int | None = Field(default=None, alias="boardId")
    sprint_id: int | None = Field(default=None, alias="sprintId")
    issue: dict[str, Any]


class VotePayload(_Payload):
    """vote payload."""

    session_id: str = Field(alias="sessionId")
    symbol: str

    @field_validator("symbol", mode="before")
    @classmethod
    def _symbol_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class UpdateEstimationPayload(_Payload):
    """update-issue-estimation payload."""

    session_id: str = Field(alias="sessionId")
    issue_id: str = Field(alias="issueId")
    point_value: int | float | str = Field(alias="pointValue")

    @field_validator("issue_id", mode="before")
    @classmethod
    def _issue_id_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class SprintsPayload(_Payload):
    """get-sprints payload."""

    board_id: int = Field(alias="boardId")


class IssuesPayload(_Payload):
    """get-issues payload."""

    board_id: int = Field(alias="boardId")
    sprint_id: int = Field(alias="sprintId")


class MeetLinkPayload(_Payload):
    """share-meet-link payload; a null or empty link clears it."""

    session_id: str = Field(alias="sessionId")
    meet_link: str | None = Field(default=None, alias="meetLink")
