"""Vote-visibility filtered views of session state."""

from planning_poker.domain.sessions import ParticipantView, Session, SessionProjection
from planning_poker.domain.votes import summarize_votes


def project_session(
    session: Session, viewer_id: str | None = None
) -> SessionProjection:
    """Build the externally visible view of a session.

    Votes are only copied out when ``revealed_votes`` is set; otherwise each
    participant exposes just whether a vote exists. Participants keep join
    order.
    """
    revealed = session.revealed_votes
    participants = [
        ParticipantView(
            id=participant.id,
            name=participant.name,
            has_voted=participant.vote is not None,
            vote=participant.vote if revealed else None,
        )
        for participant in session.participants.values()
    ]
    summary = None
    if revealed:
        summary = summarize_votes(p.vote for p in participants)
    return SessionProjection(
        session_id=session.id,
        is_host=viewer_id is not None and viewer_id == session.host_id,
        current_story=session.current_story,
        current_issue=session.current_issue,
        is_voting_open=session.is_voting_open,
        revealed_votes=revealed,
        participants=participants,
        meet_link=session.meet_link,
        vote_summary=summary,
    )
