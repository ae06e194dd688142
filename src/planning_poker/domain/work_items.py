"""Work-item records from the external issue tracker."""

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class JiraBoard:
    """Agile board summary."""

    id: int
    name: str
    key: str | None
    type: str | None

    def to_dict(self) -> dict[str, object]:
        return {"id": self.id, "key": self.key, "name": self.name, "type": self.type}


@dataclass(frozen=True)
class JiraSprint:
    """Sprint summary for a board."""

    id: int
    name: str
    state: str | None
    start_date: str | None = None
    end_date: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "startDate": self.start_date,
            "endDate": self.end_date,
        }


@dataclass(frozen=True)
class WorkItem:
    """Issue under estimation.

    Only the identifier and display fields are interpreted; ``fields`` is the
    tracker's raw field mapping, passed through untouched.
    """

    id: str
    key: str
    summary: str
    status: str | None = None
    assignee: str | None = None
    issue_type: str | None = None
    story_points: float | None = None
    fields: Mapping[str, object] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> "WorkItem":
        """Build a work item from a Jira issue or a flat record."""
        raw_fields = payload.get("fields")
        fields = raw_fields if isinstance(raw_fields, Mapping) else {}
        issue_id = payload.get("id")
        if issue_id is None or str(issue_id).strip() == "":
            raise ValueError("work item requires an id")
        summary = fields.get("summary", payload.get("summary"))
        return cls(
            id=str(issue_id),
            key=str(payload.get("key") or issue_id),
            summary=str(summary or ""),
            status=_name_of(fields.get("status", payload.get("status"))),
            assignee=_name_of(
                fields.get("assignee", payload.get("assignee")), "displayName"
            ),
            issue_type=_name_of(fields.get("issuetype", payload.get("issueType"))),
            story_points=_number_or_none(
                fields.get("storyPoints", payload.get("storyPoints"))
            ),
            fields=dict(fields),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "key": self.key,
            "summary": self.summary,
            "status": self.status,
            "assignee": self.assignee,
            "issueType": self.issue_type,
            "storyPoints": self.story_points,
            "fields": dict(self.fields),
        }


def _name_of(value: object, attribute: str = "name") -> str | None:
    if isinstance(value, Mapping):
        name = value.get(attribute)
        return str(name) if name is not None else None
    if isinstance(value, str):
        return value
    return None


def _number_or_none(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    return None
