"""Error taxonomy shared by services and the transport layer."""


class PlanningPokerError(Exception):
    """Base class for errors reported back to a connection."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(PlanningPokerError):
    """A session or work item does not exist."""

    code = "not_found"


class UnauthorizedError(PlanningPokerError):
    """A non-host connection attempted a host-only action."""

    code = "unauthorized"


class InvalidInputError(PlanningPokerError):
    """A payload failed validation."""

    code = "invalid_input"


class UpstreamFailureError(PlanningPokerError):
    """The work-item system rejected or failed a request."""

    code = "upstream_failure"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
