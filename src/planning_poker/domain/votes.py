"""Vote ordinal scale and advisory statistics."""

import math
from collections.abc import Iterable
from dataclasses import dataclass

VOTE_SCALE: tuple[str, ...] = (
    "0",
    "1",
    "2",
    "3",
    "5",
    "8",
    "13",
    "21",
    "34",
    "55",
    "89",
    "?",
)
UNSCORED_VOTE = "?"


def vote_index(symbol: str | None) -> int:
    """Return the position of a symbol on the scale, or -1 when unknown."""
    if symbol is None:
        return -1
    try:
        return VOTE_SCALE.index(symbol)
    except ValueError:
        return -1


def is_valid_vote(symbol: str | None) -> bool:
    """Return True when the symbol belongs to the scale."""
    return vote_index(symbol) >= 0


def compare_votes(left: str | None, right: str | None) -> int:
    """Compare two symbols by scale position (negative, zero or positive)."""
    return vote_index(left) - vote_index(right)


def sort_votes(votes: Iterable[str | None]) -> list[str | None]:
    """Return a copy of the votes ordered by scale position."""
    return sorted(votes, key=vote_index)


def min_vote(votes: Iterable[str | None]) -> str | None:
    """Return the lowest vote on the scale, or None for no votes."""
    ordered = sort_votes(votes)
    return ordered[0] if ordered else None


def max_vote(votes: Iterable[str | None]) -> str | None:
    """Return the highest vote on the scale, or None for no votes."""
    ordered = sort_votes(votes)
    return ordered[-1] if ordered else None


def avg_vote(votes: Iterable[str | None]) -> str | None:
    """Return the scale symbol closest to the mean vote position.

    The unscored "?" and unknown symbols are ignored. Halves round up to the
    higher position.
    """
    indices = [
        index
        for index in (vote_index(vote) for vote in votes)
        if index >= 0 and VOTE_SCALE[index] != UNSCORED_VOTE
    ]
    if not indices:
        return None
    mean = sum(indices) / len(indices)
    position = min(math.floor(mean + 0.5), len(VOTE_SCALE) - 1)
    return VOTE_SCALE[position]


@dataclass(frozen=True)
class VoteSummary:
    """Advisory statistics over a set of visible votes."""

    min: str | None
    avg: str | None
    max: str | None
    sorted: list[str]

    def to_dict(self) -> dict[str, object]:
        return {
            "min": self.min,
            "avg": self.avg,
            "max": self.max,
            "sorted": list(self.sorted),
        }


def summarize_votes(votes: Iterable[str | None]) -> VoteSummary:
    """Compute min/avg/max and the ordered list for the given votes."""
    present = [vote for vote in votes if vote is not None]
    return VoteSummary(
        min=min_vote(present),
        avg=avg_vote(present),
        max=max_vote(present),
        sorted=[vote for vote in sort_votes(present) if vote is not None],
    )
