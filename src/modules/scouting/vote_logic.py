"""
Stat vote rules.

One voter holds at most one direction per (entity, attribute). Casting:
- the same direction again withdraws the vote,
- the opposite direction flips it (score moves by 2),
- with no previous vote, records it.

`score` is a cache of up-votes minus down-votes and is updated
incrementally; `tally_score` recomputes it from scratch.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple

from src.domain.models.player import VoteBucket

UP = "up"
DOWN = "down"
VALID_DIRECTIONS = frozenset({UP, DOWN})


class VoteOutcome(str, Enum):
    NEW = "new"
    FLIPPED = "flipped"
    WITHDRAWN = "withdrawn"


def is_valid_direction(direction: object) -> bool:
    return isinstance(direction, str) and direction in VALID_DIRECTIONS


def apply_vote(bucket: VoteBucket, voter_id: str, direction: str) -> Tuple[VoteBucket, VoteOutcome]:
    """Return the bucket after `voter_id` casts `direction`; the input is not modified."""
    if not is_valid_direction(direction):
        raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")

    choices = dict(bucket.voter_choices)
    previous = choices.get(voter_id)
    sign = 1 if direction == UP else -1

    if previous == direction:
        del choices[voter_id]
        return VoteBucket(score=bucket.score - sign, voter_choices=choices), VoteOutcome.WITHDRAWN

    choices[voter_id] = direction
    if previous is not None:
        return VoteBucket(score=bucket.score + 2 * sign, voter_choices=choices), VoteOutcome.FLIPPED
    return VoteBucket(score=bucket.score + sign, voter_choices=choices), VoteOutcome.NEW


def tally_score(bucket: VoteBucket) -> int:
    return sum(1 if choice == UP else -1 for choice in bucket.voter_choices.values())
