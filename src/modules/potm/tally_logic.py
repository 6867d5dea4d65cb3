"""
Ballot tally for Player-of-the-Match rounds.

Ties go to the entity whose first ballot appears earliest in the ballot
map's iteration order (insertion order of the stored mapping). The rule is
arbitrary but stable; it is kept as-is rather than replaced with a fairer one.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple


def tally_ballots(ballots: Mapping[str, str]) -> Dict[str, int]:
    """Count ballots per entity, keyed in first-seen order."""
    counts: Dict[str, int] = {}
    for entity_id in ballots.values():
        counts[entity_id] = counts.get(entity_id, 0) + 1
    return counts


def pick_winner(counts: Mapping[str, int]) -> Optional[Tuple[str, int]]:
    """(entity_id, count) with the highest count; first seen wins a tie."""
    winner: Optional[Tuple[str, int]] = None
    for entity_id, count in counts.items():
        if winner is None or count > winner[1]:
            winner = (entity_id, count)
    return winner
