"""
POTM Module
===========

Player-of-the-Match elections.

Exports:
- ElectionService: round lifecycle, ballots and winner history
- tally_ballots / pick_winner: pure tally helpers
"""

from .service import POTM_COLLECTION, POTM_HISTORY_COLLECTION, ElectionService
from .tally_logic import pick_winner, tally_ballots

__all__ = [
    "ElectionService",
    "POTM_COLLECTION",
    "POTM_HISTORY_COLLECTION",
    "pick_winner",
    "tally_ballots",
]
