"""
Scouting Module
===============

Community up/down votes on catalog entry attributes.

Exports:
- ScoutingService: vote casting and community scores
"""

from .service import ScoutingService
from .vote_logic import DOWN, UP, VoteOutcome, apply_vote, tally_score

__all__ = ["ScoutingService", "VoteOutcome", "apply_vote", "tally_score", "UP", "DOWN"]
