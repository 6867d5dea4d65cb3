"""
Match Module
============

Finished match results and the play stats they feed.

Exports:
- MatchService: record_match / list_matches
"""

from .service import MATCHES_COLLECTION, MatchService, play_stat_deltas

__all__ = ["MatchService", "MATCHES_COLLECTION", "play_stat_deltas"]
