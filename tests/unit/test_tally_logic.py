"""
Unit tests for the Player-of-the-Match ballot tally.
"""

import pytest

from src.modules.potm.tally_logic import pick_winner, tally_ballots


@pytest.mark.unit
class TestTally:
    def test_counts_per_entity(self):
        counts = tally_ballots({"v1": "a", "v2": "b", "v3": "a"})

        assert counts == {"a": 2, "b": 1}

    def test_first_seen_order(self):
        counts = tally_ballots({"v1": "b", "v2": "a", "v3": "b"})

        assert list(counts) == ["b", "a"]

    def test_clear_winner(self):
        assert pick_winner({"a": 1, "b": 3, "c": 2}) == ("b", 3)

    def test_tie_goes_to_first_seen(self):
        assert pick_winner(tally_ballots({"v1": "x", "v2": "y"})) == ("x", 1)
        assert pick_winner(tally_ballots({"v1": "y", "v2": "x"})) == ("y", 1)

    def test_no_ballots(self):
        assert tally_ballots({}) == {}
        assert pick_winner({}) is None
