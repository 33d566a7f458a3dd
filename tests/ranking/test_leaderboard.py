"""Tests for leaderboard reads."""

import pytest

from duelboard.constants import QualificationState
from duelboard.exceptions import InvalidLimitError
from duelboard.ranking.leaderboard import LeaderboardFilter, LeaderboardQuery


def _ids(submissions):
    return [s.submission_id for s in submissions]


class TestOrdering:
    def test_ties_broken_by_newest_first(self, contest):
        """Everyone sits at the baseline, so creation time decides."""
        assert _ids(contest.top_n()) == ["land-1", "photo-c", "photo-b", "photo-a"]

    def test_rating_dominates(self, contest):
        contest.record_vote("dave@example.com", "photo-a", "photo-b")
        assert _ids(contest.top_n()) == ["photo-a", "land-1", "photo-c", "photo-b"]

    def test_limit(self, contest):
        contest.record_vote("dave@example.com", "photo-a", "photo-b")
        assert _ids(contest.top_n(limit=2)) == ["photo-a", "land-1"]

    def test_limit_larger_than_population(self, contest):
        assert len(contest.top_n(limit=100)) == 4

    @pytest.mark.parametrize("limit", [0, -3])
    def test_invalid_limit(self, contest, limit):
        with pytest.raises(InvalidLimitError):
            contest.top_n(limit=limit)

    def test_returns_full_records(self, contest):
        top = contest.top_n(LeaderboardFilter(category_id="landscape"))
        assert len(top) == 1
        (land,) = top
        assert land.owner_id == "alice@example.com"
        assert land.qualification is QualificationState.APPROVED
        assert land.rating == 1000.0


class TestFilters:
    def test_category(self, contest):
        top = contest.top_n(LeaderboardFilter(category_id="portrait"))
        assert _ids(top) == ["photo-c", "photo-b", "photo-a"]

    def test_unknown_category_is_empty(self, contest):
        assert contest.top_n(LeaderboardFilter(category_id="macro")) == []

    def test_disqualified_hidden_by_default(self, contest):
        contest.set_qualification("photo-c", QualificationState.DISQUALIFIED)
        assert "photo-c" not in _ids(contest.top_n())

    def test_include_disqualified(self, contest):
        contest.set_qualification("photo-c", QualificationState.DISQUALIFIED)
        top = contest.top_n(LeaderboardFilter(include_disqualified=True))
        assert "photo-c" in _ids(top)

    def test_explicit_states(self, contest):
        contest.add_submission("photo-d", "dave@example.com", "portrait")
        approved = contest.top_n(LeaderboardFilter(states=[QualificationState.APPROVED]))
        pending = contest.top_n(LeaderboardFilter(states=[QualificationState.PENDING]))
        assert "photo-d" not in _ids(approved)
        assert _ids(pending) == ["photo-d"]

    def test_resolved_states(self):
        assert LeaderboardFilter().resolved_states() == {QualificationState.PENDING, QualificationState.APPROVED}
        assert LeaderboardFilter(include_disqualified=True).resolved_states() == set(QualificationState)
        assert LeaderboardFilter(states=["approved"]).resolved_states() == {QualificationState.APPROVED}


class TestPerCategory:
    def test_each_category_capped(self, contest):
        contest.record_vote("dave@example.com", "photo-b", "photo-a")
        top = contest.top_n(limit=2, per_category=True)
        assert _ids(top) == ["land-1", "photo-b", "photo-c"]

    def test_grouped_by_category(self, contest):
        grouped = LeaderboardQuery(contest.storage).top_by_category(limit=1)
        assert {category: _ids(rows) for category, rows in grouped.items()} == {
            "landscape": ["land-1"],
            "portrait": ["photo-c"],
        }

    def test_reads_committed_state(self, contest):
        """A read straight after a vote reflects it."""
        query = LeaderboardQuery(contest.storage)
        assert _ids(query.top_n(LeaderboardFilter(category_id="portrait"), 1)) == ["photo-c"]
        contest.record_vote("dave@example.com", "photo-a", "photo-c")
        assert _ids(query.top_n(LeaderboardFilter(category_id="portrait"), 1)) == ["photo-a"]
