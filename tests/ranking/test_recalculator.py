"""Tests for ledger replay."""

from datetime import datetime

import pytest

from duelboard.constants import BASELINE_RATING
from duelboard.database.records import Vote
from duelboard.ranking.recalculator import RecalculationResult, replay_votes

START_TIME = datetime(2024, 3, 1, 12, 0, 0)


def _snapshot(engine):
    return {s.submission_id: s.rating for s in engine.store.list_submissions()}


def _play(engine):
    engine.record_vote("dave@example.com", "photo-a", "photo-b")
    engine.record_vote("erin@example.com", "photo-b", "photo-c")
    engine.record_vote("dave@example.com", "photo-c", "photo-a")
    engine.record_vote("erin@example.com", "photo-a", "photo-c")
    engine.record_vote("frank@example.com", "photo-b", "photo-a")


class TestReplayVotes:
    def test_unknown_submissions_start_at_baseline(self):
        votes = [Vote(1, "v", "a", "b", START_TIME)]
        assert replay_votes(votes, {}) == {"a": pytest.approx(1016.0), "b": pytest.approx(984.0)}

    def test_does_not_mutate_input(self):
        starting = {"a": 1000.0, "b": 1000.0}
        replay_votes([Vote(1, "v", "a", "b", START_TIME)], starting)
        assert starting == {"a": 1000.0, "b": 1000.0}

    def test_order_matters(self):
        forward = [Vote(1, "v", "a", "b", START_TIME), Vote(2, "w", "b", "c", START_TIME)]
        backward = list(reversed(forward))
        assert replay_votes(forward, {}) != replay_votes(backward, {})


class TestRecalculate:
    def test_full_replay_reproduces_live_ratings(self, contest):
        """Live updates and a from-scratch replay agree exactly."""
        _play(contest)
        live = _snapshot(contest)

        result = contest.recalculate(["photo-a", "photo-b", "photo-c"])

        assert result.replayed_votes == 5
        assert _snapshot(contest) == live

    def test_repeated_recalculation_is_stable(self, contest):
        _play(contest)
        contest.recalculate(["photo-a"])
        once = _snapshot(contest)
        contest.recalculate(["photo-a"])
        assert _snapshot(contest) == once

    def test_only_targets_are_written(self, contest):
        _play(contest)
        before = _snapshot(contest)

        result = contest.recalculate(["photo-a"], excluded_vote_ids=[1])

        after = _snapshot(contest)
        assert result.updated_ids == {"photo-a"}
        assert result.affected_ids == {"photo-a", "photo-b", "photo-c"}
        assert after["photo-b"] == before["photo-b"]
        assert after["photo-c"] == before["photo-c"]
        assert after["photo-a"] != before["photo-a"]

    def test_target_without_votes_returns_to_baseline(self, contest):
        with contest.storage.transaction():
            contest.store.write_ratings({"land-1": 1234.0})
        result = contest.recalculate(["land-1"])
        assert result.ratings == {"land-1": BASELINE_RATING}
        assert result.replayed_votes == 0
        assert contest.get_submission("land-1").rating == BASELINE_RATING

    def test_excluding_every_vote_resets_targets(self, contest):
        contest.record_vote("dave@example.com", "photo-a", "photo-b")
        vote_id = contest.vote_history()[0].vote_id
        result = contest.recalculate(["photo-a", "photo-b"], excluded_vote_ids=[vote_id])
        assert result.ratings == {"photo-a": BASELINE_RATING, "photo-b": BASELINE_RATING}
        # exclusion is a what-if; the ledger row stays
        assert contest.vote_count("photo-a") == 1

    def test_missing_targets_are_skipped(self, contest):
        contest.record_vote("dave@example.com", "photo-a", "photo-b")
        result = contest.recalculate(["photo-a", "ghost"])
        assert set(result.ratings) == {"photo-a"}

    def test_empty_target_set(self, contest):
        assert contest.recalculate([]) == RecalculationResult()

    def test_replay_uses_chronological_order(self, contest):
        """Ties in timestamp fall back to vote id order."""
        _play(contest)
        votes = contest.store.votes_for_submissions(["photo-a", "photo-b", "photo-c"])
        assert [v.vote_id for v in votes] == sorted(v.vote_id for v in votes)
        assert [v.created_at for v in votes] == sorted(v.created_at for v in votes)
