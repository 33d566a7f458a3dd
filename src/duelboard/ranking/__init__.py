"""Pair selection, vote recording, recalculation and leaderboards."""

from duelboard.ranking.admin import AdministrationResult, LedgerAdministration
from duelboard.ranking.elo import calculate_elo_update, calculate_expected_score
from duelboard.ranking.leaderboard import LeaderboardFilter, LeaderboardQuery
from duelboard.ranking.pair_selector import PairSelector, SubmissionPair
from duelboard.ranking.recalculator import RatingRecalculator, RecalculationResult, replay_votes
from duelboard.ranking.vote_recorder import VoteOutcome, VoteRecorder

__all__ = [
    "AdministrationResult",
    "LeaderboardFilter",
    "LeaderboardQuery",
    "LedgerAdministration",
    "PairSelector",
    "RatingRecalculator",
    "RecalculationResult",
    "SubmissionPair",
    "VoteOutcome",
    "VoteRecorder",
    "calculate_elo_update",
    "calculate_expected_score",
    "replay_votes",
]
