"""duelboard: peer ranking through pairwise comparisons and Elo ratings."""

from duelboard.constants import BASELINE_RATING, K_FACTOR, QualificationState
from duelboard.engine import RankingEngine
from duelboard.ranking.leaderboard import LeaderboardFilter

__all__ = [
    "BASELINE_RATING",
    "K_FACTOR",
    "LeaderboardFilter",
    "QualificationState",
    "RankingEngine",
]
