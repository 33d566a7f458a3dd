"""Library entry points of the pairwise rating engine.

``RankingEngine`` wires the store, the pair selector, the vote recorder, the
recalculator, the leaderboard and the administrative flows around one DuckDB
database. Transports (web handlers, the CLI) call only this class.
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, Self

from duelboard.constants import QualificationState
from duelboard.database.duckdb_manager import DuckDBStorageManager
from duelboard.database.rating_store import RatingStore
from duelboard.ranking.admin import AdministrationResult, LedgerAdministration
from duelboard.ranking.leaderboard import LeaderboardFilter, LeaderboardQuery
from duelboard.ranking.pair_selector import PairSelector, SubmissionPair
from duelboard.ranking.recalculator import RatingRecalculator, RecalculationResult
from duelboard.ranking.vote_recorder import VoteOutcome, VoteRecorder

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable
    from datetime import datetime
    from pathlib import Path

    from duelboard.config.settings import DuelboardConfig
    from duelboard.database.records import Submission, Vote

logger = logging.getLogger(__name__)


class RankingEngine:
    """Facade over the rating store and the four ranking operations."""

    def __init__(
        self,
        storage: DuckDBStorageManager,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.storage = storage
        self.store = RatingStore(storage, clock=clock)
        self.pair_selector = PairSelector(self.store, rng=rng)
        self.vote_recorder = VoteRecorder(self.store)
        self.recalculator = RatingRecalculator(self.store)
        self.leaderboard = LeaderboardQuery(storage)
        self.administration = LedgerAdministration(self.store, self.recalculator)

    @classmethod
    def from_config(cls, config: DuelboardConfig, project_root: Path) -> Self:
        """Open the engine on the database configured for ``project_root``."""
        storage = DuckDBStorageManager(db_path=config.database_location(project_root))
        seed = config.pairing.seed
        return cls(storage, rng=random.Random(seed) if seed is not None else None)  # noqa: S311

    def close(self) -> None:
        self.storage.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, _exc_type: object, _exc_val: object, _exc_tb: object) -> None:
        self.close()

    # RequestPair / RecordVote / Recalculate / TopN

    def request_pair(self, voter_id: str) -> SubmissionPair | None:
        return self.pair_selector.request_pair(voter_id)

    def record_vote(self, voter_id: str, winner_id: str, loser_id: str) -> VoteOutcome:
        return self.vote_recorder.record_vote(voter_id, winner_id, loser_id)

    def recalculate(
        self,
        target_ids: Iterable[str],
        excluded_vote_ids: Collection[int] = (),
    ) -> RecalculationResult:
        return self.recalculator.recalculate(target_ids, excluded_vote_ids)

    def top_n(
        self,
        leaderboard_filter: LeaderboardFilter | None = None,
        limit: int = 20,
        *,
        per_category: bool = False,
    ) -> list[Submission]:
        return self.leaderboard.top_n(leaderboard_filter, limit, per_category=per_category)

    # Upstream and administrative flows

    def add_submission(  # noqa: PLR0913
        self,
        submission_id: str,
        owner_id: str,
        category_id: str,
        *,
        title: str = "",
        qualification: QualificationState = QualificationState.PENDING,
        created_at: datetime | None = None,
    ) -> Submission:
        return self.store.add_submission(
            submission_id,
            owner_id,
            category_id,
            title=title,
            qualification=qualification,
            created_at=created_at,
        )

    def get_submission(self, submission_id: str) -> Submission:
        return self.store.require_submission(submission_id)

    def set_qualification(self, submission_id: str, state: QualificationState) -> Submission:
        return self.store.set_qualification(submission_id, state)

    def delete_vote(self, vote_id: int) -> AdministrationResult:
        return self.administration.delete_vote(vote_id)

    def delete_submission(self, submission_id: str) -> AdministrationResult:
        return self.administration.delete_submission(submission_id)

    def delete_voter(self, voter_id: str) -> AdministrationResult:
        return self.administration.delete_voter(voter_id)

    def has_available_pair(self, voter_id: str) -> bool:
        return self.pair_selector.has_available_pair(voter_id)

    def vote_count(self, submission_id: str) -> int:
        return self.store.vote_count(submission_id)

    def vote_history(
        self,
        *,
        submission_id: str | None = None,
        voter_id: str | None = None,
        limit: int | None = None,
    ) -> list[Vote]:
        return self.store.vote_history(submission_id=submission_id, voter_id=voter_id, limit=limit)
