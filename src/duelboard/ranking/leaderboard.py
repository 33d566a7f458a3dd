"""Read-only ranked retrieval of submissions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import ibis
from ibis import _

from duelboard.constants import RANKABLE_STATES, QualificationState
from duelboard.database.records import Submission
from duelboard.database.schema import SUBMISSIONS_TABLE
from duelboard.exceptions import InvalidLimitError

if TYPE_CHECKING:
    from collections.abc import Collection

    from ibis.expr.types import Table

    from duelboard.database.duckdb_manager import DuckDBStorageManager

logger = logging.getLogger(__name__)

_RANK_COLUMN = "category_rank"


@dataclass(frozen=True, slots=True)
class LeaderboardFilter:
    """Which submissions a leaderboard read considers.

    ``states`` restricts qualification states explicitly. Without it every
    state except ``disqualified`` is included, unless ``include_disqualified``.
    """

    category_id: str | None = None
    states: Collection[QualificationState] | None = None
    include_disqualified: bool = False

    def resolved_states(self) -> frozenset[QualificationState]:
        if self.states is not None:
            return frozenset(QualificationState(state) for state in self.states)
        if self.include_disqualified:
            return frozenset(QualificationState)
        return RANKABLE_STATES


class LeaderboardQuery:
    """Ranks by rating (desc), then creation time (newest first).

    Always reads committed state straight from the store; nothing is cached.
    """

    def __init__(self, storage: DuckDBStorageManager) -> None:
        self.storage = storage

    def build(self, leaderboard_filter: LeaderboardFilter, limit: int, *, per_category: bool = False) -> Table:
        """Return the Ibis expression for a leaderboard read."""
        if limit < 1:
            raise InvalidLimitError(limit)

        table = self.storage.read_table(SUBMISSIONS_TABLE)
        if leaderboard_filter.category_id is not None:
            table = table.filter(_.category_id == leaderboard_filter.category_id)
        states = sorted(state.value for state in leaderboard_filter.resolved_states())
        table = table.filter(_.qualification.isin(states))

        ordering = [table.rating.desc(), table.created_at.desc(), table.submission_id.asc()]
        if not per_category:
            return table.order_by(ordering).limit(limit)

        # row_number() is zero-based
        rank = ibis.row_number().over(group_by=table.category_id, order_by=ordering)
        ranked = table.mutate(**{_RANK_COLUMN: rank})
        return (
            ranked.filter(ranked[_RANK_COLUMN] < limit)
            .drop(_RANK_COLUMN)
            .order_by([_.category_id, _.rating.desc(), _.created_at.desc(), _.submission_id.asc()])
        )

    def top_n(
        self,
        leaderboard_filter: LeaderboardFilter | None = None,
        limit: int = 20,
        *,
        per_category: bool = False,
    ) -> list[Submission]:
        """Ranked submissions; in per-category mode each category is capped at ``limit``."""
        expr = self.build(leaderboard_filter or LeaderboardFilter(), limit, per_category=per_category)
        rows = expr.to_pyarrow().to_pylist()
        logger.debug("Leaderboard read returned %d row(s)", len(rows))
        return [
            Submission(
                submission_id=row["submission_id"],
                owner_id=row["owner_id"],
                category_id=row["category_id"],
                title=row["title"] or "",
                rating=float(row["rating"]),
                qualification=QualificationState(row["qualification"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def top_by_category(
        self,
        leaderboard_filter: LeaderboardFilter | None = None,
        limit: int = 3,
    ) -> dict[str, list[Submission]]:
        """Per-category leaderboard grouped into a mapping."""
        grouped: dict[str, list[Submission]] = {}
        for submission in self.top_n(leaderboard_filter, limit, per_category=True):
            grouped.setdefault(submission.category_id, []).append(submission)
        return grouped
