"""Persistence layer for submissions and the vote ledger using DuckDB.

Stores:
- Submissions with their current (derived) rating and qualification state
- The vote ledger, the only source of truth for ratings

Ratings are written exclusively through :meth:`RatingStore.write_ratings`, which
refuses to run outside a write transaction. The vote recorder and the rating
recalculator are its only callers.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from duelboard.constants import BASELINE_RATING, QualificationState
from duelboard.database.records import Submission, Vote
from duelboard.database.schema import (
    SUBMISSION_COLUMNS,
    SUBMISSIONS_SCHEMA,
    SUBMISSIONS_TABLE,
    VOTE_COLUMNS,
    VOTE_ID_SEQUENCE,
    VOTES_SCHEMA,
    VOTES_TABLE,
)
from duelboard.exceptions import (
    DuplicateSubmissionError,
    InvalidArgumentError,
    InvalidVoterError,
    SubmissionNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Collection, Iterable, Mapping

    from duelboard.database.duckdb_manager import DuckDBStorageManager

logger = logging.getLogger(__name__)

_SUBMISSION_SELECT = f"SELECT {', '.join(SUBMISSION_COLUMNS)} FROM {SUBMISSIONS_TABLE}"  # noqa: S608
_VOTE_SELECT = f"SELECT {', '.join(VOTE_COLUMNS)} FROM {VOTES_TABLE}"  # noqa: S608


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation stored in TIMESTAMP columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def normalize_voter_id(voter_id: str) -> str:
    """Canonical form of a voter identity (whitespace stripped, case folded)."""
    if not isinstance(voter_id, str) or not voter_id.strip():
        msg = f"Voter identity must be a non-empty string, got {voter_id!r}"
        raise InvalidVoterError(msg)
    return voter_id.strip().casefold()


def _placeholders(count: int) -> str:
    return ", ".join(["?"] * count)


def _submission_from_row(row: tuple) -> Submission:
    submission_id, owner_id, category_id, title, rating, qualification, created_at = row
    return Submission(
        submission_id=submission_id,
        owner_id=owner_id,
        category_id=category_id,
        title=title or "",
        rating=float(rating),
        qualification=QualificationState(qualification),
        created_at=created_at,
    )


def _vote_from_row(row: tuple) -> Vote:
    vote_id, voter_id, winner_id, loser_id, created_at = row
    return Vote(
        vote_id=int(vote_id),
        voter_id=voter_id,
        winner_id=winner_id,
        loser_id=loser_id,
        created_at=created_at,
    )


class RatingStore:
    """Durable storage for submissions (with rating) and the vote ledger."""

    def __init__(
        self,
        storage: DuckDBStorageManager,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the store and create its tables if needed.

        Args:
            storage: The DuckDB storage manager.
            clock: Source of naive UTC timestamps for new rows.

        """
        self.storage = storage
        self.clock = clock or utcnow
        self._ensure_tables()

    def _ensure_tables(self) -> None:
        """Create submission and vote tables if they don't exist."""
        self.storage.ensure_table(SUBMISSIONS_TABLE, SUBMISSIONS_SCHEMA)
        self.storage.ensure_table(VOTES_TABLE, VOTES_SCHEMA)
        self.storage.ensure_sequence(VOTE_ID_SEQUENCE)

    def _require_write_scope(self, operation: str) -> None:
        if not self.storage.in_transaction:
            msg = f"{operation} must run inside a storage transaction"
            raise RuntimeError(msg)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

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
        """Create a submission at the baseline rating (upstream upload flow).

        Raises:
            DuplicateSubmissionError: if ``submission_id`` already exists.
            InvalidArgumentError: if the id or category is blank.

        """
        if not submission_id or not str(submission_id).strip():
            msg = "Submission id must be a non-empty string"
            raise InvalidArgumentError(msg)
        if not category_id or not str(category_id).strip():
            msg = "Category id must be a non-empty string"
            raise InvalidArgumentError(msg)

        submission = Submission(
            submission_id=submission_id,
            owner_id=normalize_voter_id(owner_id),
            category_id=category_id,
            title=title,
            rating=BASELINE_RATING,
            qualification=QualificationState(qualification),
            created_at=created_at or self.clock(),
        )

        with self.storage.transaction():
            if self.get_submission(submission_id) is not None:
                raise DuplicateSubmissionError(submission_id)
            self.storage.execute_sql(
                f"INSERT INTO {SUBMISSIONS_TABLE} ({', '.join(SUBMISSION_COLUMNS)}) "  # noqa: S608
                f"VALUES ({_placeholders(len(SUBMISSION_COLUMNS))})",
                [
                    submission.submission_id,
                    submission.owner_id,
                    submission.category_id,
                    submission.title,
                    submission.rating,
                    submission.qualification.value,
                    submission.created_at,
                ],
            )

        logger.info("Added submission %s in category %s", submission_id, category_id)
        return submission

    def get_submission(self, submission_id: str) -> Submission | None:
        row = self.storage.execute_query_single(
            f"{_SUBMISSION_SELECT} WHERE submission_id = ?",
            [submission_id],
        )
        return None if row is None else _submission_from_row(row)

    def require_submission(self, submission_id: str) -> Submission:
        """Return the submission or raise ``SubmissionNotFoundError``."""
        submission = self.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    def get_submissions(self, submission_ids: Iterable[str]) -> dict[str, Submission]:
        """Return existing submissions keyed by id; missing ids are simply absent."""
        ids = sorted(set(submission_ids))
        if not ids:
            return {}
        rows = self.storage.execute_query(
            f"{_SUBMISSION_SELECT} WHERE submission_id IN ({_placeholders(len(ids))})",
            ids,
        )
        return {row[0]: _submission_from_row(row) for row in rows}

    def list_submissions(
        self,
        *,
        category_id: str | None = None,
        owner_id: str | None = None,
        states: Collection[QualificationState] | None = None,
    ) -> list[Submission]:
        """List submissions, optionally filtered by category, owner and qualification state."""
        clauses: list[str] = []
        params: list[object] = []
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(normalize_voter_id(owner_id))
        if category_id is not None:
            clauses.append("category_id = ?")
            params.append(category_id)
        if states is not None:
            values = sorted(QualificationState(state).value for state in states)
            if not values:
                return []
            clauses.append(f"qualification IN ({_placeholders(len(values))})")
            params.extend(values)

        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.storage.execute_query(f"{_SUBMISSION_SELECT}{where} ORDER BY submission_id", params)
        return [_submission_from_row(row) for row in rows]

    def list_eligible_submissions(self, voter_id: str) -> list[Submission]:
        """Submissions ``voter_id`` may judge: not their own and not disqualified."""
        rows = self.storage.execute_query(
            f"{_SUBMISSION_SELECT} WHERE owner_id <> ? AND qualification <> ? "
            "ORDER BY category_id, submission_id",
            [normalize_voter_id(voter_id), QualificationState.DISQUALIFIED.value],
        )
        return [_submission_from_row(row) for row in rows]

    def set_qualification(self, submission_id: str, state: QualificationState) -> Submission:
        """Change a submission's qualification state. Ratings and ledger are untouched."""
        state = QualificationState(state)
        with self.storage.transaction():
            current = self.require_submission(submission_id)
            self.storage.execute_sql(
                f"UPDATE {SUBMISSIONS_TABLE} SET qualification = ? WHERE submission_id = ?",  # noqa: S608
                [state.value, submission_id],
            )
        logger.info(
            "Submission %s qualification %s -> %s",
            submission_id,
            current.qualification.value,
            state.value,
        )
        return self.require_submission(submission_id)

    def get_ratings(self, submission_ids: Iterable[str]) -> dict[str, float]:
        """Current ratings of the existing submissions among ``submission_ids``."""
        return {sid: submission.rating for sid, submission in self.get_submissions(submission_ids).items()}

    def write_ratings(self, ratings: Mapping[str, float]) -> None:
        """Persist derived ratings. Only valid inside a write transaction."""
        self._require_write_scope("write_ratings")
        for submission_id, rating in sorted(ratings.items()):
            self.storage.execute_sql(
                f"UPDATE {SUBMISSIONS_TABLE} SET rating = ? WHERE submission_id = ?",  # noqa: S608
                [float(rating), submission_id],
            )

    def delete_submissions(self, submission_ids: Collection[str]) -> int:
        """Delete submission rows. Only valid inside a write transaction."""
        self._require_write_scope("delete_submissions")
        ids = sorted(set(submission_ids))
        if not ids:
            return 0
        self.storage.execute_sql(
            f"DELETE FROM {SUBMISSIONS_TABLE} WHERE submission_id IN ({_placeholders(len(ids))})",  # noqa: S608
            ids,
        )
        return len(ids)

    # ------------------------------------------------------------------
    # Vote ledger
    # ------------------------------------------------------------------

    def find_vote(self, voter_id: str, first_id: str, second_id: str) -> Vote | None:
        """Return the voter's vote on the unordered pair, in either orientation."""
        row = self.storage.execute_query_single(
            f"{_VOTE_SELECT} WHERE voter_id = ? "
            "AND ((winner_id = ? AND loser_id = ?) OR (winner_id = ? AND loser_id = ?)) "
            "ORDER BY vote_id LIMIT 1",
            [normalize_voter_id(voter_id), first_id, second_id, second_id, first_id],
        )
        return None if row is None else _vote_from_row(row)

    def insert_vote(self, voter_id: str, winner_id: str, loser_id: str) -> Vote:
        """Append a vote to the ledger. Only valid inside a write transaction."""
        self._require_write_scope("insert_vote")
        vote = Vote(
            vote_id=self.storage.next_sequence_value(VOTE_ID_SEQUENCE),
            voter_id=normalize_voter_id(voter_id),
            winner_id=winner_id,
            loser_id=loser_id,
            created_at=self.clock(),
        )
        self.storage.execute_sql(
            f"INSERT INTO {VOTES_TABLE} ({', '.join(VOTE_COLUMNS)}) VALUES ({_placeholders(len(VOTE_COLUMNS))})",  # noqa: S608
            [vote.vote_id, vote.voter_id, vote.winner_id, vote.loser_id, vote.created_at],
        )
        return vote

    def get_vote(self, vote_id: int) -> Vote | None:
        row = self.storage.execute_query_single(f"{_VOTE_SELECT} WHERE vote_id = ?", [int(vote_id)])
        return None if row is None else _vote_from_row(row)

    def votes_for_submissions(
        self,
        submission_ids: Collection[str],
        *,
        exclude_vote_ids: Collection[int] = (),
    ) -> list[Vote]:
        """Votes referencing any of ``submission_ids``, oldest first (ties by vote id)."""
        ids = sorted(set(submission_ids))
        if not ids:
            return []
        marks = _placeholders(len(ids))
        sql = f"{_VOTE_SELECT} WHERE (winner_id IN ({marks}) OR loser_id IN ({marks}))"
        params: list[object] = [*ids, *ids]

        excluded = sorted({int(vote_id) for vote_id in exclude_vote_ids})
        if excluded:
            sql += f" AND vote_id NOT IN ({_placeholders(len(excluded))})"
            params.extend(excluded)

        rows = self.storage.execute_query(f"{sql} ORDER BY created_at ASC, vote_id ASC", params)
        return [_vote_from_row(row) for row in rows]

    def votes_by_voter(self, voter_id: str) -> list[Vote]:
        rows = self.storage.execute_query(
            f"{_VOTE_SELECT} WHERE voter_id = ? ORDER BY created_at ASC, vote_id ASC",
            [normalize_voter_id(voter_id)],
        )
        return [_vote_from_row(row) for row in rows]

    def voted_pairs(self, voter_id: str) -> set[frozenset[str]]:
        """Unordered pairs the voter has already judged."""
        rows = self.storage.execute_query(
            f"SELECT winner_id, loser_id FROM {VOTES_TABLE} WHERE voter_id = ?",  # noqa: S608
            [normalize_voter_id(voter_id)],
        )
        return {frozenset(row) for row in rows}

    def delete_votes(self, vote_ids: Collection[int]) -> int:
        """Delete ledger rows. Only valid inside a write transaction."""
        self._require_write_scope("delete_votes")
        ids = sorted({int(vote_id) for vote_id in vote_ids})
        if not ids:
            return 0
        self.storage.execute_sql(
            f"DELETE FROM {VOTES_TABLE} WHERE vote_id IN ({_placeholders(len(ids))})",  # noqa: S608
            ids,
        )
        return len(ids)

    def vote_count(self, submission_id: str) -> int:
        """Number of votes in which the submission took part."""
        row = self.storage.execute_query_single(
            f"SELECT count(*) FROM {VOTES_TABLE} WHERE winner_id = ? OR loser_id = ?",  # noqa: S608
            [submission_id, submission_id],
        )
        return int(row[0]) if row else 0

    def vote_history(
        self,
        *,
        submission_id: str | None = None,
        voter_id: str | None = None,
        limit: int | None = None,
    ) -> list[Vote]:
        """Ledger rows, newest first, optionally filtered by submission and/or voter."""
        clauses: list[str] = []
        params: list[object] = []
        if submission_id is not None:
            clauses.append("(winner_id = ? OR loser_id = ?)")
            params.extend([submission_id, submission_id])
        if voter_id is not None:
            clauses.append("voter_id = ?")
            params.append(normalize_voter_id(voter_id))

        sql = _VOTE_SELECT
        if clauses:
            sql += f" WHERE {' AND '.join(clauses)}"
        sql += " ORDER BY created_at DESC, vote_id DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        return [_vote_from_row(row) for row in self.storage.execute_query(sql, params)]

    def stats(self) -> dict[str, float | int]:
        """Summary counts for the store."""
        submissions_row = self.storage.execute_query_single(
            f"SELECT count(*), min(rating), max(rating) FROM {SUBMISSIONS_TABLE}"  # noqa: S608
        )
        votes_row = self.storage.execute_query_single(f"SELECT count(*) FROM {VOTES_TABLE}")  # noqa: S608
        total, lowest, highest = submissions_row or (0, None, None)
        return {
            "total_submissions": int(total or 0),
            "total_votes": int(votes_row[0]) if votes_row else 0,
            "highest_rating": float(highest) if highest is not None else BASELINE_RATING,
            "lowest_rating": float(lowest) if lowest is not None else BASELINE_RATING,
        }
