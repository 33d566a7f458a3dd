"""Administrative deletion paths over the ledger.

Every flow deletes rows and replays the surviving history of the submissions
those rows touched, inside a single transaction: no reader ever sees a ledger
whose ratings have not caught up with it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from duelboard.database.rating_store import normalize_voter_id
from duelboard.exceptions import SubmissionNotFoundError, VoteNotFoundError
from duelboard.ranking.recalculator import RatingRecalculator, RecalculationResult

if TYPE_CHECKING:
    from collections.abc import Collection

    from duelboard.database.rating_store import RatingStore
    from duelboard.database.records import Vote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AdministrationResult:
    """What an administrative deletion removed and what it recalculated."""

    deleted_vote_ids: frozenset[int]
    deleted_submission_ids: frozenset[str]
    recalculation: RecalculationResult


class LedgerAdministration:
    """Deletes submissions, voter accounts and individual votes."""

    def __init__(self, store: RatingStore, recalculator: RatingRecalculator | None = None) -> None:
        self.store = store
        self.recalculator = recalculator or RatingRecalculator(store)

    def _purge(self, votes: Collection[Vote], submission_ids: Collection[str]) -> AdministrationResult:
        deleted_submissions = frozenset(submission_ids)
        deleted_votes = frozenset(vote.vote_id for vote in votes)

        touched: set[str] = set()
        for vote in votes:
            touched.update((vote.winner_id, vote.loser_id))
        targets = frozenset(touched - deleted_submissions)

        self.store.delete_votes(deleted_votes)
        self.store.delete_submissions(deleted_submissions)
        recalculation = (
            self.recalculator.replay_within_transaction(targets, deleted_votes)
            if targets
            else RecalculationResult()
        )
        return AdministrationResult(
            deleted_vote_ids=deleted_votes,
            deleted_submission_ids=deleted_submissions,
            recalculation=recalculation,
        )

    def delete_vote(self, vote_id: int) -> AdministrationResult:
        """Remove one vote (manual correction) and rederive both submissions."""
        with self.store.storage.transaction():
            vote = self.store.get_vote(vote_id)
            if vote is None:
                raise VoteNotFoundError(vote_id)
            result = self._purge([vote], ())

        logger.info("Deleted vote %s; recalculated %s", vote_id, ", ".join(sorted(result.recalculation.updated_ids)))
        return result

    def delete_submission(self, submission_id: str) -> AdministrationResult:
        """Remove a submission with its votes and rederive every former opponent."""
        with self.store.storage.transaction():
            self.store.require_submission(submission_id)
            votes = self.store.votes_for_submissions([submission_id])
            result = self._purge(votes, [submission_id])

        logger.info(
            "Deleted submission %s with %d vote(s); recalculated %d submission(s)",
            submission_id,
            len(result.deleted_vote_ids),
            len(result.recalculation.updated_ids),
        )
        return result

    def delete_voter(self, voter_id: str) -> AdministrationResult:
        """Remove a voter account's votes and submissions, then rederive the rest."""
        voter_id = normalize_voter_id(voter_id)
        with self.store.storage.transaction():
            owned = [s.submission_id for s in self.store.list_submissions(owner_id=voter_id)]
            votes = {vote.vote_id: vote for vote in self.store.votes_by_voter(voter_id)}
            for vote in self.store.votes_for_submissions(owned):
                votes[vote.vote_id] = vote
            result = self._purge(list(votes.values()), owned)

        logger.info(
            "Deleted voter %s: %d submission(s), %d vote(s); recalculated %d submission(s)",
            voter_id,
            len(result.deleted_submission_ids),
            len(result.deleted_vote_ids),
            len(result.recalculation.updated_ids),
        )
        return result

    def delete_submissions(self, submission_ids: Collection[str]) -> AdministrationResult:
        """Bulk variant of :meth:`delete_submission`; one bounded replay for the batch."""
        with self.store.storage.transaction():
            existing = self.store.get_submissions(submission_ids)
            missing = sorted(set(submission_ids) - existing.keys())
            if missing:
                raise SubmissionNotFoundError(missing[0])
            votes = self.store.votes_for_submissions(existing.keys())
            return self._purge(votes, existing.keys())
