"""Record one pairwise decision idempotently, updating both ratings atomically."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from duelboard.constants import K_FACTOR
from duelboard.database.rating_store import normalize_voter_id
from duelboard.exceptions import (
    CrossCategoryError,
    DuplicateVoteError,
    IneligibleSubmissionError,
    SelfComparisonError,
    SubmissionNotFoundError,
)
from duelboard.ranking.elo import calculate_elo_update

if TYPE_CHECKING:
    from duelboard.database.rating_store import RatingStore
    from duelboard.database.records import Submission, Vote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VoteOutcome:
    """Result of a vote submission.

    ``recorded`` is False when the voter had already judged the pair; ``vote`` is
    then the earlier ledger row and no rating changed.
    """

    vote: Vote
    recorded: bool
    winner_rating: float
    loser_rating: float


class VoteRecorder:
    """The append path of the ledger."""

    def __init__(self, store: RatingStore) -> None:
        self.store = store

    def _ensure_not_duplicate(self, voter_id: str, winner_id: str, loser_id: str) -> None:
        existing = self.store.find_vote(voter_id, winner_id, loser_id)
        if existing is not None:
            raise DuplicateVoteError(voter_id, existing.vote_id)

    def _load(self, submission_id: str) -> Submission:
        submission = self.store.get_submission(submission_id)
        if submission is None:
            raise SubmissionNotFoundError(submission_id)
        return submission

    @staticmethod
    def _ensure_eligible(voter_id: str, winner: Submission, loser: Submission) -> None:
        if winner.category_id != loser.category_id:
            raise CrossCategoryError(winner.submission_id, loser.submission_id)
        for submission in (winner, loser):
            if not submission.is_rankable:
                raise IneligibleSubmissionError(submission.submission_id, "submission is disqualified")
            if submission.owner_id == voter_id:
                raise IneligibleSubmissionError(submission.submission_id, "voters cannot judge their own work")

    def record_vote(self, voter_id: str, winner_id: str, loser_id: str) -> VoteOutcome:
        """Record that ``voter_id`` preferred ``winner_id`` over ``loser_id``.

        Raises:
            SelfComparisonError: winner and loser are the same submission.
            SubmissionNotFoundError: either submission does not exist.
            CrossCategoryError: the submissions are in different categories.
            IneligibleSubmissionError: a submission is disqualified or owned by the voter.
            StorageFailureError: the transaction failed and was rolled back.

        """
        if winner_id == loser_id:
            raise SelfComparisonError(winner_id)
        voter_id = normalize_voter_id(voter_id)

        with self.store.storage.transaction():
            try:
                self._ensure_not_duplicate(voter_id, winner_id, loser_id)
            except DuplicateVoteError as duplicate:
                existing = self.store.get_vote(duplicate.existing_vote_id)
                current = self.store.get_ratings((winner_id, loser_id))
                logger.debug("Ignoring repeated vote: %s", duplicate)
                return VoteOutcome(
                    vote=existing,
                    recorded=False,
                    winner_rating=current.get(winner_id, float("nan")),
                    loser_rating=current.get(loser_id, float("nan")),
                )

            winner = self._load(winner_id)
            loser = self._load(loser_id)
            self._ensure_eligible(voter_id, winner, loser)

            new_winner, new_loser = calculate_elo_update(winner.rating, loser.rating, K_FACTOR)
            self.store.write_ratings({winner_id: new_winner, loser_id: new_loser})
            vote = self.store.insert_vote(voter_id, winner_id, loser_id)

        logger.info(
            "Vote %s by %s: %s (%.1f -> %.1f) beat %s (%.1f -> %.1f)",
            vote.vote_id,
            voter_id,
            winner_id,
            winner.rating,
            new_winner,
            loser_id,
            loser.rating,
            new_loser,
        )
        return VoteOutcome(vote=vote, recorded=True, winner_rating=new_winner, loser_rating=new_loser)
