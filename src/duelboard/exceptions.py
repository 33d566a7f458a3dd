"""Centralized exceptions for duelboard.

Callers see four families: ``NotFoundError``, ``InvalidArgumentError``,
``ConflictError`` and ``StorageFailureError``. Duplicate votes are a
``ConflictError`` that the vote recorder absorbs so client retries stay safe.
"""

from __future__ import annotations


class DuelboardError(Exception):
    """Base exception for all duelboard errors."""


class NotFoundError(DuelboardError):
    """Base for errors about a referenced object that does not exist."""

    def __init__(self, object_type: str, object_id: object, message: str | None = None) -> None:
        self.object_type = object_type
        self.object_id = object_id
        if message is None:
            message = f"{object_type.capitalize()} '{object_id}' not found"
        super().__init__(message)


class SubmissionNotFoundError(NotFoundError):
    """Raised when a submission id does not exist in the store."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(object_type="submission", object_id=submission_id)


class VoteNotFoundError(NotFoundError):
    """Raised when a vote id does not exist in the ledger."""

    def __init__(self, vote_id: int) -> None:
        super().__init__(object_type="vote", object_id=vote_id)


class InvalidArgumentError(DuelboardError, ValueError):
    """Raised when a caller passes arguments the engine cannot act on."""


class SelfComparisonError(InvalidArgumentError):
    """Raised when a vote names the same submission as winner and loser."""

    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"Submission '{submission_id}' cannot be compared with itself")


class CrossCategoryError(InvalidArgumentError):
    """Raised when a vote pairs submissions from different categories."""

    def __init__(self, winner_id: str, loser_id: str) -> None:
        self.winner_id = winner_id
        self.loser_id = loser_id
        super().__init__(f"Submissions '{winner_id}' and '{loser_id}' belong to different categories")


class IneligibleSubmissionError(InvalidArgumentError):
    """Raised when a voter may not judge a submission (own work or disqualified)."""

    def __init__(self, submission_id: str, reason: str) -> None:
        self.submission_id = submission_id
        self.reason = reason
        super().__init__(f"Submission '{submission_id}' is not eligible for voting: {reason}")


class InvalidVoterError(InvalidArgumentError):
    """Raised for an empty or blank voter identity."""


class InvalidLimitError(InvalidArgumentError):
    """Raised when a leaderboard limit is not a positive integer."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"Leaderboard limit must be at least 1, got {limit}")


class ConflictError(DuelboardError):
    """Base for writes that collide with existing state."""


class DuplicateVoteError(ConflictError):
    """Raised when a voter already judged an unordered pair."""

    def __init__(self, voter_id: str, existing_vote_id: int) -> None:
        self.voter_id = voter_id
        self.existing_vote_id = existing_vote_id
        super().__init__(f"Voter '{voter_id}' already judged this pair (vote {existing_vote_id})")


class DuplicateSubmissionError(ConflictError):
    """Raised when adding a submission whose id already exists."""

    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"Submission '{submission_id}' already exists")


class StorageFailureError(DuelboardError):
    """Raised when a transaction fails; the transaction has been rolled back."""


class RatingError(DuelboardError, ArithmeticError):
    """Raised when the update rule would produce a non-finite or non-positive rating."""
