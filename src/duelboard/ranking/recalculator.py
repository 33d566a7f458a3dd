"""Rederive ratings by replaying the ledger from the baseline.

Ratings are a pure function of the ledger, so removing history must leave them as
if that history never existed. The Elo update is non-linear, so corrections are
never patched in: the target submissions are reset to the baseline and their
remaining votes are replayed in chronological order.

Only target submissions are rewritten. Every other submission met in the replayed
votes is an opponent: it enters the replay at its current rating, evolves in
memory while play proceeds, and is left untouched in the store. This keeps a
recalculation with an unchanged ledger idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from duelboard.constants import BASELINE_RATING, K_FACTOR
from duelboard.ranking.elo import calculate_elo_update

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable

    from duelboard.database.rating_store import RatingStore
    from duelboard.database.records import Vote

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecalculationResult:
    """Outcome of one replay."""

    ratings: dict[str, float] = field(default_factory=dict)
    affected_ids: frozenset[str] = frozenset()
    replayed_votes: int = 0

    @property
    def updated_ids(self) -> frozenset[str]:
        return frozenset(self.ratings)


def replay_votes(
    votes: Iterable[Vote],
    starting_ratings: dict[str, float],
    k_factor: float = K_FACTOR,
) -> dict[str, float]:
    """Apply ``votes`` in the given order to a copy of ``starting_ratings``.

    Submissions missing from ``starting_ratings`` enter at the baseline.
    """
    working = dict(starting_ratings)
    for vote in votes:
        winner_rating = working.get(vote.winner_id, BASELINE_RATING)
        loser_rating = working.get(vote.loser_id, BASELINE_RATING)
        working[vote.winner_id], working[vote.loser_id] = calculate_elo_update(
            winner_rating,
            loser_rating,
            k_factor,
        )
    return working


class RatingRecalculator:
    """The replay path of the ledger."""

    def __init__(self, store: RatingStore) -> None:
        self.store = store

    def recalculate(
        self,
        target_ids: Iterable[str],
        excluded_vote_ids: Collection[int] = (),
    ) -> RecalculationResult:
        """Reset ``target_ids`` to the baseline and replay their remaining history.

        Args:
            target_ids: Submissions whose ratings are rederived.
            excluded_vote_ids: Votes to treat as already removed.

        Raises:
            StorageFailureError: the transaction failed; no rating was written.

        """
        targets = frozenset(target_ids)
        if not targets:
            return RecalculationResult()
        with self.store.storage.transaction():
            return self.replay_within_transaction(targets, excluded_vote_ids)

    def replay_within_transaction(
        self,
        targets: frozenset[str],
        excluded_vote_ids: Collection[int] = (),
    ) -> RecalculationResult:
        """Replay for ``targets`` inside the caller's open write transaction."""
        votes = self.store.votes_for_submissions(targets, exclude_vote_ids=excluded_vote_ids)

        affected = set(targets)
        for vote in votes:
            affected.update((vote.winner_id, vote.loser_id))

        current = self.store.get_ratings(affected)
        starting = {
            submission_id: BASELINE_RATING if submission_id in targets else current.get(submission_id, BASELINE_RATING)
            for submission_id in affected
        }
        final = replay_votes(votes, starting)

        # Targets deleted in the same transaction get an intermediate value that is never stored
        persisted = {submission_id: final[submission_id] for submission_id in targets if submission_id in current}
        missing = targets - persisted.keys()
        if missing:
            logger.debug("Skipping missing recalculation targets: %s", ", ".join(sorted(missing)))

        self.store.write_ratings(persisted)

        logger.info(
            "Recalculated %d submission(s) from %d vote(s) (%d affected)",
            len(persisted),
            len(votes),
            len(affected),
        )
        return RecalculationResult(
            ratings=persisted,
            affected_ids=frozenset(affected),
            replayed_votes=len(votes),
        )
