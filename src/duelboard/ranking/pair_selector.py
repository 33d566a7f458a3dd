"""Pick one unseen, eligible comparison pair for a voter."""

from __future__ import annotations

import itertools
import logging
import random
from collections import defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from duelboard.database.rating_store import RatingStore
    from duelboard.database.records import Submission

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubmissionPair:
    """Two same-category submissions offered side by side."""

    first: Submission
    second: Submission

    @property
    def ids(self) -> frozenset[str]:
        return frozenset((self.first.submission_id, self.second.submission_id))

    @property
    def category_id(self) -> str:
        return self.first.category_id


class PairSelector:
    """Selects pairs uniformly at random among a voter's eligible unseen pairs.

    Read-only and race tolerant: two concurrent calls may return the same pair,
    and the vote recorder re-validates everything at vote time.
    """

    def __init__(self, store: RatingStore, rng: random.Random | None = None) -> None:
        self.store = store
        self.rng = rng or random.Random()  # noqa: S311

    def _unseen_pairs(self, voter_id: str) -> Iterator[tuple[Submission, Submission]]:
        by_category: dict[str, list[Submission]] = defaultdict(list)
        for submission in self.store.list_eligible_submissions(voter_id):
            by_category[submission.category_id].append(submission)

        seen = self.store.voted_pairs(voter_id)
        for category_id in sorted(by_category):
            for first, second in itertools.combinations(by_category[category_id], 2):
                if frozenset((first.submission_id, second.submission_id)) not in seen:
                    yield first, second

    def request_pair(self, voter_id: str) -> SubmissionPair | None:
        """Return a random eligible pair the voter has not judged, or None.

        Reservoir sampling over the enumeration keeps the choice exactly uniform
        without materializing every pair.
        """
        chosen: tuple[Submission, Submission] | None = None
        for seen_count, candidate in enumerate(self._unseen_pairs(voter_id), start=1):
            if self.rng.randrange(seen_count) == 0:
                chosen = candidate

        if chosen is None:
            logger.debug("No eligible pair left for voter %s", voter_id)
            return None

        first, second = chosen
        if self.rng.random() < 0.5:  # noqa: PLR2004
            first, second = second, first
        return SubmissionPair(first=first, second=second)

    def has_available_pair(self, voter_id: str) -> bool:
        """Whether ``request_pair`` would currently return a pair."""
        return next(self._unseen_pairs(voter_id), None) is not None

    def count_available_pairs(self, voter_id: str) -> int:
        return sum(1 for _ in self._unseen_pairs(voter_id))
