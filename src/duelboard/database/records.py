"""Data models for submission and vote rows."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from duelboard.constants import QualificationState

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class Submission:
    """A rated work competing inside one category."""

    submission_id: str
    owner_id: str
    category_id: str
    title: str
    rating: float
    qualification: QualificationState
    created_at: datetime

    @property
    def is_rankable(self) -> bool:
        return self.qualification.is_rankable


@dataclass(frozen=True, slots=True)
class Vote:
    """One voter's decision on one pair. Immutable once written."""

    vote_id: int
    voter_id: str
    winner_id: str
    loser_id: str
    created_at: datetime

