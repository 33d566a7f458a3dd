"""Constants shared by the rating engine, the store and the CLI."""

from enum import Enum

# Every submission enters (and every recalculation target re-enters) at this rating.
BASELINE_RATING = 1000.0
K_FACTOR = 32.0


class QualificationState(str, Enum):
    """Review state of a submission."""

    PENDING = "pending"
    APPROVED = "approved"
    DISQUALIFIED = "disqualified"

    @property
    def is_rankable(self) -> bool:
        return self is not QualificationState.DISQUALIFIED


RANKABLE_STATES = frozenset(state for state in QualificationState if state.is_rankable)
