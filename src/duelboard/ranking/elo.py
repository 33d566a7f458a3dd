"""Elo math shared by the vote recorder and the recalculator.

Both the append path and the replay path must use exactly this function so a
replay reproduces live ratings bit for bit.
"""

from __future__ import annotations

import math

from duelboard.constants import K_FACTOR
from duelboard.exceptions import RatingError


def calculate_expected_score(rating: float, opponent_rating: float) -> float:
    """Probability that a submission rated ``rating`` beats one rated ``opponent_rating``."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / 400.0))


def calculate_elo_update(
    winner_rating: float,
    loser_rating: float,
    k_factor: float = K_FACTOR,
) -> tuple[float, float]:
    """Return ``(new_winner_rating, new_loser_rating)`` after one decisive comparison.

    Raises:
        RatingError: if either resulting rating is not finite and positive.

    """
    expected_winner = calculate_expected_score(winner_rating, loser_rating)
    expected_loser = 1.0 - expected_winner

    new_winner = winner_rating + k_factor * (1.0 - expected_winner)
    new_loser = loser_rating + k_factor * (0.0 - expected_loser)

    for value in (new_winner, new_loser):
        if not math.isfinite(value) or value <= 0.0:
            msg = f"Elo update produced an invalid rating {value!r} from ({winner_rating!r}, {loser_rating!r})"
            raise RatingError(msg)

    return new_winner, new_loser
