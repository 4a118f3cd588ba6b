"""
Sleep scoring.

A night is scored once, when it is logged: a duration band plus a bonus for
the subjective quality rating, capped at 100. The analyzer later consumes a
rolling average of these scores rather than recomputing them.
"""

from collections.abc import Iterable

import structlog

from core.domain.models import SleepEntry, SleepQuality
from core.domain.weights import SLEEP_QUALITY_BONUS

logger = structlog.get_logger(__name__)

MAX_SLEEP_SCORE = 100


def _duration_base_score(hours_slept: float) -> int:
    if 7 <= hours_slept <= 9:
        return 70
    if 6 <= hours_slept < 7:
        return 55
    if 5 <= hours_slept < 6:
        return 40
    if hours_slept < 5:
        return 25
    if 9 < hours_slept <= 10:
        return 60
    # Oversleeping falls back to the "insufficient" band
    return 40


def calculate_sleep_score(hours_slept: float, quality: SleepQuality | str) -> int:
    """
    Score one night of sleep on a 0-100 scale.

    Any numeric duration is accepted; negative values land in the lowest band.
    Raises ValueError for a quality rating outside SleepQuality.
    """
    rating = SleepQuality(quality)
    score = _duration_base_score(hours_slept) + SLEEP_QUALITY_BONUS[rating.value]
    return min(MAX_SLEEP_SCORE, score)


def average_sleep_score(
    entries: Iterable[SleepEntry],
    *,
    window: int = 7,
    default: float = 70.0,
) -> float:
    """
    Rolling average of the most recent sleep scores.

    ``entries`` must be ordered newest first. Entries without a stored score
    count as ``default``, and an empty history averages to ``default``.
    """
    recent = list(entries)[:window]
    if not recent:
        return default

    scores = [entry.sleep_score or default for entry in recent]
    average = sum(scores) / len(scores)
    logger.debug("sleep_average_computed", entries=len(recent), average=round(average, 2))
    return average
