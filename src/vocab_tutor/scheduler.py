"""Spaced repetition review scheduling (SM-2 style)."""
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Mapping, Optional, Union


class Difficulty(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


SEED_INTERVALS = {
    Difficulty.BEGINNER: 1,
    Difficulty.INTERMEDIATE: 2,
    Difficulty.ADVANCED: 3,
}
INITIAL_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
EASE_BONUS = 0.1
QUALITY_BONUS_STEP = 0.05
EASE_PENALTY = 0.2

SLOW_RECALL_SECONDS = 10
FAST_RECALL_SECONDS = 3
SLOW_RECALL_FACTOR = 0.9
FAST_RECALL_FACTOR = 1.1

# Intervals stop growing at roughly a century so due dates stay representable.
MAX_INTERVAL_DAYS = 36500


class SchedulerError(ValueError):
    """Base class for scheduler input errors."""


class InvalidDifficulty(SchedulerError):
    pass


class InvalidOutcome(SchedulerError):
    pass


class CorruptState(SchedulerError):
    pass


@dataclass(frozen=True)
class ReviewState:
    interval: int
    repetition_count: int
    ease_factor: float
    next_review_at: datetime
    reviewed_at: datetime
    difficulty: Difficulty


@dataclass(frozen=True)
class ReviewOutcome:
    success: bool
    quality_score: Optional[int] = None
    response_seconds: Optional[float] = None


def parse_difficulty(value) -> Difficulty:
    """Return the Difficulty for an enum member or its string value."""
    try:
        return Difficulty(value)
    except ValueError:
        raise InvalidDifficulty(f"unknown difficulty: {value!r}") from None


def project_next_review(interval: int, now: datetime) -> datetime:
    return now + timedelta(days=interval)


def initial_state(difficulty, now: datetime) -> ReviewState:
    """Seed the review state for a newly logged word.

    Args:
        difficulty: Difficulty tier (enum member or "beginner", etc.)
        now: Current time, supplied by the caller

    Returns:
        ReviewState with no repetitions and the tier's seed interval.
    """
    tier = parse_difficulty(difficulty)
    interval = SEED_INTERVALS[tier]
    return ReviewState(
        interval=interval,
        repetition_count=0,
        ease_factor=INITIAL_EASE_FACTOR,
        next_review_at=project_next_review(interval, now),
        reviewed_at=now,
        difficulty=tier,
    )


def _check_state(state: ReviewState) -> None:
    interval = state.interval
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise CorruptState(f"interval must be a positive integer, got {interval!r}")
    if interval > MAX_INTERVAL_DAYS:
        raise CorruptState(f"interval above {MAX_INTERVAL_DAYS} days: {interval!r}")
    ease = state.ease_factor
    if isinstance(ease, bool) or not isinstance(ease, (int, float)) or not math.isfinite(ease):
        raise CorruptState(f"ease factor must be a finite number, got {ease!r}")
    if ease < MIN_EASE_FACTOR:
        raise CorruptState(f"ease factor below {MIN_EASE_FACTOR}: {ease!r}")
    if not isinstance(state.repetition_count, int) or state.repetition_count < 0:
        raise CorruptState(f"negative repetition count: {state.repetition_count!r}")
    if not isinstance(state.difficulty, Difficulty):
        raise CorruptState(f"unknown difficulty: {state.difficulty!r}")


def parse_outcome(outcome: Union[ReviewOutcome, Mapping]) -> ReviewOutcome:
    """Validate a ReviewOutcome or a mapping with a boolean "success"."""
    if isinstance(outcome, ReviewOutcome):
        success = outcome.success
        quality = outcome.quality_score
        seconds = outcome.response_seconds
    elif isinstance(outcome, Mapping):
        if "success" not in outcome:
            raise InvalidOutcome("outcome is missing 'success'")
        success = outcome["success"]
        quality = outcome.get("quality_score", outcome.get("qualityScore"))
        seconds = outcome.get("response_seconds")
    else:
        raise InvalidOutcome(f"unsupported outcome: {outcome!r}")

    if not isinstance(success, bool):
        raise InvalidOutcome(f"'success' must be a boolean, got {success!r}")
    if quality is not None:
        if isinstance(quality, bool) or not isinstance(quality, int) or not 0 <= quality <= 5:
            raise InvalidOutcome(f"quality score must be 0-5, got {quality!r}")
    if seconds is not None:
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds < 0:
            raise InvalidOutcome(f"response time must be >= 0, got {seconds!r}")
    return ReviewOutcome(success=success, quality_score=quality, response_seconds=seconds)


def _grown_interval(state: ReviewState, outcome: ReviewOutcome) -> int:
    interval = round(state.interval * state.ease_factor)
    seconds = outcome.response_seconds
    if seconds is not None:
        if seconds > SLOW_RECALL_SECONDS:
            interval = round(interval * SLOW_RECALL_FACTOR)
        elif seconds < FAST_RECALL_SECONDS and (outcome.quality_score is None or outcome.quality_score >= 4):
            interval = round(interval * FAST_RECALL_FACTOR)
    # At least one day past the current interval, up to the cap.
    return min(MAX_INTERVAL_DAYS, max(state.interval + 1, interval))


def _ease_bonus(quality: Optional[int]) -> float:
    if quality is None:
        return EASE_BONUS
    return max(0.0, EASE_BONUS + QUALITY_BONUS_STEP * (quality - 4))


def next_state(
    current: ReviewState,
    outcome: Union[ReviewOutcome, Mapping],
    now: datetime,
) -> ReviewState:
    """Calculate the state that follows a review.

    Args:
        current: State loaded from storage
        outcome: ReviewOutcome or mapping with a boolean "success" and
            optional "quality_score" (0-5) and "response_seconds"
        now: Time of the review

    Returns:
        A new ReviewState; ``current`` is left untouched.

    Raises:
        CorruptState: ``current`` breaks a state invariant.
        InvalidOutcome: ``outcome`` is malformed.
    """
    _check_state(current)
    result = parse_outcome(outcome)

    if result.success:
        interval = _grown_interval(current, result)
        repetitions = current.repetition_count + 1
        ease_factor = max(current.ease_factor, round(current.ease_factor + _ease_bonus(result.quality_score), 2))
    else:
        # Forgotten: restart from the shortest seed whatever the tier.
        interval = SEED_INTERVALS[Difficulty.BEGINNER]
        repetitions = 0
        ease_factor = max(MIN_EASE_FACTOR, round(current.ease_factor - EASE_PENALTY, 2))

    return replace(
        current,
        interval=interval,
        repetition_count=repetitions,
        ease_factor=ease_factor,
        next_review_at=project_next_review(interval, now),
        reviewed_at=now,
    )
