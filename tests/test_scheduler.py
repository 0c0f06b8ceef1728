# tests/test_scheduler.py
import dataclasses
from datetime import datetime, timedelta, timezone

import pytest

from vocab_tutor.scheduler import (
    EASE_PENALTY, INITIAL_EASE_FACTOR, MAX_INTERVAL_DAYS, MIN_EASE_FACTOR, SEED_INTERVALS,
    CorruptState, Difficulty, InvalidDifficulty, InvalidOutcome, ReviewOutcome, ReviewState,
    initial_state, next_state, parse_outcome, project_next_review,
)

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


def make_state(**overrides):
    fields = dict(
        interval=20,
        repetition_count=5,
        ease_factor=2.5,
        next_review_at=NOW,
        reviewed_at=NOW - timedelta(days=20),
        difficulty=Difficulty.INTERMEDIATE,
    )
    fields.update(overrides)
    return ReviewState(**fields)


def test_initial_state_beginner():
    state = initial_state("beginner", NOW)
    assert state.interval == 1
    assert state.repetition_count == 0
    assert state.ease_factor == 2.5
    assert state.difficulty is Difficulty.BEGINNER
    assert state.next_review_at == NOW + timedelta(days=1)
    assert state.reviewed_at == NOW


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_initial_state_all_tiers(difficulty):
    state = initial_state(difficulty, NOW)
    assert state.interval >= 1
    assert state.ease_factor == INITIAL_EASE_FACTOR
    assert state.repetition_count == 0
    assert state.next_review_at == project_next_review(state.interval, NOW)


def test_seed_intervals_grow_with_difficulty():
    beginner = initial_state(Difficulty.BEGINNER, NOW).interval
    intermediate = initial_state(Difficulty.INTERMEDIATE, NOW).interval
    advanced = initial_state(Difficulty.ADVANCED, NOW).interval
    assert beginner <= intermediate <= advanced
    assert (beginner, intermediate, advanced) == (1, 2, 3)


@pytest.mark.parametrize("value", ["expert", "", None, "Beginner", 1])
def test_initial_state_rejects_unknown_difficulty(value):
    with pytest.raises(InvalidDifficulty):
        initial_state(value, NOW)


def test_three_successes_from_beginner():
    state = initial_state("beginner", NOW)
    intervals = [state.interval]
    for i in range(3):
        state = next_state(state, {"success": True}, NOW + timedelta(days=i + 1))
        intervals.append(state.interval)
    assert state.repetition_count == 3
    assert intervals == [1, 2, 5, 14]
    assert state.ease_factor > 2.5


def test_success_grows_interval_every_time():
    state = initial_state("advanced", NOW)
    for _ in range(8):
        after = next_state(state, {"success": True}, NOW)
        assert after.interval > state.interval
        assert after.ease_factor >= state.ease_factor
        state = after


def test_long_success_run_stops_at_max_interval():
    state = initial_state("beginner", NOW)
    for _ in range(30):
        after = next_state(state, {"success": True}, NOW)
        if state.interval < MAX_INTERVAL_DAYS:
            assert after.interval > state.interval
        assert after.interval <= MAX_INTERVAL_DAYS
        state = after
    assert state.interval == MAX_INTERVAL_DAYS
    assert state.repetition_count == 30
    assert state.next_review_at == NOW + timedelta(days=MAX_INTERVAL_DAYS)


def test_interval_at_cap_stays_at_cap():
    after = next_state(make_state(interval=MAX_INTERVAL_DAYS), {"success": True}, NOW)
    assert after.interval == MAX_INTERVAL_DAYS
    assert after.next_review_at == NOW + timedelta(days=MAX_INTERVAL_DAYS)


def test_success_grows_interval_at_minimum_ease():
    """1 * 1.3 rounds to 1, so growth comes from the one-day minimum."""
    state = make_state(interval=1, ease_factor=MIN_EASE_FACTOR, repetition_count=0)
    after = next_state(state, ReviewOutcome(success=True, quality_score=3), NOW)
    assert after.interval == 2


def test_failure_resets_to_beginner_seed():
    state = make_state(repetition_count=5, interval=20, ease_factor=2.5, difficulty=Difficulty.ADVANCED)
    after = next_state(state, {"success": False}, NOW)
    assert after.repetition_count == 0
    assert after.interval == SEED_INTERVALS[Difficulty.BEGINNER] == 1
    assert after.ease_factor == pytest.approx(2.5 - EASE_PENALTY)
    assert after.difficulty is Difficulty.ADVANCED


def test_failure_ease_factor_floor():
    state = make_state(ease_factor=1.4)
    for _ in range(10):
        state = next_state(state, {"success": False}, NOW)
        assert state.ease_factor >= MIN_EASE_FACTOR
    assert state.ease_factor == MIN_EASE_FACTOR


def test_next_review_is_projection_of_interval():
    later = NOW + timedelta(days=3, hours=5)
    after = next_state(make_state(), {"success": True}, later)
    assert after.reviewed_at == later
    assert after.next_review_at == later + timedelta(days=after.interval)


def test_next_state_does_not_modify_input():
    state = make_state()
    next_state(state, {"success": False}, NOW)
    assert state.interval == 20
    assert state.repetition_count == 5
    with pytest.raises(dataclasses.FrozenInstanceError):
        state.interval = 3


def test_next_state_is_deterministic():
    state = make_state()
    outcome = {"success": True, "quality_score": 5, "response_seconds": 1.5}
    assert next_state(state, outcome, NOW) == next_state(state, outcome, NOW)


def test_quality_score_scales_ease_bonus():
    state = make_state(interval=4)
    hard = next_state(state, ReviewOutcome(success=True, quality_score=3), NOW)
    good = next_state(state, ReviewOutcome(success=True, quality_score=4), NOW)
    easy = next_state(state, ReviewOutcome(success=True, quality_score=5), NOW)
    assert hard.ease_factor == 2.55
    assert good.ease_factor == 2.6
    assert easy.ease_factor == 2.65


def test_low_quality_success_keeps_ease():
    after = next_state(make_state(), {"success": True, "quality_score": 0}, NOW)
    assert after.ease_factor == 2.5


def test_camel_case_quality_score_accepted():
    after = next_state(make_state(interval=4), {"success": True, "qualityScore": 5}, NOW)
    assert after.ease_factor == 2.65


def test_response_time_adjusts_interval():
    state = make_state(interval=4, ease_factor=2.5)
    plain = next_state(state, {"success": True}, NOW)
    slow = next_state(state, {"success": True, "response_seconds": 12}, NOW)
    fast = next_state(state, {"success": True, "quality_score": 5, "response_seconds": 2}, NOW)
    assert plain.interval == 10
    assert slow.interval == 9
    assert fast.interval == 11


def test_fast_but_hard_recall_not_boosted():
    state = make_state(interval=4, ease_factor=2.5)
    after = next_state(state, {"success": True, "quality_score": 3, "response_seconds": 1}, NOW)
    assert after.interval == 10


def test_missing_success_raises():
    with pytest.raises(InvalidOutcome):
        next_state(make_state(), {}, NOW)


@pytest.mark.parametrize("outcome", [
    {"success": "yes"},
    {"success": 1},
    {"success": None},
    {"success": True, "quality_score": 6},
    {"success": True, "quality_score": -1},
    {"success": True, "quality_score": 4.5},
    {"success": True, "response_seconds": -2},
    None,
    True,
])
def test_malformed_outcome_raises(outcome):
    with pytest.raises(InvalidOutcome):
        next_state(make_state(), outcome, NOW)


def test_zero_interval_is_corrupt():
    with pytest.raises(CorruptState):
        next_state(make_state(interval=0), {"success": True}, NOW)


@pytest.mark.parametrize("overrides", [
    {"interval": -3},
    {"interval": 1.5},
    {"ease_factor": 1.2},
    {"ease_factor": float("nan")},
    {"ease_factor": float("inf")},
    {"ease_factor": None},
    {"interval": MAX_INTERVAL_DAYS + 1},
    {"repetition_count": -1},
    {"difficulty": "beginner"},
])
def test_corrupt_state_rejected(overrides):
    with pytest.raises(CorruptState):
        next_state(make_state(**overrides), {"success": True}, NOW)


def test_corrupt_state_checked_before_outcome():
    with pytest.raises(CorruptState):
        next_state(make_state(interval=0), {}, NOW)


def test_parse_outcome_passes_dataclass_through():
    outcome = ReviewOutcome(success=False, quality_score=1)
    assert parse_outcome(outcome) == outcome


def test_scheduler_errors_are_value_errors():
    with pytest.raises(ValueError):
        initial_state("nope", NOW)
