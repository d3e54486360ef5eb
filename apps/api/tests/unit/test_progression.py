from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

API_DIR = Path(__file__).resolve().parents[2]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from codeer.models import ProblemProgress
from codeer.progression import apply_submission_outcome, mark_solution_viewed, new_progress, solve_award

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _user(**overrides) -> SimpleNamespace:  # noqa: ANN003
    values = {
        "total_xp": 0,
        "problems_solved": 0,
        "current_streak": 0,
        "max_streak": 0,
        "last_solved_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _apply(progress, user, *, accepted: bool, now: datetime = NOW, runtime=10, memory=2048):  # noqa: ANN001
    return apply_submission_outcome(
        progress, user, marks=100, accepted=accepted, runtime=runtime, memory=memory, now=now
    )


def test_failed_submission_promotes_unattempted_to_attempted() -> None:
    progress = new_progress(1, 2)
    user = _user()

    update = _apply(progress, user, accepted=False)

    assert progress.status == ProblemProgress.ATTEMPTED
    assert progress.attempts_count == 1
    assert progress.last_attempted_at == NOW
    assert update.xp_awarded == 0
    assert user.total_xp == 0


def test_first_accept_awards_full_marks_and_starts_streak() -> None:
    progress = new_progress(1, 2)
    user = _user()

    update = _apply(progress, user, accepted=True)

    assert update.xp_awarded == 100
    assert update.newly_solved is True
    assert progress.status == ProblemProgress.SOLVED
    assert progress.solved_at == NOW
    assert progress.xp_earned == 100
    assert user.total_xp == 100
    assert user.problems_solved == 1
    assert user.current_streak == 1
    assert user.max_streak == 1


def test_repeat_accept_awards_nothing_but_counts_attempt() -> None:
    progress = new_progress(1, 2)
    user = _user()
    _apply(progress, user, accepted=True)

    update = _apply(progress, user, accepted=True, runtime=5, memory=1024)

    assert update.xp_awarded == 0
    assert progress.attempts_count == 2
    assert user.total_xp == 100
    assert user.problems_solved == 1
    assert progress.best_runtime == 5
    assert progress.best_memory == 1024


def test_best_metrics_keep_minimums() -> None:
    progress = new_progress(1, 2)
    user = _user()
    _apply(progress, user, accepted=True, runtime=5, memory=4096)

    _apply(progress, user, accepted=True, runtime=9, memory=1024)

    assert progress.best_runtime == 5
    assert progress.best_memory == 1024


def test_failed_submission_after_solve_keeps_solved_status() -> None:
    progress = new_progress(1, 2)
    user = _user()
    _apply(progress, user, accepted=True)

    _apply(progress, user, accepted=False)

    assert progress.status == ProblemProgress.SOLVED
    assert progress.attempts_count == 2


def test_viewed_solution_halves_award() -> None:
    progress = new_progress(1, 2)
    user = _user()
    penalty = mark_solution_viewed(progress, 101)

    update = apply_submission_outcome(
        progress, user, marks=101, accepted=True, runtime=None, memory=None, now=NOW
    )

    assert penalty == 50
    assert update.xp_awarded == 50
    assert user.total_xp == 50


def test_failed_submission_keeps_viewed_solution_marker() -> None:
    progress = new_progress(1, 2)
    mark_solution_viewed(progress, 100)

    _apply(progress, _user(), accepted=False)

    assert progress.status == ProblemProgress.VIEWED_SOLUTION


def test_mark_solution_viewed_is_noop_once_solved_or_viewed() -> None:
    solved = new_progress(1, 2)
    _apply(solved, _user(), accepted=True)
    viewed = new_progress(1, 3)
    mark_solution_viewed(viewed, 100)

    assert mark_solution_viewed(solved, 100) == 0
    assert solved.status == ProblemProgress.SOLVED
    assert mark_solution_viewed(viewed, 100) == 0


def test_streak_same_day_keeps_value() -> None:
    user = _user(current_streak=3, max_streak=5, last_solved_at=NOW - timedelta(hours=2))

    _apply(new_progress(1, 2), user, accepted=True)

    assert user.current_streak == 3
    assert user.max_streak == 5


def test_streak_next_day_increments_and_tracks_max() -> None:
    user = _user(current_streak=5, max_streak=5, last_solved_at=NOW - timedelta(days=1))

    _apply(new_progress(1, 2), user, accepted=True)

    assert user.current_streak == 6
    assert user.max_streak == 6
    assert user.last_solved_at == NOW


def test_streak_gap_resets_to_one() -> None:
    user = _user(current_streak=4, max_streak=7, last_solved_at=NOW - timedelta(days=3))

    _apply(new_progress(1, 2), user, accepted=True)

    assert user.current_streak == 1
    assert user.max_streak == 7


def test_solve_award_table() -> None:
    assert solve_award(ProblemProgress.UNATTEMPTED.value, 100) == 100
    assert solve_award(ProblemProgress.ATTEMPTED.value, 100) == 100
    assert solve_award(ProblemProgress.VIEWED_SOLUTION.value, 75) == 37
    assert solve_award(ProblemProgress.SOLVED.value, 100) == 0
