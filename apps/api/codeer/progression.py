"""XP, streak and attempt bookkeeping for a user's progress on one problem.

Functions here mutate ORM instances in place and never touch the session;
committing is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from codeer.models import ProblemProgress, User, UserProblemStatus


@dataclass(frozen=True)
class ProgressUpdate:
    xp_awarded: int
    newly_solved: bool


def new_progress(user_id: int, problem_id: int) -> UserProblemStatus:
    return UserProblemStatus(
        user_id=user_id,
        problem_id=problem_id,
        status=ProblemProgress.UNATTEMPTED.value,
        xp_earned=0,
        attempts_count=0,
    )


def solve_award(previous_status: str, marks: int) -> int:
    if previous_status == ProblemProgress.SOLVED:
        return 0
    if previous_status == ProblemProgress.VIEWED_SOLUTION:
        return marks // 2
    return marks


def _advance_streak(user: User, solved_at: datetime) -> None:
    today = solved_at.date()
    last = user.last_solved_at.date() if user.last_solved_at else None
    current = user.current_streak or 0

    if last == today:
        current = max(current, 1)
    elif last == today - timedelta(days=1):
        current += 1
    else:
        current = 1

    user.current_streak = current
    user.max_streak = max(user.max_streak or 0, current)
    user.last_solved_at = solved_at


def _record_best(progress: UserProblemStatus, runtime: int | None, memory: int | None) -> None:
    if runtime is not None and (progress.best_runtime is None or runtime < progress.best_runtime):
        progress.best_runtime = runtime
    if memory is not None and (progress.best_memory is None or memory < progress.best_memory):
        progress.best_memory = memory


def apply_submission_outcome(
    progress: UserProblemStatus,
    user: User,
    *,
    marks: int,
    accepted: bool,
    runtime: int | None,
    memory: int | None,
    now: datetime,
) -> ProgressUpdate:
    progress.attempts_count = (progress.attempts_count or 0) + 1
    progress.last_attempted_at = now

    if not accepted:
        if progress.status == ProblemProgress.UNATTEMPTED:
            progress.status = ProblemProgress.ATTEMPTED.value
        return ProgressUpdate(xp_awarded=0, newly_solved=False)

    _record_best(progress, runtime, memory)
    if progress.status == ProblemProgress.SOLVED:
        return ProgressUpdate(xp_awarded=0, newly_solved=False)

    award = solve_award(progress.status, marks)
    progress.status = ProblemProgress.SOLVED.value
    progress.solved_at = now
    progress.xp_earned = (progress.xp_earned or 0) + award

    user.total_xp = (user.total_xp or 0) + award
    user.problems_solved = (user.problems_solved or 0) + 1
    _advance_streak(user, now)
    return ProgressUpdate(xp_awarded=award, newly_solved=True)


def mark_solution_viewed(progress: UserProblemStatus, marks: int) -> int:
    """Flag the problem as ``viewed_solution`` and return the XP penalty.

    Solved problems and problems already flagged are left alone (penalty 0).
    """
    if progress.status not in (ProblemProgress.UNATTEMPTED, ProblemProgress.ATTEMPTED):
        return 0
    progress.status = ProblemProgress.VIEWED_SOLUTION.value
    return marks // 2
