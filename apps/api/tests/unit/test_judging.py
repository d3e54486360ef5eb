from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

API_DIR = Path(__file__).resolve().parents[2]
if str(API_DIR) not in sys.path:
    sys.path.insert(0, str(API_DIR))

from codeer.adapters.base import Verdict
from codeer.errors import JudgeUnavailable, NotFound, UnsupportedLanguage, ValidationError
from codeer.judging import (
    HIDDEN_PLACEHOLDER,
    SubmissionJudge,
    SubmissionVerdict,
    aggregate_status,
    average_metrics,
    evaluate_case,
    resolve_language,
)
from codeer.progression import ProgressUpdate


def _case(case_id: int, expected: str, *, hidden: bool = False, order: int = 0) -> SimpleNamespace:
    return SimpleNamespace(
        id=case_id, input=f"in-{case_id}", expected_output=expected, is_hidden=hidden, order_index=order
    )


def _verdict(
    stdout: str = "",
    *,
    status_id: int = 3,
    description: str = "Accepted",
    runtime: int | None = 10,
    memory: int | None = 1000,
    stderr: str = "",
    compile_output: str = "",
) -> Verdict:
    return Verdict(
        status_id=status_id,
        status_description=description,
        runtime_ms=runtime,
        memory_kb=memory,
        stdout=stdout,
        stderr=stderr,
        compile_output=compile_output,
    )


def _problem(test_cases: list[SimpleNamespace]) -> SimpleNamespace:
    return SimpleNamespace(id=7, marks=100, time_limit=2000, memory_limit=256, test_cases=test_cases)


class _FakeJudge:
    def __init__(self, verdicts: list[Verdict] | None = None, error: Exception | None = None) -> None:
        self.verdicts = verdicts or []
        self.error = error
        self.requests = []

    async def submit_batch(self, requests):  # noqa: ANN001
        self.requests = list(requests)
        if self.error is not None:
            raise self.error
        return self.verdicts


class _FakeRecords:
    def __init__(
        self, problem: SimpleNamespace | None, *, fail_save: bool = False, fail_progress: bool = False
    ) -> None:
        self.problem = problem
        self.fail_save = fail_save
        self.fail_progress = fail_progress
        self.saved: list[dict] = []
        self.progress_calls: list[dict] = []

    async def load_problem(self, problem_id: int):  # noqa: ANN201
        if self.problem is None:
            raise NotFound("Problem not found")
        return self.problem

    async def save_submission(self, **kwargs):  # noqa: ANN003, ANN201
        if self.fail_save:
            raise RuntimeError("database is down")
        self.saved.append(kwargs)
        return SimpleNamespace(id=501)

    async def record_progress(self, **kwargs) -> ProgressUpdate:  # noqa: ANN003
        if self.fail_progress:
            raise RuntimeError("deadlock detected")
        self.progress_calls.append(kwargs)
        return ProgressUpdate(xp_awarded=100 if kwargs["accepted"] else 0, newly_solved=kwargs["accepted"])


def _submit(judge: _FakeJudge, records: _FakeRecords, *, code: str = "print(1)", language: str = "python"):
    service = SubmissionJudge(judge, records)
    return asyncio.run(service.submit(user_id=1, problem_id=7, code=code, language=language))


def test_resolve_language_is_case_insensitive() -> None:
    assert resolve_language("Python") == 71
    assert resolve_language("cpp") == 54
    assert resolve_language("TypeScript") == 74


def test_resolve_language_rejects_unknown() -> None:
    with pytest.raises(UnsupportedLanguage):
        resolve_language("cobol")


def test_evaluate_case_trims_only_outer_whitespace() -> None:
    assert evaluate_case(_case(1, "1 2\n"), _verdict("  1 2  \n")).passed is True
    assert evaluate_case(_case(1, "1 2"), _verdict("1  2")).passed is False


def test_evaluate_case_requires_accepted_status() -> None:
    result = evaluate_case(_case(1, "ok"), _verdict("ok", status_id=4, description="Wrong Answer"))

    assert result.passed is False


def test_evaluate_case_flags_limit_verdicts() -> None:
    tle_by_id = evaluate_case(_case(1, "ok"), _verdict(status_id=5, description="Something"))
    tle_by_text = evaluate_case(_case(1, "ok"), _verdict(status_id=13, description="Time Limit Exceeded"))
    mle = evaluate_case(_case(1, "ok"), _verdict(status_id=13, description="Memory Limit Exceeded"))

    assert tle_by_id.time_limit_exceeded is True
    assert tle_by_text.time_limit_exceeded is True
    assert mle.memory_limit_exceeded is True
    assert mle.time_limit_exceeded is False


def test_aggregate_status_precedence() -> None:
    passed = evaluate_case(_case(1, "ok"), _verdict("ok"))
    wrong = evaluate_case(_case(2, "ok"), _verdict("no", status_id=4, description="Wrong Answer"))
    tle = evaluate_case(_case(3, "ok"), _verdict(status_id=5, description="Time Limit Exceeded"))
    mle = evaluate_case(_case(4, "ok"), _verdict(status_id=13, description="Memory Limit Exceeded"))
    crashed = evaluate_case(_case(5, "ok"), _verdict(status_id=11, description="Runtime Error", stderr="boom"))
    broken = evaluate_case(_case(6, "ok"), _verdict(status_id=6, description="Compilation Error", compile_output="err"))

    assert aggregate_status([passed, passed]) == SubmissionVerdict.ACCEPTED
    assert aggregate_status([passed, wrong]) == SubmissionVerdict.WRONG_ANSWER
    assert aggregate_status([wrong, mle]) == SubmissionVerdict.MEMORY_LIMIT_EXCEEDED
    assert aggregate_status([mle, tle]) == SubmissionVerdict.TIME_LIMIT_EXCEEDED
    assert aggregate_status([tle, crashed]) == SubmissionVerdict.RUNTIME_ERROR
    assert aggregate_status([crashed, broken]) == SubmissionVerdict.COMPILATION_ERROR


def test_average_metrics_only_counts_fully_measured_cases() -> None:
    results = [
        evaluate_case(_case(1, "ok"), _verdict("ok", runtime=10, memory=1000)),
        evaluate_case(_case(2, "ok"), _verdict("ok", runtime=15, memory=2001)),
        evaluate_case(_case(3, "ok"), _verdict("ok", runtime=None, memory=9999)),
    ]

    assert average_metrics(results) == (12, 1500)


def test_average_metrics_absent_when_nothing_measured() -> None:
    results = [evaluate_case(_case(1, "ok"), _verdict("ok", runtime=None, memory=None))]

    assert average_metrics(results) == (None, None)


def test_submit_builds_one_batch_with_translated_limits() -> None:
    cases = [_case(2, "b", order=1), _case(1, "a", order=0)]
    judge = _FakeJudge([_verdict("a"), _verdict("b")])
    records = _FakeRecords(_problem(cases))

    judged = _submit(judge, records)

    assert [request.stdin for request in judge.requests] == ["in-1", "in-2"]
    assert judge.requests[0].language_id == 71
    assert judge.requests[0].cpu_time_limit == 2.0
    assert judge.requests[0].memory_limit == 256 * 1024
    assert judged.status == SubmissionVerdict.ACCEPTED
    assert judged.submission_id == 501
    assert judged.xp_awarded == 100
    assert records.progress_calls[0]["marks"] == 100


def test_submit_redacts_hidden_cases_in_response() -> None:
    cases = [_case(1, "a"), _case(2, "secret", hidden=True, order=1)]
    judge = _FakeJudge([_verdict("a"), _verdict("wrong", status_id=4, description="Wrong Answer")])

    response = _submit(judge, _FakeRecords(_problem(cases))).to_response()

    hidden = response["test_case_results"][1]
    assert hidden["stdout"] == HIDDEN_PLACEHOLDER
    assert hidden["expected_output"] == HIDDEN_PLACEHOLDER
    assert hidden["passed"] is False
    assert hidden["runtime"] is None
    assert hidden["memory"] is None
    assert response["test_case_results"][0]["runtime"] == 10
    assert response["test_case_results"][0]["stdout"] == "a"
    assert response["status"] == "Wrong Answer"
    assert response["passed_count"] == 1
    assert response["total_count"] == 2


def test_submit_persists_first_compile_output_and_stderr() -> None:
    cases = [_case(1, "a"), _case(2, "b", order=1)]
    judge = _FakeJudge(
        [
            _verdict(status_id=11, description="Runtime Error", stderr="first"),
            _verdict(status_id=6, description="Compilation Error", compile_output="syntax", stderr="second"),
        ]
    )
    records = _FakeRecords(_problem(cases))

    judged = _submit(judge, records)

    saved = records.saved[0]
    assert judged.status == SubmissionVerdict.COMPILATION_ERROR
    assert saved["compile_output"] == "syntax"
    assert saved["error_message"] == "first"
    assert saved["accepted"] is False
    assert "expected_output" not in saved["test_case_results"][0]


def test_submit_surfaces_judge_outage_without_persisting() -> None:
    judge = _FakeJudge(error=JudgeUnavailable("Code execution service unavailable"))
    records = _FakeRecords(_problem([_case(1, "a")]))

    with pytest.raises(JudgeUnavailable):
        _submit(judge, records)

    assert records.saved == []


def test_submit_rejects_verdict_count_mismatch() -> None:
    judge = _FakeJudge([_verdict("a")])
    records = _FakeRecords(_problem([_case(1, "a"), _case(2, "b", order=1)]))

    with pytest.raises(JudgeUnavailable):
        _submit(judge, records)

    assert records.saved == []


def test_submit_records_progress_when_submission_insert_fails() -> None:
    judge = _FakeJudge([_verdict("a")])
    records = _FakeRecords(_problem([_case(1, "a")]), fail_save=True)

    judged = _submit(judge, records)

    assert judged.submission_id is None
    assert judged.status == SubmissionVerdict.ACCEPTED
    assert judged.xp_awarded == 100
    assert records.progress_calls[0]["accepted"] is True


def test_submit_keeps_submission_when_progress_update_fails() -> None:
    judge = _FakeJudge([_verdict("a")])
    records = _FakeRecords(_problem([_case(1, "a")]), fail_progress=True)

    judged = _submit(judge, records)

    assert judged.submission_id == 501
    assert judged.status == SubmissionVerdict.ACCEPTED
    assert judged.xp_awarded == 0
    assert len(records.saved) == 1


def test_submit_validates_before_dispatch() -> None:
    judge = _FakeJudge([_verdict("a")])

    with pytest.raises(ValidationError):
        _submit(judge, _FakeRecords(_problem([_case(1, "a")])), code="   ")
    with pytest.raises(UnsupportedLanguage):
        _submit(judge, _FakeRecords(_problem([_case(1, "a")])), language="brainfuck")
    with pytest.raises(ValidationError, match="no test cases"):
        _submit(judge, _FakeRecords(_problem([])))
    with pytest.raises(NotFound):
        _submit(judge, _FakeRecords(None))

    assert judge.requests == []
