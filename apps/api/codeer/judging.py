from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from codeer.adapters.base import JUDGE_STATUS_ACCEPTED, JUDGE_STATUS_TIME_LIMIT, Judge, JudgeRequest, Verdict
from codeer.errors import JudgeUnavailable, UnsupportedLanguage, ValidationError
from codeer.models import Problem, ProblemTestCase
from codeer.observability import get_logger, log_event, log_failure
from codeer.records import SubmissionRecords

logger = get_logger("codeer.judging")

HIDDEN_PLACEHOLDER = "[Hidden]"

LANGUAGE_IDS: dict[str, int] = {
    "javascript": 63,
    "python": 71,
    "java": 62,
    "cpp": 54,
    "c": 50,
    "csharp": 51,
    "go": 60,
    "rust": 73,
    "typescript": 74,
}


class SubmissionVerdict(StrEnum):
    ACCEPTED = "Accepted"
    WRONG_ANSWER = "Wrong Answer"
    TIME_LIMIT_EXCEEDED = "Time Limit Exceeded"
    MEMORY_LIMIT_EXCEEDED = "Memory Limit Exceeded"
    COMPILATION_ERROR = "Compilation Error"
    RUNTIME_ERROR = "Runtime Error"


def resolve_language(language: str) -> int:
    language_id = LANGUAGE_IDS.get(language.strip().lower())
    if language_id is None:
        raise UnsupportedLanguage(f"Unsupported language: {language}")
    return language_id


def build_judge_requests(
    code: str, language_id: int, problem: Problem, test_cases: Sequence[ProblemTestCase]
) -> list[JudgeRequest]:
    return [
        JudgeRequest(
            source_code=code,
            language_id=language_id,
            stdin=case.input or "",
            expected_output=case.expected_output or "",
            cpu_time_limit=problem.time_limit / 1000,
            memory_limit=problem.memory_limit * 1024,
        )
        for case in test_cases
    ]


@dataclass(frozen=True)
class CaseResult:
    test_case_id: int
    passed: bool
    is_hidden: bool
    status: str
    stdout: str
    expected_output: str
    stderr: str
    compile_output: str
    runtime: int | None
    memory: int | None
    time_limit_exceeded: bool
    memory_limit_exceeded: bool

    def to_public(self) -> dict[str, Any]:
        """Response shape; hidden cases only reveal ``passed`` and the judge status."""
        return {
            "test_case_id": self.test_case_id,
            "passed": self.passed,
            "is_hidden": self.is_hidden,
            "status": self.status,
            "stdout": HIDDEN_PLACEHOLDER if self.is_hidden else self.stdout,
            "expected_output": HIDDEN_PLACEHOLDER if self.is_hidden else self.expected_output,
            "runtime": None if self.is_hidden else self.runtime,
            "memory": None if self.is_hidden else self.memory,
        }

    def to_record(self) -> dict[str, Any]:
        return {
            "test_case_id": self.test_case_id,
            "passed": self.passed,
            "is_hidden": self.is_hidden,
            "status": self.status,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "compile_output": self.compile_output,
            "runtime": self.runtime,
            "memory": self.memory,
        }


def evaluate_case(case: ProblemTestCase, verdict: Verdict) -> CaseResult:
    expected = case.expected_output or ""
    passed = verdict.status_id == JUDGE_STATUS_ACCEPTED and verdict.stdout.strip() == expected.strip()
    return CaseResult(
        test_case_id=case.id,
        passed=passed,
        is_hidden=bool(case.is_hidden),
        status=verdict.status_description,
        stdout=verdict.stdout,
        expected_output=expected,
        stderr=verdict.stderr,
        compile_output=verdict.compile_output,
        runtime=verdict.runtime_ms,
        memory=verdict.memory_kb,
        time_limit_exceeded=(
            verdict.status_id == JUDGE_STATUS_TIME_LIMIT
            or verdict.status_description == SubmissionVerdict.TIME_LIMIT_EXCEEDED
        ),
        memory_limit_exceeded=verdict.status_description == SubmissionVerdict.MEMORY_LIMIT_EXCEEDED,
    )


def aggregate_status(results: Sequence[CaseResult]) -> SubmissionVerdict:
    # Most severe first.
    if any(result.compile_output for result in results):
        return SubmissionVerdict.COMPILATION_ERROR
    if any(result.stderr for result in results):
        return SubmissionVerdict.RUNTIME_ERROR
    if any(result.time_limit_exceeded for result in results):
        return SubmissionVerdict.TIME_LIMIT_EXCEEDED
    if any(result.memory_limit_exceeded for result in results):
        return SubmissionVerdict.MEMORY_LIMIT_EXCEEDED
    if results and all(result.passed for result in results):
        return SubmissionVerdict.ACCEPTED
    return SubmissionVerdict.WRONG_ANSWER


def average_metrics(results: Sequence[CaseResult]) -> tuple[int | None, int | None]:
    measured = [result for result in results if result.runtime is not None and result.memory is not None]
    if not measured:
        return None, None
    runtime = round(sum(result.runtime for result in measured) / len(measured))
    memory = round(sum(result.memory for result in measured) / len(measured))
    return runtime, memory


def _first_non_empty(values: Sequence[str]) -> str | None:
    return next((value for value in values if value), None)


@dataclass(frozen=True)
class JudgedSubmission:
    submission_id: int | None
    status: SubmissionVerdict
    runtime: int | None
    memory: int | None
    results: list[CaseResult]
    compile_output: str | None
    xp_awarded: int

    @property
    def passed_count(self) -> int:
        return sum(1 for result in self.results if result.passed)

    @property
    def total_count(self) -> int:
        return len(self.results)

    def to_response(self) -> dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "status": self.status.value,
            "runtime": self.runtime,
            "memory": self.memory,
            "test_case_results": [result.to_public() for result in self.results],
            "passed_count": self.passed_count,
            "total_count": self.total_count,
            "compile_output": self.compile_output,
            "xp_awarded": self.xp_awarded,
        }


class SubmissionJudge:
    def __init__(self, judge: Judge, records: SubmissionRecords) -> None:
        self.judge = judge
        self.records = records

    async def submit(self, *, user_id: int, problem_id: int, code: str, language: str) -> JudgedSubmission:
        if not code.strip():
            raise ValidationError("Code must not be empty")
        language_id = resolve_language(language)

        problem = await self.records.load_problem(problem_id)
        test_cases = sorted(problem.test_cases, key=lambda case: case.order_index)
        if not test_cases:
            raise ValidationError("Problem has no test cases")
        marks = problem.marks

        requests = build_judge_requests(code, language_id, problem, test_cases)
        log_event(logger, "judge.dispatched", problem_id=problem_id, user_id=user_id, cases=len(requests))
        verdicts = await self.judge.submit_batch(requests)
        if len(verdicts) != len(test_cases):
            raise JudgeUnavailable("Code execution service returned an incomplete result")

        results = [evaluate_case(case, verdict) for case, verdict in zip(test_cases, verdicts)]
        status = aggregate_status(results)
        runtime, memory = average_metrics(results)
        compile_output = _first_non_empty([result.compile_output for result in results])
        stderr = _first_non_empty([result.stderr for result in results])
        accepted = status == SubmissionVerdict.ACCEPTED
        log_event(
            logger,
            "judge.completed",
            problem_id=problem_id,
            user_id=user_id,
            status=status.value,
            passed=sum(1 for result in results if result.passed),
            total=len(results),
        )

        submission_id = None
        xp_awarded = 0
        try:
            submission = await self.records.save_submission(
                user_id=user_id,
                problem=problem,
                code=code,
                language=language,
                status=status.value,
                accepted=accepted,
                runtime=runtime,
                memory=memory,
                test_case_results=[result.to_record() for result in results],
                compile_output=compile_output,
                error_message=stderr,
            )
            submission_id = submission.id
        except Exception:
            log_failure(logger, "judge.submission_save_failed", problem_id=problem_id, user_id=user_id)

        try:
            progress = await self.records.record_progress(
                user_id=user_id,
                problem_id=problem_id,
                marks=marks,
                accepted=accepted,
                runtime=runtime,
                memory=memory,
            )
            xp_awarded = progress.xp_awarded
        except Exception:
            log_failure(logger, "judge.progress_failed", problem_id=problem_id, user_id=user_id)

        return JudgedSubmission(
            submission_id=submission_id,
            status=status,
            runtime=runtime,
            memory=memory,
            results=results,
            compile_output=compile_output,
            xp_awarded=xp_awarded,
        )
