from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from codeer.errors import Conflict, NotFound
from codeer.models import (
    DeploymentStatus,
    Page,
    PageDeployment,
    PageStatus,
    Problem,
    ProblemProgress,
    Submission,
    User,
    UserProblemStatus,
)
from codeer.progression import ProgressUpdate, apply_submission_outcome, mark_solution_viewed, new_progress

_PAGE_UPDATABLE_FIELDS = frozenset({"github_pages_url", "custom_domain_url", "metadata_json"})


async def _commit(session: AsyncSession) -> None:
    try:
        await session.commit()
    except Exception:
        await session.rollback()
        raise


class PageRecords:
    """Page and deployment lifecycle records.

    Nothing else in the codebase writes ``Page.status`` or
    ``Page.deployment_status``. Every write is committed before the method
    returns.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def slot_taken(self, subdomain: str, domain: str) -> bool:
        page_id = await self.session.scalar(select(Page.id).where(Page.subdomain == subdomain, Page.domain == domain))
        return page_id is not None

    async def create_page(
        self,
        *,
        user_id: int,
        title: str,
        subdomain: str,
        domain: str,
        github_repo: str,
        file_count: int,
        repo_size: int,
        donated_domain_id: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Page:
        page = Page(
            user_id=user_id,
            title=title,
            subdomain=subdomain,
            domain=domain,
            full_domain=f"{subdomain}.{domain}",
            github_repo=github_repo,
            file_count=file_count,
            repo_size=repo_size,
            donated_domain_id=donated_domain_id,
            is_using_donated_domain=donated_domain_id is not None,
            status=PageStatus.CREATING.value,
            deployment_status=DeploymentStatus.PENDING.value,
            metadata_json=metadata or {},
            page_views=0,
        )
        self.session.add(page)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise Conflict(f"Subdomain {subdomain}.{domain} is not available") from exc
        await self.session.refresh(page)
        return page

    async def create_deployment(self, page_id: int, file_count: int) -> int:
        deployment = PageDeployment(page_id=page_id, file_count=file_count, status=DeploymentStatus.PENDING.value)
        self.session.add(deployment)
        await _commit(self.session)
        await self.session.refresh(deployment)
        return deployment.id

    async def update_page_status(
        self,
        page_id: int,
        status: PageStatus,
        deployment_status: DeploymentStatus,
        extra_fields: dict[str, Any] | None = None,
    ) -> Page:
        page = await self.session.get(Page, page_id)
        if page is None:
            raise NotFound(f"Page {page_id} not found")

        page.status = status.value
        page.deployment_status = deployment_status.value
        for key, value in (extra_fields or {}).items():
            if key not in _PAGE_UPDATABLE_FIELDS:
                raise ValueError(f"Page field is not updatable: {key}")
            setattr(page, key, value)
        await _commit(self.session)
        return page

    async def update_deployment(self, deployment_id: int, status: DeploymentStatus, reason: str | None = None) -> None:
        deployment = await self.session.get(PageDeployment, deployment_id)
        if deployment is None:
            raise NotFound(f"Deployment {deployment_id} not found")

        deployment.status = status.value
        deployment.error_message = reason
        deployment.completed_at = datetime.now(timezone.utc)
        await _commit(self.session)

    async def get_user_pages(self, user_id: int) -> list[Page]:
        rows = await self.session.execute(select(Page).where(Page.user_id == user_id).order_by(Page.id.desc()))
        return list(rows.scalars().all())


class SubmissionRecords:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load_problem(self, problem_id: int) -> Problem:
        problem = await self.session.scalar(
            select(Problem)
            .options(selectinload(Problem.test_cases))
            .where(Problem.id == problem_id)
            .execution_options(populate_existing=True)
        )
        if problem is None:
            raise NotFound("Problem not found")
        return problem

    async def _progress_row(self, user_id: int, problem_id: int) -> UserProblemStatus:
        """Load the row locked and fresh from the database, inserting it if missing."""
        query = (
            select(UserProblemStatus)
            .where(
                UserProblemStatus.user_id == user_id,
                UserProblemStatus.problem_id == problem_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        progress = await self.session.scalar(query)
        if progress is not None:
            return progress

        progress = new_progress(user_id, problem_id)
        self.session.add(progress)
        try:
            await self.session.flush()
        except IntegrityError:
            # Another request inserted the row first.
            await self.session.rollback()
            progress = await self.session.scalar(query)
            if progress is None:
                raise
        return progress

    async def _claim_solve(self, progress: UserProblemStatus) -> bool:
        result = await self.session.execute(
            update(UserProblemStatus)
            .where(
                UserProblemStatus.id == progress.id,
                UserProblemStatus.status == progress.status,
            )
            .values(status=ProblemProgress.SOLVED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def save_submission(
        self,
        *,
        user_id: int,
        problem: Problem,
        code: str,
        language: str,
        status: str,
        accepted: bool,
        runtime: int | None,
        memory: int | None,
        test_case_results: list[dict[str, Any]],
        compile_output: str | None,
        error_message: str | None,
    ) -> Submission:
        submission = Submission(
            user_id=user_id,
            problem_id=problem.id,
            code=code,
            language=language,
            status=status,
            runtime=runtime,
            memory=memory,
            test_case_results=test_case_results,
            compile_output=compile_output,
            error_message=error_message,
        )
        self.session.add(submission)

        problem.total_submissions = (problem.total_submissions or 0) + 1
        if accepted:
            problem.total_accepted = (problem.total_accepted or 0) + 1
        problem.acceptance_rate = round((problem.total_accepted or 0) * 100 / problem.total_submissions, 2)

        await _commit(self.session)
        await self.session.refresh(submission)
        return submission

    async def record_progress(
        self,
        *,
        user_id: int,
        problem_id: int,
        marks: int,
        accepted: bool,
        runtime: int | None,
        memory: int | None,
    ) -> ProgressUpdate:
        progress = await self._progress_row(user_id, problem_id)
        user = await self.session.get(User, user_id, with_for_update=True, populate_existing=True)
        if user is None:
            raise NotFound("User not found")

        # Only the request whose conditional update flips the row to solved awards XP.
        if accepted and progress.status != ProblemProgress.SOLVED and not await self._claim_solve(progress):
            await self.session.refresh(progress)

        outcome = apply_submission_outcome(
            progress,
            user,
            marks=marks,
            accepted=accepted,
            runtime=runtime,
            memory=memory,
            now=datetime.now(timezone.utc),
        )
        await _commit(self.session)
        return outcome

    async def view_solution(self, *, user_id: int, problem_id: int) -> tuple[Problem, int]:
        problem = await self.session.get(Problem, problem_id)
        if problem is None:
            raise NotFound("Problem not found")

        progress = await self._progress_row(user_id, problem_id)
        penalty = mark_solution_viewed(progress, problem.marks)
        await _commit(self.session)
        return problem, penalty
