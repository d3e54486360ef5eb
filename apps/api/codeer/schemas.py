from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


class MeResponse(BaseModel):
    id: int
    username: str
    email: str
    display_name: str | None = None
    role: str
    total_xp: int
    problems_solved: int
    current_streak: int
    max_streak: int
    created_at: datetime


class PageBase(BaseModel):
    id: int
    title: str
    subdomain: str
    domain: str
    full_domain: str
    github_repo: str
    file_count: int
    repo_size: int
    is_using_donated_domain: bool = False
    created_at: datetime | None = None


class DraftPage(PageBase):
    status: Literal["creating"]
    deployment_status: str


class ActivePage(PageBase):
    status: Literal["active"]
    deployment_status: str
    url: str
    github_pages_url: str | None = None
    page_views: int = 0


class FailedPage(PageBase):
    status: Literal["error"]
    deployment_status: str
    error_message: str | None = None
    failed_stage: str | None = None
    failed_at: str | None = None


PageView = Annotated[Union[DraftPage, ActivePage, FailedPage], Field(discriminator="status")]


class PagePublishResponse(BaseModel):
    page_id: int
    deployment_id: int
    title: str
    full_domain: str
    url: str
    repository_url: str
    github_pages_url: str
    status: str
    uploaded_files: int


class SubmissionCreate(BaseModel):
    problem_id: int
    code: str
    language: str


class CaseResultResponse(BaseModel):
    test_case_id: int
    passed: bool
    is_hidden: bool
    status: str
    stdout: str
    expected_output: str
    runtime: int | None = None
    memory: int | None = None


class SubmissionResultResponse(BaseModel):
    submission_id: int | None
    status: str
    runtime: int | None = None
    memory: int | None = None
    test_case_results: list[CaseResultResponse]
    passed_count: int
    total_count: int
    compile_output: str | None = None
    xp_awarded: int = 0


class SolutionResponse(BaseModel):
    problem_id: int
    solution: str | None
    xp_penalty: int
