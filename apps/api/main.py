from __future__ import annotations

import time
from typing import Annotated
from uuid import uuid4

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from codeer.adapters.base import WebsiteFile
from codeer.config import (
    ALLOWED_ORIGINS,
    PAGE_MAX_TOTAL_BYTES,
    PUBLISH_RATE_LIMIT_ATTEMPTS,
    PUBLISH_RATE_LIMIT_WINDOW_SECONDS,
)
from codeer.db import check_db_connection
from codeer.deps import get_current_user, get_page_publisher, get_page_records, get_submission_judge, get_submission_records
from codeer.errors import CodeerError, SizeLimitExceeded
from codeer.judging import SubmissionJudge
from codeer.models import Page, PageStatus, User
from codeer.observability import get_logger, log_event, request_id_var
from codeer.publishing import PagePublisher, PublishRequest
from codeer.ratelimit import AttemptLimiter, check_redis_connection
from codeer.records import PageRecords, SubmissionRecords
from codeer.schemas import (
    ActivePage,
    DraftPage,
    FailedPage,
    MeResponse,
    PagePublishResponse,
    PageView,
    SolutionResponse,
    SubmissionCreate,
    SubmissionResultResponse,
)

app = FastAPI()
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)
logger = get_logger()

publish_limiter = AttemptLimiter(
    "pages:publish-attempts", PUBLISH_RATE_LIMIT_ATTEMPTS, PUBLISH_RATE_LIMIT_WINDOW_SECONDS
)


def _is_publish_rate_limited(user_id: int) -> bool:
    return publish_limiter.hit(str(user_id))


async def _read_uploads(uploads: list[UploadFile]) -> list[WebsiteFile]:
    files: list[WebsiteFile] = []
    total_size = 0
    for upload in uploads:
        content = await upload.read()
        total_size += len(content)
        # Stop buffering once the ceiling is crossed; the publisher re-checks the total.
        if total_size > PAGE_MAX_TOTAL_BYTES:
            raise SizeLimitExceeded(f"Total file size exceeds {PAGE_MAX_TOTAL_BYTES // (1024 * 1024)}MB limit")
        files.append(WebsiteFile(path=upload.filename or "", content=content))
    return files


def _to_page_view(page: Page) -> DraftPage | ActivePage | FailedPage:
    base = {
        "id": page.id,
        "title": page.title,
        "subdomain": page.subdomain,
        "domain": page.domain,
        "full_domain": page.full_domain,
        "github_repo": page.github_repo,
        "file_count": page.file_count,
        "repo_size": page.repo_size,
        "is_using_donated_domain": page.is_using_donated_domain,
        "created_at": page.created_at,
        "deployment_status": page.deployment_status,
    }
    metadata = page.metadata_json or {}
    if page.status == PageStatus.ACTIVE:
        return ActivePage(
            **base,
            status="active",
            url=page.custom_domain_url or f"https://{page.full_domain}",
            github_pages_url=page.github_pages_url,
            page_views=page.page_views,
        )
    if page.status == PageStatus.ERROR:
        return FailedPage(
            **base,
            status="error",
            error_message=metadata.get("error_message"),
            failed_stage=metadata.get("failed_stage"),
            failed_at=metadata.get("failed_at"),
        )
    return DraftPage(**base, status="creating")


@app.middleware("http")
async def add_request_id_and_logging(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or uuid4().hex
    request.state.request_id = request_id
    token = request_id_var.set(request_id)
    started_at = time.monotonic()
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        duration_ms = int((time.monotonic() - started_at) * 1000)
        if response is not None:
            response.headers["X-Request-ID"] = request_id
            status_code = response.status_code
        else:
            status_code = 500
        log_event(
            logger,
            "request.completed",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
            client=(request.client.host if request.client else "unknown"),
        )
        request_id_var.reset(token)


@app.exception_handler(CodeerError)
async def handle_codeer_error(request: Request, exc: CodeerError) -> JSONResponse:
    if exc.status_code >= 500:
        log_event(
            logger,
            "request.error",
            request_id=getattr(request.state, "request_id", None),
            path=request.url.path,
            error=type(exc).__name__,
            detail=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, **exc.context()})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/db")
async def health_db() -> JSONResponse:
    ok = await check_db_connection()
    if ok:
        return JSONResponse(content={"db": "ok"}, status_code=status.HTTP_200_OK)
    return JSONResponse(content={"db": "error"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


@app.get("/health/redis")
def health_redis() -> JSONResponse:
    ok = check_redis_connection()
    if ok:
        return JSONResponse(content={"redis": "ok"}, status_code=status.HTTP_200_OK)
    return JSONResponse(content={"redis": "error"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


@app.get("/me", response_model=MeResponse)
async def me(user: Annotated[User, Depends(get_current_user)]) -> MeResponse:
    return MeResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        display_name=user.display_name,
        role=user.role,
        total_xp=user.total_xp,
        problems_solved=user.problems_solved,
        current_streak=user.current_streak,
        max_streak=user.max_streak,
        created_at=user.created_at,
    )


@app.post("/pages", response_model=PagePublishResponse, status_code=status.HTTP_201_CREATED)
async def publish_page(
    user: Annotated[User, Depends(get_current_user)],
    publisher: Annotated[PagePublisher, Depends(get_page_publisher)],
    title: Annotated[str, Form()],
    subdomain: Annotated[str, Form()],
    files: Annotated[list[UploadFile], File()],
    domain: Annotated[str, Form()] = "",
    donated_domain_id: Annotated[int | None, Form()] = None,
) -> PagePublishResponse:
    user_id = user.id
    if _is_publish_rate_limited(user_id):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many publish attempts. Please try again later.",
        )

    website_files = await _read_uploads(files)
    result = await publisher.publish(
        PublishRequest(
            user_id=user_id,
            title=title,
            subdomain=subdomain,
            domain=domain,
            files=website_files,
            donated_domain_id=donated_domain_id,
        )
    )
    return PagePublishResponse(
        page_id=result.page_id,
        deployment_id=result.deployment_id,
        title=result.title,
        full_domain=result.full_domain,
        url=result.final_url,
        repository_url=result.repository_url,
        github_pages_url=result.hosting_url,
        status=result.status,
        uploaded_files=result.uploaded_files,
    )


@app.get("/pages", response_model=list[PageView])
async def list_pages(
    user: Annotated[User, Depends(get_current_user)],
    records: Annotated[PageRecords, Depends(get_page_records)],
) -> list[DraftPage | ActivePage | FailedPage]:
    pages = await records.get_user_pages(user.id)
    return [_to_page_view(page) for page in pages]


@app.post("/submissions", response_model=SubmissionResultResponse)
async def create_submission(
    payload: SubmissionCreate,
    user: Annotated[User, Depends(get_current_user)],
    judge: Annotated[SubmissionJudge, Depends(get_submission_judge)],
) -> SubmissionResultResponse:
    judged = await judge.submit(
        user_id=user.id,
        problem_id=payload.problem_id,
        code=payload.code,
        language=payload.language,
    )
    return SubmissionResultResponse(**judged.to_response())


@app.post("/problems/{problem_id}/solution", response_model=SolutionResponse)
async def view_solution(
    problem_id: int,
    user: Annotated[User, Depends(get_current_user)],
    records: Annotated[SubmissionRecords, Depends(get_submission_records)],
) -> SolutionResponse:
    problem, penalty = await records.view_solution(user_id=user.id, problem_id=problem_id)
    return SolutionResponse(problem_id=problem_id, solution=problem.solution, xp_penalty=penalty)
