from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from codeer.adapters import build_dns_provider, build_judge, build_repository_host
from codeer.adapters.donated import SqlDonatedDomainRegistry
from codeer.config import DEFAULT_PAGE_DOMAINS, GITHUB_OWNER, PAGE_MAX_TOTAL_BYTES
from codeer.db import get_async_session
from codeer.judging import SubmissionJudge
from codeer.models import User
from codeer.publishing import PagePublisher
from codeer.records import PageRecords, SubmissionRecords
from codeer.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> User:
    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")

    result = await session.execute(select(User).where(User.email == subject))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


def get_page_records(session: Annotated[AsyncSession, Depends(get_async_session)]) -> PageRecords:
    return PageRecords(session)


def get_submission_records(session: Annotated[AsyncSession, Depends(get_async_session)]) -> SubmissionRecords:
    return SubmissionRecords(session)


def get_page_publisher(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    records: Annotated[PageRecords, Depends(get_page_records)],
) -> PagePublisher:
    return PagePublisher(
        records=records,
        repo_host=build_repository_host(),
        dns=build_dns_provider(),
        registry=SqlDonatedDomainRegistry(session),
        default_domains=DEFAULT_PAGE_DOMAINS,
        hosting_owner=GITHUB_OWNER,
        max_total_bytes=PAGE_MAX_TOTAL_BYTES,
    )


def get_submission_judge(records: Annotated[SubmissionRecords, Depends(get_submission_records)]) -> SubmissionJudge:
    return SubmissionJudge(build_judge(), records)
