from __future__ import annotations

from enum import StrEnum

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from codeer.db import Base


class PageStatus(StrEnum):
    CREATING = "creating"
    ACTIVE = "active"
    ERROR = "error"


class DeploymentStatus(StrEnum):
    PENDING = "pending"
    BUILDING = "building"
    DEPLOYED = "deployed"
    FAILED = "failed"


class ProblemProgress(StrEnum):
    UNATTEMPTED = "unattempted"
    ATTEMPTED = "attempted"
    SOLVED = "solved"
    VIEWED_SOLUTION = "viewed_solution"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="user")
    total_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    problems_solved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_solved_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    pages: Mapped[list["Page"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    submissions: Mapped[list["Submission"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Problem(Base):
    __tablename__ = "problems"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    difficulty: Mapped[str] = mapped_column(String(20), nullable=False, default="easy")
    time_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=2000)
    memory_limit: Mapped[int] = mapped_column(Integer, nullable=False, default=256)
    marks: Mapped[int] = mapped_column(Integer, nullable=False, default=100)
    solution: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="published")
    total_submissions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_accepted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    acceptance_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    test_cases: Mapped[list["ProblemTestCase"]] = relationship(
        back_populates="problem", cascade="all, delete-orphan", order_by="ProblemTestCase.order_index.asc()"
    )


class ProblemTestCase(Base):
    __tablename__ = "problem_test_cases"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    problem_id: Mapped[int] = mapped_column(ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True)
    input: Mapped[str] = mapped_column(Text, nullable=False, default="")
    expected_output: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    problem: Mapped["Problem"] = relationship(back_populates="test_cases")


class UserProblemStatus(Base):
    __tablename__ = "user_problem_status"
    __table_args__ = (UniqueConstraint("user_id", "problem_id", name="uq_user_problem_status_user_problem"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    problem_id: Mapped[int] = mapped_column(ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProblemProgress.UNATTEMPTED.value)
    last_attempted_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    solved_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    attempts_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_runtime: Mapped[int | None] = mapped_column(Integer, nullable=True)
    best_memory: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    problem_id: Mapped[int] = mapped_column(ForeignKey("problems.id", ondelete="CASCADE"), nullable=False, index=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    language: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[str] = mapped_column(String(40), nullable=False)
    runtime: Mapped[int | None] = mapped_column(Integer, nullable=True)
    memory: Mapped[int | None] = mapped_column(Integer, nullable=True)
    test_case_results: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    compile_output: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user: Mapped["User"] = relationship(back_populates="submissions")


class DonatedDomain(Base):
    __tablename__ = "donated_domains"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    domain_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    zone_id: Mapped[str] = mapped_column(String(64), nullable=False)
    api_token: Mapped[str] = mapped_column(String(255), nullable=False)
    donor_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    reservations: Mapped[list["DonatedSubdomainReservation"]] = relationship(
        back_populates="donated_domain", cascade="all, delete-orphan"
    )


class DonatedSubdomainReservation(Base):
    __tablename__ = "donated_subdomain_reservations"
    __table_args__ = (
        UniqueConstraint("donated_domain_id", "subdomain", name="uq_donated_reservations_domain_subdomain"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    donated_domain_id: Mapped[int] = mapped_column(
        ForeignKey("donated_domains.id", ondelete="CASCADE"), nullable=False, index=True
    )
    page_id: Mapped[int] = mapped_column(ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    subdomain: Mapped[str] = mapped_column(String(63), nullable=False)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    donated_domain: Mapped["DonatedDomain"] = relationship(back_populates="reservations")


class Page(Base):
    __tablename__ = "pages"
    __table_args__ = (UniqueConstraint("subdomain", "domain", name="uq_pages_subdomain_domain"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subdomain: Mapped[str] = mapped_column(String(63), nullable=False)
    domain: Mapped[str] = mapped_column(String(255), nullable=False)
    full_domain: Mapped[str] = mapped_column(String(320), nullable=False)
    github_repo: Mapped[str] = mapped_column(String(255), nullable=False)
    file_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    repo_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    donated_domain_id: Mapped[int | None] = mapped_column(
        ForeignKey("donated_domains.id", ondelete="SET NULL"), nullable=True, index=True
    )
    is_using_donated_domain: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=PageStatus.CREATING.value)
    deployment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=DeploymentStatus.PENDING.value)
    github_pages_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    custom_domain_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    page_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    last_updated: Mapped[DateTime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="pages")
    deployments: Mapped[list["PageDeployment"]] = relationship(
        back_populates="page", cascade="all, delete-orphan", order_by="PageDeployment.id.desc()"
    )


class PageDeployment(Base):
    __tablename__ = "page_deployments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    page_id: Mapped[int] = mapped_column(ForeignKey("pages.id", ondelete="CASCADE"), nullable=False, index=True)
    file_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=DeploymentStatus.PENDING.value)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[DateTime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at: Mapped[DateTime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    page: Mapped["Page"] = relationship(back_populates="deployments")
