"""create users, problems, submissions, pages and donated domains

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="user"),
        sa.Column("total_xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("problems_solved", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_solved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "problems",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("difficulty", sa.String(length=20), nullable=False, server_default="easy"),
        sa.Column("time_limit", sa.Integer(), nullable=False, server_default="2000"),
        sa.Column("memory_limit", sa.Integer(), nullable=False, server_default="256"),
        sa.Column("marks", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("solution", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="published"),
        sa.Column("total_submissions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_accepted", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("acceptance_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_problems_id", "problems", ["id"], unique=False)

    op.create_table(
        "problem_test_cases",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("problem_id", sa.Integer(), sa.ForeignKey("problems.id", ondelete="CASCADE"), nullable=False),
        sa.Column("input", sa.Text(), nullable=False, server_default=""),
        sa.Column("expected_output", sa.Text(), nullable=False, server_default=""),
        sa.Column("is_hidden", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_problem_test_cases_id", "problem_test_cases", ["id"], unique=False)
    op.create_index("ix_problem_test_cases_problem_id", "problem_test_cases", ["problem_id"], unique=False)

    op.create_table(
        "user_problem_status",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("problem_id", sa.Integer(), sa.ForeignKey("problems.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="unattempted"),
        sa.Column("last_attempted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("solved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("xp_earned", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attempts_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("best_runtime", sa.Integer(), nullable=True),
        sa.Column("best_memory", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("user_id", "problem_id", name="uq_user_problem_status_user_problem"),
    )
    op.create_index("ix_user_problem_status_id", "user_problem_status", ["id"], unique=False)
    op.create_index("ix_user_problem_status_user_id", "user_problem_status", ["user_id"], unique=False)
    op.create_index("ix_user_problem_status_problem_id", "user_problem_status", ["problem_id"], unique=False)

    op.create_table(
        "submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("problem_id", sa.Integer(), sa.ForeignKey("problems.id", ondelete="CASCADE"), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("language", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("runtime", sa.Integer(), nullable=True),
        sa.Column("memory", sa.Integer(), nullable=True),
        sa.Column("test_case_results", sa.JSON(), nullable=False),
        sa.Column("compile_output", sa.Text(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"], unique=False)
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"], unique=False)
    op.create_index("ix_submissions_problem_id", "submissions", ["problem_id"], unique=False)

    op.create_table(
        "donated_domains",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("domain_name", sa.String(length=255), nullable=False, unique=True),
        sa.Column("zone_id", sa.String(length=64), nullable=False),
        sa.Column("api_token", sa.String(length=255), nullable=False),
        sa.Column("donor_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_donated_domains_id", "donated_domains", ["id"], unique=False)
    op.create_index("ix_donated_domains_donor_user_id", "donated_domains", ["donor_user_id"], unique=False)

    op.create_table(
        "pages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("subdomain", sa.String(length=63), nullable=False),
        sa.Column("domain", sa.String(length=255), nullable=False),
        sa.Column("full_domain", sa.String(length=320), nullable=False),
        sa.Column("github_repo", sa.String(length=255), nullable=False),
        sa.Column("file_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("repo_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "donated_domain_id",
            sa.Integer(),
            sa.ForeignKey("donated_domains.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_using_donated_domain", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="creating"),
        sa.Column("deployment_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("github_pages_url", sa.String(length=500), nullable=True),
        sa.Column("custom_domain_url", sa.String(length=500), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("page_views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("subdomain", "domain", name="uq_pages_subdomain_domain"),
    )
    op.create_index("ix_pages_id", "pages", ["id"], unique=False)
    op.create_index("ix_pages_user_id", "pages", ["user_id"], unique=False)
    op.create_index("ix_pages_donated_domain_id", "pages", ["donated_domain_id"], unique=False)

    op.create_table(
        "page_deployments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("page_id", sa.Integer(), sa.ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("file_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_page_deployments_id", "page_deployments", ["id"], unique=False)
    op.create_index("ix_page_deployments_page_id", "page_deployments", ["page_id"], unique=False)

    op.create_table(
        "donated_subdomain_reservations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "donated_domain_id",
            sa.Integer(),
            sa.ForeignKey("donated_domains.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("page_id", sa.Integer(), sa.ForeignKey("pages.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subdomain", sa.String(length=63), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("donated_domain_id", "subdomain", name="uq_donated_reservations_domain_subdomain"),
    )
    op.create_index(
        "ix_donated_subdomain_reservations_id", "donated_subdomain_reservations", ["id"], unique=False
    )
    op.create_index(
        "ix_donated_subdomain_reservations_donated_domain_id",
        "donated_subdomain_reservations",
        ["donated_domain_id"],
        unique=False,
    )
    op.create_index(
        "ix_donated_subdomain_reservations_page_id", "donated_subdomain_reservations", ["page_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("donated_subdomain_reservations")
    op.drop_table("page_deployments")
    op.drop_table("pages")
    op.drop_table("donated_domains")
    op.drop_table("submissions")
    op.drop_table("user_problem_status")
    op.drop_table("problem_test_cases")
    op.drop_table("problems")
    op.drop_table("users")
