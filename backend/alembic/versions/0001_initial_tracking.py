"""Initial time tracking schema: projects, assignments, sessions, breaks, active pointer.

Revision ID: 0001_initial_tracking
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_tracking"
down_revision = None
branch_labels = None
depends_on = None


SESSION_TYPES = ("WORK", "BREAK", "LUNCH", "BRB")
BREAK_TYPES = ("BREAK", "LUNCH", "BRB")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "professional_projects",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("base_project_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=True),
        sa.Column("hourly_rate", sa.Float(), nullable=True),
        sa.Column("total_hours", sa.Float(), nullable=False),
        sa.Column("total_salary_cost", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_professional_projects"),
    )
    op.create_index("ix_professional_projects_id", "professional_projects", ["id"], unique=False)
    op.create_index(
        "ix_professional_projects_base_project_id",
        "professional_projects",
        ["base_project_id"],
        unique=True,
    )

    op.create_table(
        "project_assignments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("parent_project_id", sa.Integer(), nullable=False),
        sa.Column("worker_user_id", sa.String(length=64), nullable=False),
        sa.Column("cost_per_hour", sa.Float(), nullable=False),
        sa.Column("hours_dedicated", sa.Float(), nullable=False),
        sa.Column("total_cost", sa.Float(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["parent_project_id"],
            ["professional_projects.id"],
            name="fk_project_assignments_parent_project_id_professional_projects",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_project_assignments"),
    )
    op.create_index("ix_project_assignments_id", "project_assignments", ["id"], unique=False)
    op.create_index(
        "ix_project_assignments_parent_project_id",
        "project_assignments",
        ["parent_project_id"],
        unique=False,
    )
    op.create_index("ix_project_assignments_worker_user_id", "project_assignments", ["worker_user_id"], unique=False)
    op.create_index("ix_project_assignments_is_active", "project_assignments", ["is_active"], unique=False)

    op.create_table(
        "time_sessions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("project_assignment_id", sa.Integer(), nullable=True),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("session_type", sa.Enum(*SESSION_TYPES, name="session_type"), nullable=False),
        sa.Column("hourly_rate", sa.Float(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("session_cost", sa.Float(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ["project_id"],
            ["professional_projects.id"],
            name="fk_time_sessions_project_id_professional_projects",
        ),
        sa.ForeignKeyConstraint(
            ["project_assignment_id"],
            ["project_assignments.id"],
            name="fk_time_sessions_project_assignment_id_project_assignments",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_time_sessions"),
    )
    op.create_index("ix_time_sessions_id", "time_sessions", ["id"], unique=False)
    op.create_index("ix_time_sessions_project_id", "time_sessions", ["project_id"], unique=False)
    op.create_index("ix_time_sessions_user_id", "time_sessions", ["user_id"], unique=False)
    op.create_index("ix_time_sessions_is_active", "time_sessions", ["is_active"], unique=False)
    op.create_index("ix_time_sessions_user_start", "time_sessions", ["user_id", "start_time"], unique=False)

    op.create_table(
        "session_breaks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("break_type", sa.Enum(*BREAK_TYPES, name="break_type"), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["session_id"],
            ["time_sessions.id"],
            name="fk_session_breaks_session_id_time_sessions",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_session_breaks"),
    )
    op.create_index("ix_session_breaks_id", "session_breaks", ["id"], unique=False)
    op.create_index("ix_session_breaks_session_id", "session_breaks", ["session_id"], unique=False)

    op.create_table(
        "user_active_sessions",
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("session_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_on_break", sa.Boolean(), nullable=False),
        sa.Column("current_break_id", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["session_id"],
            ["time_sessions.id"],
            name="fk_user_active_sessions_session_id_time_sessions",
        ),
        sa.ForeignKeyConstraint(
            ["current_break_id"],
            ["session_breaks.id"],
            name="fk_user_active_sessions_current_break_id_session_breaks",
        ),
        sa.PrimaryKeyConstraint("user_id", name="pk_user_active_sessions"),
        sa.UniqueConstraint("session_id", name="uq_user_active_sessions_session_id"),
    )


def downgrade() -> None:
    op.drop_table("user_active_sessions")

    op.drop_index("ix_session_breaks_session_id", table_name="session_breaks")
    op.drop_index("ix_session_breaks_id", table_name="session_breaks")
    op.drop_table("session_breaks")

    op.drop_index("ix_time_sessions_user_start", table_name="time_sessions")
    op.drop_index("ix_time_sessions_is_active", table_name="time_sessions")
    op.drop_index("ix_time_sessions_user_id", table_name="time_sessions")
    op.drop_index("ix_time_sessions_project_id", table_name="time_sessions")
    op.drop_index("ix_time_sessions_id", table_name="time_sessions")
    op.drop_table("time_sessions")

    op.drop_index("ix_project_assignments_is_active", table_name="project_assignments")
    op.drop_index("ix_project_assignments_worker_user_id", table_name="project_assignments")
    op.drop_index("ix_project_assignments_parent_project_id", table_name="project_assignments")
    op.drop_index("ix_project_assignments_id", table_name="project_assignments")
    op.drop_table("project_assignments")

    op.drop_index("ix_professional_projects_base_project_id", table_name="professional_projects")
    op.drop_index("ix_professional_projects_id", table_name="professional_projects")
    op.drop_table("professional_projects")

    if op.get_bind().dialect.name != "sqlite":
        sa.Enum(name="break_type").drop(op.get_bind(), checkfirst=True)
        sa.Enum(name="session_type").drop(op.get_bind(), checkfirst=True)
