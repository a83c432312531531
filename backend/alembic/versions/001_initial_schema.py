"""Initial schema: profiles, workspaces, tasks, comments, mentions, AI and dashboard tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _fk(name: str, target: str, nullable: bool = False, ondelete: str = "CASCADE") -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _score(name: str, nullable: bool = False, default: str | None = None) -> sa.Column:
    return sa.Column(name, sa.Numeric(3, 2), nullable=nullable, server_default=default)


def upgrade() -> None:
    # Profiles
    op.create_table(
        "profiles",
        _id(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(2048), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"], unique=True)

    # Workspaces and membership
    op.create_table(
        "workspaces",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("owner_id", "profiles.id"),
        sa.Column("settings", postgresql.JSONB(), nullable=False, server_default="{}"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workspaces_owner_id", "workspaces", ["owner_id"])

    op.create_table(
        "workspace_members",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("user_id", "profiles.id"),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("permissions", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"])
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"])

    op.create_table(
        "workspace_invitations",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("permissions", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("token", sa.String(64), nullable=False),
        _fk("invited_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_workspace_invitations_workspace_id", "workspace_invitations", ["workspace_id"]
    )
    op.create_index("ix_workspace_invitations_email", "workspace_invitations", ["email"])
    op.create_index(
        "ix_workspace_invitations_token", "workspace_invitations", ["token"], unique=True
    )

    op.create_table(
        "projects",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="active"),
        sa.Column("color", sa.String(20), nullable=True),
        _fk("created_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_workspace_id", "projects", ["workspace_id"])

    # Tasks (recurring_pattern_id FK is added once the patterns table exists)
    op.create_table(
        "tasks",
        _id(),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="todo"),
        sa.Column("priority", sa.String(10), nullable=False, server_default="Medium"),
        _fk("workspace_id", "workspaces.id"),
        _fk("project_id", "projects.id", nullable=True, ondelete="SET NULL"),
        _fk("created_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        _fk("assignee_id", "profiles.id", nullable=True, ondelete="SET NULL"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("complexity", sa.String(20), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_blocked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("blocked_reason", sa.Text(), nullable=True),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurring_pattern_id", postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_workspace_id", "tasks", ["workspace_id"])
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])
    op.create_index("ix_tasks_recurring_pattern_id", "tasks", ["recurring_pattern_id"])

    op.create_table(
        "task_dependencies",
        _id(),
        _fk("predecessor_id", "tasks.id"),
        _fk("successor_id", "tasks.id"),
        sa.Column(
            "dependency_type", sa.String(30), nullable=False, server_default="finish_to_start"
        ),
        sa.Column("lag_days", sa.Integer(), nullable=False, server_default="0"),
        _fk("created_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("predecessor_id", "successor_id", name="uq_task_dependency"),
        sa.CheckConstraint("predecessor_id <> successor_id", name="ck_task_dependency_not_self"),
    )
    op.create_index("ix_task_dependencies_predecessor_id", "task_dependencies", ["predecessor_id"])
    op.create_index("ix_task_dependencies_successor_id", "task_dependencies", ["successor_id"])

    # Recurring tasks
    op.create_table(
        "recurring_task_patterns",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _fk("template_task_id", "tasks.id", nullable=True, ondelete="SET NULL"),
        sa.Column("recurrence_type", sa.String(20), nullable=False),
        sa.Column("interval_value", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days_of_week", postgresql.ARRAY(sa.Integer()), nullable=True),
        sa.Column("day_of_month", sa.Integer(), nullable=True),
        sa.Column(
            "is_last_day_of_month", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("month_of_year", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("max_occurrences", sa.Integer(), nullable=True),
        sa.Column("generate_days_ahead", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("auto_assign", sa.Boolean(), nullable=False, server_default=sa.false()),
        _fk("auto_assign_to", "profiles.id", nullable=True, ondelete="SET NULL"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _fk("created_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        sa.Column("last_generated_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_recurring_task_patterns_workspace_id", "recurring_task_patterns", ["workspace_id"]
    )
    op.create_foreign_key(
        "fk_tasks_recurring_pattern_id",
        "tasks",
        "recurring_task_patterns",
        ["recurring_pattern_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "recurring_task_instances",
        _id(),
        _fk("pattern_id", "recurring_task_patterns.id"),
        _fk("task_id", "tasks.id", nullable=True, ondelete="SET NULL"),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="generated"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pattern_id", "scheduled_date", name="uq_recurring_instance_date"),
    )
    op.create_index(
        "ix_recurring_task_instances_pattern_id", "recurring_task_instances", ["pattern_id"]
    )

    # Comments, reactions and mentions
    op.create_table(
        "comments",
        _id(),
        sa.Column("content", sa.Text(), nullable=False),
        _fk("author_id", "profiles.id"),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("entity_type", sa.String(30), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        _fk("parent_id", "comments.id", nullable=True),
        sa.Column("thread_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("mentions", postgresql.JSONB(), nullable=False, server_default="[]"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "thread_level >= 0 AND thread_level <= 5", name="ck_comment_thread_level"
        ),
    )
    op.create_index("ix_comments_author_id", "comments", ["author_id"])
    op.create_index("ix_comments_workspace_id", "comments", ["workspace_id"])
    op.create_index("ix_comments_entity_id", "comments", ["entity_id"])
    op.create_index("ix_comments_parent_id", "comments", ["parent_id"])

    op.create_table(
        "comment_reactions",
        _id(),
        _fk("comment_id", "comments.id"),
        _fk("user_id", "profiles.id"),
        sa.Column("reaction_type", sa.String(20), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("comment_id", "user_id", name="uq_comment_reaction_user"),
    )
    op.create_index("ix_comment_reactions_comment_id", "comment_reactions", ["comment_id"])

    op.create_table(
        "mentions",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("mentioned_user_id", "profiles.id"),
        _fk("mentioner_user_id", "profiles.id"),
        sa.Column("entity_type", sa.String(30), nullable=False),
        sa.Column("entity_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content_excerpt", sa.Text(), nullable=True),
        sa.Column("context_url", sa.Text(), nullable=True),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_mentions_workspace_id", "mentions", ["workspace_id"])
    op.create_index("ix_mentions_mentioned_user_id", "mentions", ["mentioned_user_id"])
    op.create_index("ix_mentions_entity_id", "mentions", ["entity_id"])
    op.create_index("ix_mentions_is_read", "mentions", ["is_read"])

    # Delay-risk analysis
    op.create_table(
        "task_risk_assessments",
        _id(),
        _fk("task_id", "tasks.id"),
        _fk("workspace_id", "workspaces.id"),
        _score("risk_score"),
        _score("delay_probability"),
        sa.Column("predicted_delay_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("risk_factors", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("recommendations", postgresql.JSONB(), nullable=False, server_default="{}"),
        _score("confidence_level"),
        sa.Column(
            "assessment_type", sa.String(50), nullable=False, server_default="ai_generated"
        ),
        sa.Column("model_version", sa.String(50), nullable=False, server_default="1.0"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_risk_assessments_task_id", "task_risk_assessments", ["task_id"])
    op.create_index(
        "ix_task_risk_assessments_workspace_id", "task_risk_assessments", ["workspace_id"]
    )

    op.create_table(
        "risk_alerts",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        _fk("task_id", "tasks.id", nullable=True),
        _fk("project_id", "projects.id", nullable=True),
        sa.Column("alert_type", sa.String(50), nullable=False),
        sa.Column("severity_level", sa.String(20), nullable=False),
        sa.Column("alert_message", sa.Text(), nullable=False),
        sa.Column("alert_data", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        _fk("resolved_by", "profiles.id", nullable=True, ondelete="SET NULL"),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_risk_alerts_workspace_id", "risk_alerts", ["workspace_id"])

    op.create_table(
        "delay_risk_patterns",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("pattern_name", sa.String(255), nullable=False),
        sa.Column("pattern_type", sa.String(50), nullable=False),
        sa.Column("pattern_data", postgresql.JSONB(), nullable=False, server_default="{}"),
        _score("frequency_score"),
        _score("impact_score"),
        _score("confidence_score"),
        sa.Column("examples", postgresql.JSONB(), nullable=False, server_default="[]"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_delay_risk_patterns_workspace_id", "delay_risk_patterns", ["workspace_id"])

    # Time estimation
    op.create_table(
        "task_estimations",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        _fk("task_id", "tasks.id", nullable=True, ondelete="SET NULL"),
        sa.Column("task_title", sa.Text(), nullable=False),
        sa.Column("task_description", sa.Text(), nullable=True),
        sa.Column("task_priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("task_complexity", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("estimated_hours", sa.Numeric(5, 2), nullable=False),
        _score("confidence_score", default="0.5"),
        sa.Column("estimation_factors", postgresql.JSONB(), nullable=True),
        sa.Column("similar_tasks_analyzed", sa.Integer(), nullable=False, server_default="0"),
        _score("historical_accuracy", nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_task_estimations_workspace_id", "task_estimations", ["workspace_id"])
    op.create_index("ix_task_estimations_user_id", "task_estimations", ["user_id"])

    op.create_table(
        "task_completion_history",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        _fk("task_id", "tasks.id", nullable=True, ondelete="SET NULL"),
        sa.Column("task_title", sa.Text(), nullable=False),
        sa.Column("task_description", sa.Text(), nullable=True),
        sa.Column("task_priority", sa.String(20), nullable=True),
        sa.Column("task_complexity", sa.String(20), nullable=True),
        sa.Column("estimated_hours", sa.Numeric(5, 2), nullable=True),
        sa.Column("actual_hours", sa.Numeric(5, 2), nullable=False),
        sa.Column("completion_date", sa.Date(), nullable=False),
        _score("accuracy_score", nullable=True),
        sa.Column("factors", postgresql.JSONB(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_task_completion_history_workspace_id", "task_completion_history", ["workspace_id"]
    )
    op.create_index("ix_task_completion_history_user_id", "task_completion_history", ["user_id"])
    op.create_index(
        "ix_task_completion_history_completion_date",
        "task_completion_history",
        ["completion_date"],
    )

    # Dashboard
    op.create_table(
        "dashboard_widgets",
        _id(),
        _fk("user_id", "profiles.id"),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("widget_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("position_x", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("position_y", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("width", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("height", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("config", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_dashboard_widgets_user_id", "dashboard_widgets", ["user_id"])
    op.create_index("ix_dashboard_widgets_workspace_id", "dashboard_widgets", ["workspace_id"])

    op.create_table(
        "user_preferences",
        _id(),
        _fk("user_id", "profiles.id"),
        sa.Column("theme", sa.String(20), nullable=False, server_default="system"),
        sa.Column("default_view", sa.String(20), nullable=False, server_default="board"),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="UTC"),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "mention_notifications", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column("dashboard_layout", postgresql.JSONB(), nullable=False, server_default="{}"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="uq_user_preferences_user_id"),
    )

    op.create_table(
        "workload_metrics",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("task_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_tasks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("hours_worked", sa.Numeric(5, 2), nullable=False, server_default="0"),
        _score("productivity_score", default="0"),
        sa.Column("date", sa.Date(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("workspace_id", "user_id", "date", name="uq_workload_metric_day"),
    )
    op.create_index("ix_workload_metrics_workspace_id", "workload_metrics", ["workspace_id"])

    op.create_table(
        "workload_forecasts",
        _id(),
        _fk("workspace_id", "workspaces.id"),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("forecast_date", sa.Date(), nullable=False),
        sa.Column("predicted_workload", sa.Numeric(5, 2), nullable=False),
        _score("confidence_score", default="0.5"),
        sa.Column("recommendations", postgresql.JSONB(), nullable=True),
        sa.Column("forecast_type", sa.String(50), nullable=False, server_default="daily"),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_workload_forecasts_workspace_id", "workload_forecasts", ["workspace_id"])


def downgrade() -> None:
    op.drop_table("workload_forecasts")
    op.drop_table("workload_metrics")
    op.drop_table("user_preferences")
    op.drop_table("dashboard_widgets")
    op.drop_table("task_completion_history")
    op.drop_table("task_estimations")
    op.drop_table("delay_risk_patterns")
    op.drop_table("risk_alerts")
    op.drop_table("task_risk_assessments")
    op.drop_table("mentions")
    op.drop_table("comment_reactions")
    op.drop_table("comments")
    op.drop_table("recurring_task_instances")
    op.drop_constraint("fk_tasks_recurring_pattern_id", "tasks", type_="foreignkey")
    op.drop_table("recurring_task_patterns")
    op.drop_table("task_dependencies")
    op.drop_table("tasks")
    op.drop_table("projects")
    op.drop_table("workspace_invitations")
    op.drop_table("workspace_members")
    op.drop_table("workspaces")
    op.drop_table("profiles")
