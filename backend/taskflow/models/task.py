"""Task, dependency and recurring pattern models."""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow.db.base import Base, BaseModel, CreatedAtMixin, UUIDMixin

if TYPE_CHECKING:
    from taskflow.models.user import Profile

TASK_STATUSES = ("todo", "in-progress", "done")
TASK_PRIORITIES = ("High", "Medium", "Low")
DEPENDENCY_TYPES = ("finish_to_start", "start_to_start", "finish_to_finish", "start_to_finish")
RECURRENCE_TYPES = ("daily", "weekly", "monthly", "yearly", "custom")


class Task(BaseModel):
    """Unit of work inside a workspace, optionally within a project."""

    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="todo"
    )  # todo, in-progress, done
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default="Medium"
    )  # High, Medium, Low

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    assignee_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Timeline
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    estimated_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    complexity: Mapped[str | None] = mapped_column(
        String(20), nullable=True
    )  # low, medium, high, very_high

    # Ordering within a board column
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    blocked_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, server_default="{}", default=list
    )

    # Set on tasks generated from a recurring pattern
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurring_pattern_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("recurring_task_patterns.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    assignee: Mapped["Profile | None"] = relationship(
        "Profile", foreign_keys=[assignee_id], lazy="joined"
    )

    @property
    def assignee_name(self) -> str | None:
        if self.assignee is None:
            return None
        return self.assignee.display_name or self.assignee.email

    def __repr__(self) -> str:
        return f"<Task {self.title[:40]} ({self.status})>"


class TaskDependency(Base, UUIDMixin, CreatedAtMixin):
    """Ordering constraint between two tasks."""

    __tablename__ = "task_dependencies"
    __table_args__ = (
        UniqueConstraint("predecessor_id", "successor_id", name="uq_task_dependency"),
        CheckConstraint("predecessor_id <> successor_id", name="ck_task_dependency_not_self"),
    )

    predecessor_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    successor_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    dependency_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default="finish_to_start"
    )
    lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<TaskDependency {self.predecessor_id} -> {self.successor_id}>"


class RecurringTaskPattern(BaseModel):
    """Rule that generates concrete task rows on a schedule."""

    __tablename__ = "recurring_task_patterns"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    template_task_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL", use_alter=True),
        nullable=True,
    )

    recurrence_type: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # daily, weekly, monthly, yearly, custom
    interval_value: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    days_of_week: Mapped[list[int] | None] = mapped_column(
        ARRAY(Integer), nullable=True
    )  # 0 = Sunday
    day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_last_day_of_month: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    month_of_year: Mapped[int | None] = mapped_column(Integer, nullable=True)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    max_occurrences: Mapped[int | None] = mapped_column(Integer, nullable=True)
    generate_days_ahead: Mapped[int] = mapped_column(Integer, nullable=False, default=7)

    auto_assign: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_assign_to: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_by: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    template_task: Mapped["Task | None"] = relationship(
        "Task", foreign_keys=[template_task_id], lazy="joined"
    )

    def __repr__(self) -> str:
        return f"<RecurringTaskPattern {self.name} ({self.recurrence_type})>"


class RecurringTaskInstance(Base, UUIDMixin, CreatedAtMixin):
    """Record that a pattern produced a task for a scheduled date."""

    __tablename__ = "recurring_task_instances"
    __table_args__ = (
        UniqueConstraint("pattern_id", "scheduled_date", name="uq_recurring_instance_date"),
    )

    pattern_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("recurring_task_patterns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="generated"
    )  # generated, skipped

    def __repr__(self) -> str:
        return f"<RecurringTaskInstance {self.pattern_id} on {self.scheduled_date}>"
