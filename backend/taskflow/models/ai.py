"""Persisted outputs of the delay-risk and time-estimation functions."""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.db.base import Base, BaseModel, CreatedAtMixin, UUIDMixin


def _score() -> Numeric:
    # 0-1 scale with two decimals, read back as float
    return Numeric(3, 2, asdecimal=False)


class TaskRiskAssessment(BaseModel):
    """Risk score for one task, generated by the model or the fallback formula."""

    __tablename__ = "task_risk_assessments"

    task_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    risk_score: Mapped[float] = mapped_column(_score(), nullable=False)
    delay_probability: Mapped[float] = mapped_column(_score(), nullable=False)
    predicted_delay_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    risk_factors: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    recommendations: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    confidence_level: Mapped[float] = mapped_column(_score(), nullable=False)
    assessment_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="ai_generated"
    )  # ai_generated, manual, hybrid
    model_version: Mapped[str] = mapped_column(String(50), nullable=False, default="1.0")


class RiskAlert(Base, UUIDMixin, CreatedAtMixin):
    """Notification raised for a high-risk task."""

    __tablename__ = "risk_alerts"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    task_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=True,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )
    alert_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # high_risk, critical_risk, delay_predicted, deadline_risk
    severity_level: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # low, medium, high, critical
    alert_message: Mapped[str] = mapped_column(Text, nullable=False)
    alert_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    is_resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )


class DelayRiskPattern(BaseModel):
    """Recurring delay pattern mined from workspace history."""

    __tablename__ = "delay_risk_patterns"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    pattern_name: Mapped[str] = mapped_column(String(255), nullable=False)
    pattern_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # task_type, user_behavior, timeline, complexity, dependency
    pattern_data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    frequency_score: Mapped[float] = mapped_column(_score(), nullable=False)
    impact_score: Mapped[float] = mapped_column(_score(), nullable=False)
    confidence_score: Mapped[float] = mapped_column(_score(), nullable=False)
    examples: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)


class TaskEstimation(BaseModel):
    """Time estimate produced for a task title and description."""

    __tablename__ = "task_estimations"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True, index=True)
    task_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    task_title: Mapped[str] = mapped_column(Text, nullable=False)
    task_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    task_priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    task_complexity: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    estimated_hours: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    confidence_score: Mapped[float] = mapped_column(_score(), nullable=False, default=0.5)
    estimation_factors: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    similar_tasks_analyzed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    historical_accuracy: Mapped[float | None] = mapped_column(_score(), nullable=True)


class TaskCompletionHistory(Base, UUIDMixin, CreatedAtMixin):
    """Actual effort spent on a finished task, used to calibrate estimates."""

    __tablename__ = "task_completion_history"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True, index=True)
    task_id: Mapped[UUID | None] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    task_title: Mapped[str] = mapped_column(Text, nullable=False)
    task_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    task_priority: Mapped[str | None] = mapped_column(String(20), nullable=True)
    task_complexity: Mapped[str | None] = mapped_column(String(20), nullable=True)
    estimated_hours: Mapped[float | None] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=True)
    actual_hours: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    completion_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    accuracy_score: Mapped[float | None] = mapped_column(_score(), nullable=True)
    factors: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
