"""Dashboard layout, user preference and workload models."""

from datetime import date
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from taskflow.db.base import BaseModel


class DashboardWidget(BaseModel):
    """A widget placed on a user's workspace dashboard grid."""

    __tablename__ = "dashboard_widgets"

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    widget_type: Mapped[str] = mapped_column(
        String(50), nullable=False
    )  # task_summary, upcoming_deadlines, recent_activity, team_workload, risk_alerts
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    position_x: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position_y: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    width: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    height: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    config: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class UserPreferences(BaseModel):
    """Per-user UI and notification preferences."""

    __tablename__ = "user_preferences"

    user_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    theme: Mapped[str] = mapped_column(String(20), nullable=False, default="system")
    default_view: Mapped[str] = mapped_column(
        String(20), nullable=False, default="board"
    )  # board, list, calendar, timeline
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    email_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    mention_notifications: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    dashboard_layout: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)


class WorkloadMetric(BaseModel):
    """Daily workload snapshot for a member."""

    __tablename__ = "workload_metrics"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", "date", name="uq_workload_metric_day"),
    )

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    task_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_tasks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    hours_worked: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    productivity_score: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), nullable=False, default=0)
    metric_date: Mapped[date] = mapped_column("date", Date, nullable=False)


class WorkloadForecast(BaseModel):
    """Predicted workload for a member on a future date."""

    __tablename__ = "workload_forecasts"

    workspace_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    forecast_date: Mapped[date] = mapped_column(Date, nullable=False)
    predicted_workload: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    confidence_score: Mapped[float] = mapped_column(Numeric(3, 2, asdecimal=False), nullable=False, default=0.5)
    recommendations: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    forecast_type: Mapped[str] = mapped_column(String(50), nullable=False, default="daily")
