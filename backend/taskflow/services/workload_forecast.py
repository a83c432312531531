"""AI workload forecasts from workload metrics and the open task pipeline."""

from datetime import date, timedelta
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.ai.exceptions import AIError
from taskflow.ai.forecast import (
    DEFAULT_DAYS_AHEAD,
    fallback_forecast,
    parse_forecast,
    summarize_metrics,
    summarize_pipeline,
)
from taskflow.ai.service import AIService
from taskflow.config import Settings, get_settings
from taskflow.db.repository import Repository
from taskflow.models.dashboard import WorkloadForecast, WorkloadMetric
from taskflow.models.task import Task
from taskflow.models.workspace import WorkspaceMember

logger = structlog.get_logger()

HISTORY_DAYS = 30
OPEN_STATUSES = ("todo", "in-progress")


class WorkloadForecaster:
    """Forecasts daily workload for a workspace, with a default fallback forecast."""

    def __init__(
        self,
        db: AsyncSession,
        ai_service: Optional[AIService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.ai = ai_service or AIService(self.settings)
        self.forecasts = Repository(db, WorkloadForecast)

    async def forecast(
        self,
        workspace_id: UUID,
        user_id: Optional[UUID] = None,
        days_ahead: int = DEFAULT_DAYS_AHEAD,
        forecast_type: str = "daily",
        today: Optional[date] = None,
    ) -> dict[str, Any]:
        """Forecast, store a ``workload_forecasts`` row and return the response document."""
        today = today or date.today()
        metrics = await self._load_metrics(workspace_id, today)
        tasks = await self._load_open_tasks(workspace_id)
        team_size = await self._team_size(workspace_id)

        method = "ai_analysis"
        try:
            response = await self.ai.run_template(
                "workload_forecast",
                {
                    "team_size": team_size,
                    "days_ahead": days_ahead,
                    "forecast_type": forecast_type,
                    "today": today.isoformat(),
                    "metrics_analysis": summarize_metrics(metrics),
                    "tasks_analysis": summarize_pipeline(tasks, today),
                },
                temperature=self.settings.forecast_temperature,
            )
            forecast = parse_forecast(response.content, days_ahead, today)
        except AIError as e:
            logger.warning("workload_forecast_fallback", workspace_id=str(workspace_id), error=e.message)
            forecast = fallback_forecast(days_ahead, today)
            method = "fallback"

        saved = await self.forecasts.create(
            workspace_id=workspace_id,
            user_id=user_id,
            forecast_date=today + timedelta(days=days_ahead),
            predicted_workload=forecast["predicted_workload"],
            confidence_score=forecast["confidence_score"],
            recommendations=forecast["recommendations"],
            forecast_type=forecast_type,
        )
        logger.info(
            "workload_forecast_saved",
            forecast_id=str(saved.id),
            predicted_workload=forecast["predicted_workload"],
            method=method,
        )

        return {
            "success": True,
            "forecast": saved.to_dict(),
            "daily_breakdown": forecast["daily_breakdown"] or None,
            "metadata": {
                "metrics_analyzed": len(metrics),
                "tasks_analyzed": len(tasks),
                "team_size": team_size,
                "forecast_horizon": f"{days_ahead} days",
                "forecast_method": method,
            },
        }

    async def _load_metrics(self, workspace_id: UUID, today: date) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(WorkloadMetric)
            .where(
                WorkloadMetric.workspace_id == workspace_id,
                WorkloadMetric.metric_date >= today - timedelta(days=HISTORY_DAYS),
            )
            .order_by(WorkloadMetric.metric_date)
        )
        return [
            {
                "date": m.metric_date.isoformat(),
                "task_count": m.task_count,
                "completed_tasks": m.completed_tasks,
                "hours_worked": m.hours_worked,
                "productivity_score": m.productivity_score,
            }
            for m in result.scalars().all()
        ]

    async def _load_open_tasks(self, workspace_id: UUID) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(
                Task.id,
                Task.title,
                Task.status,
                Task.priority,
                Task.due_date,
                Task.estimated_hours,
                Task.complexity,
            )
            .where(Task.workspace_id == workspace_id, Task.status.in_(OPEN_STATUSES))
            .order_by(Task.due_date.asc().nulls_last())
        )
        return [dict(row._mapping) for row in result.all()]

    async def _team_size(self, workspace_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count())
            .select_from(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.status == "active")
        )
        return int(result.scalar_one() or 0) or 1
