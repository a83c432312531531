"""AI task time estimation and estimate accuracy tracking."""

from datetime import date
from typing import Any, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.ai.estimation import (
    accuracy_metrics,
    accuracy_score,
    fallback_estimation,
    parse_estimation,
    summarize_current_tasks,
    summarize_history,
)
from taskflow.ai.exceptions import AIError
from taskflow.ai.service import AIService
from taskflow.config import Settings, get_settings
from taskflow.db.repository import Repository
from taskflow.exceptions import InvalidRequestError, NotFoundError
from taskflow.models.ai import TaskCompletionHistory, TaskEstimation
from taskflow.models.task import Task

logger = structlog.get_logger()

HISTORY_LIMIT = 50
CURRENT_TASKS_LIMIT = 20


class TaskTimeEstimator:
    """Estimates task effort from workspace history, with a rule-based fallback."""

    def __init__(
        self,
        db: AsyncSession,
        ai_service: Optional[AIService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.ai = ai_service or AIService(self.settings)
        self.estimations = Repository(db, TaskEstimation)
        self.history = Repository(db, TaskCompletionHistory)

    async def estimate(
        self,
        workspace_id: UUID,
        task_title: str,
        user_id: Optional[UUID] = None,
        task_id: Optional[UUID] = None,
        task_description: str = "",
        task_priority: str = "medium",
        task_complexity: str = "medium",
        project_type: str = "",
        similar_tasks: bool = True,
    ) -> dict[str, Any]:
        """Estimate one task, store the estimate and return the response document."""
        history = await self._load_history(workspace_id) if similar_tasks else []
        current = await self._load_current_tasks(workspace_id)

        method = "ai_analysis"
        try:
            response = await self.ai.run_template(
                "task_time_estimate",
                {
                    "task_title": task_title,
                    "task_description": task_description,
                    "task_priority": task_priority,
                    "task_complexity": task_complexity,
                    "project_type": project_type,
                    "historical_analysis": summarize_history(history),
                    "current_context": summarize_current_tasks(current),
                },
                temperature=self.settings.estimation_temperature,
            )
            estimation = parse_estimation(response.content)
        except AIError as e:
            logger.warning("time_estimate_fallback", workspace_id=str(workspace_id), error=e.message)
            estimation = fallback_estimation(task_complexity, task_priority, len(history))
            method = "fallback"

        saved = await self.estimations.create(
            workspace_id=workspace_id,
            user_id=user_id,
            task_id=task_id,
            task_title=task_title,
            task_description=task_description or None,
            task_priority=task_priority,
            task_complexity=task_complexity,
            estimated_hours=estimation["estimated_hours"],
            confidence_score=estimation["confidence_score"],
            estimation_factors=estimation["estimation_factors"],
            similar_tasks_analyzed=estimation["similar_tasks_analyzed"],
        )
        logger.info(
            "time_estimate_saved",
            estimation_id=str(saved.id),
            estimated_hours=estimation["estimated_hours"],
            method=method,
        )

        return {
            "success": True,
            "estimation": saved.to_dict(),
            "time_breakdown": estimation["time_breakdown"],
            "recommendations": estimation["recommendations"],
            "metadata": {
                "similar_tasks_found": len(history),
                "current_tasks_analyzed": len(current),
                "ai_model": self.settings.gemini_model,
                "estimation_method": method,
            },
        }

    async def _load_history(self, workspace_id: UUID) -> list[dict[str, Any]]:
        rows = await self.history.list(
            order_by=(TaskCompletionHistory.completion_date.desc(),),
            limit=HISTORY_LIMIT,
            workspace_id=workspace_id,
        )
        return [row.to_dict() for row in rows]

    async def _load_current_tasks(self, workspace_id: UUID) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(
                Task.title, Task.description, Task.priority, Task.status, Task.estimated_hours
            )
            .where(Task.workspace_id == workspace_id)
            .limit(CURRENT_TASKS_LIMIT)
        )
        return [dict(row._mapping) for row in result.all()]

    # =========================================================================
    # Estimations and completion history
    # =========================================================================

    async def list_estimations(
        self, workspace_id: UUID, task_id: Optional[UUID] = None
    ) -> list[TaskEstimation]:
        filters: dict[str, Any] = {"workspace_id": workspace_id}
        if task_id is not None:
            filters["task_id"] = task_id
        return await self.estimations.list(
            order_by=(TaskEstimation.created_at.desc(),), **filters
        )

    async def delete_estimation(self, workspace_id: UUID, estimation_id: UUID) -> None:
        estimation = await self.estimations.get_by(id=estimation_id, workspace_id=workspace_id)
        if estimation is None:
            raise NotFoundError("Estimation")
        await self.estimations.delete(estimation)

    async def record_completion(
        self,
        workspace_id: UUID,
        task_title: str,
        actual_hours: float,
        user_id: Optional[UUID] = None,
        task_id: Optional[UUID] = None,
        task_description: Optional[str] = None,
        task_priority: Optional[str] = None,
        task_complexity: Optional[str] = None,
        estimated_hours: Optional[float] = None,
        completion_date: Optional[date] = None,
        factors: Optional[dict] = None,
    ) -> TaskCompletionHistory:
        """Store how long a task actually took, scored against its estimate."""
        if actual_hours <= 0:
            raise InvalidRequestError("Actual hours must be greater than 0")

        row = await self.history.create(
            workspace_id=workspace_id,
            user_id=user_id,
            task_id=task_id,
            task_title=task_title,
            task_description=task_description or None,
            task_priority=task_priority,
            task_complexity=task_complexity,
            estimated_hours=estimated_hours or None,
            actual_hours=actual_hours,
            completion_date=completion_date or date.today(),
            accuracy_score=accuracy_score(estimated_hours, actual_hours),
            factors=factors,
        )
        logger.info(
            "task_completion_recorded",
            workspace_id=str(workspace_id),
            actual_hours=actual_hours,
            accuracy_score=row.accuracy_score,
        )
        return row

    async def list_completions(self, workspace_id: UUID) -> list[TaskCompletionHistory]:
        return await self.history.list(
            order_by=(TaskCompletionHistory.completion_date.desc(),),
            limit=HISTORY_LIMIT,
            workspace_id=workspace_id,
        )

    async def get_accuracy_metrics(self, workspace_id: UUID) -> dict[str, Any]:
        rows = await self.list_completions(workspace_id)
        return accuracy_metrics([row.to_dict() for row in rows])
