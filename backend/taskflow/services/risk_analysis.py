"""AI delay-risk analysis over a workspace's tasks."""

import time
from datetime import date, datetime, timezone
from typing import Any, Optional, Sequence
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.ai.exceptions import AIError
from taskflow.ai.parsing import clamp
from taskflow.ai.risk import (
    RiskThresholds,
    build_alert,
    fallback_assessment,
    parse_pattern_response,
    parse_risk_assessment,
    storable_risk_factors,
)
from taskflow.ai.service import AIService
from taskflow.config import Settings, get_settings
from taskflow.db.base import Base
from taskflow.db.repository import Repository
from taskflow.exceptions import NotFoundError
from taskflow.models.ai import DelayRiskPattern, RiskAlert, TaskRiskAssessment
from taskflow.models.task import Task

logger = structlog.get_logger()

HISTORY_LIMIT = 100
CONFIDENCE_THRESHOLD = 0.7


def task_context(task: Task) -> dict[str, Any]:
    """Task row as the prompt and fallback formula read it."""
    row = task.to_dict()
    row["assignee_name"] = task.assignee_name
    return row


def pattern_context(pattern: DelayRiskPattern) -> dict[str, Any]:
    return pattern.to_dict()


class DelayRiskAnalyzer:
    """Scores tasks for delay risk, raises alerts and mines delay patterns."""

    def __init__(
        self,
        db: AsyncSession,
        ai_service: Optional[AIService] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.ai = ai_service or AIService(self.settings)
        self.thresholds = RiskThresholds(
            alert_risk=self.settings.risk_alert_threshold,
            critical_risk=self.settings.risk_critical_threshold,
            alert_delay=self.settings.delay_alert_threshold,
            high_risk=self.settings.high_risk_threshold,
        )
        self.assessments = Repository(db, TaskRiskAssessment)
        self.alerts = Repository(db, RiskAlert)
        self.patterns = Repository(db, DelayRiskPattern)

    # =========================================================================
    # Analysis
    # =========================================================================

    async def analyze(
        self,
        workspace_id: UUID,
        task_ids: Optional[Sequence[UUID]] = None,
        project_id: Optional[UUID] = None,
        analysis_type: str = "workspace",
        ai_model: Optional[str] = None,
        today: Optional[date] = None,
    ) -> dict[str, Any]:
        """Assess every selected task and return the response document."""
        started = time.perf_counter()
        model = ai_model or self.settings.gemini_model
        today = today or date.today()

        tasks = [task_context(t) for t in await self._load_tasks(workspace_id, task_ids, project_id)]
        historical = [task_context(t) for t in await self._load_history(workspace_id)]
        patterns = [
            pattern_context(p) for p in await self.patterns.list(workspace_id=workspace_id)
        ]

        results = []
        for task in tasks:
            assessment = await self.assess_task(task, historical, patterns, model, today)
            await self._record_assessment(workspace_id, task, assessment, model)
            results.append({"task_id": task["id"], **assessment})

        new_patterns = await self.mine_patterns(tasks, historical, model)
        for pattern in new_patterns:
            await self._save(
                DelayRiskPattern,
                workspace_id=workspace_id,
                pattern_name=str(pattern.get("name") or "unnamed_pattern"),
                pattern_type=str(pattern.get("type") or "task_type"),
                pattern_data=pattern.get("data") if isinstance(pattern.get("data"), dict) else {},
                frequency_score=clamp(pattern.get("frequency"), 0.0, 1.0, 0.0),
                impact_score=clamp(pattern.get("impact"), 0.0, 1.0, 0.0),
                confidence_score=clamp(pattern.get("confidence"), 0.0, 1.0, 0.0),
                examples=pattern.get("examples") if isinstance(pattern.get("examples"), list) else [],
            )

        high_risk = sum(1 for r in results if r["risk_score"] >= self.thresholds.high_risk)
        logger.info(
            "risk_analysis_completed",
            workspace_id=str(workspace_id),
            analysis_type=analysis_type,
            tasks_analyzed=len(results),
            high_risk_tasks=high_risk,
            patterns_identified=len(new_patterns),
        )
        return {
            "success": True,
            "analysis_type": analysis_type,
            "ai_model_used": model,
            "tasks_analyzed": len(results),
            "patterns_identified": len(new_patterns),
            "high_risk_tasks": high_risk,
            "results": results,
            "patterns": new_patterns,
            "analysis_metadata": {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "model_version": model,
                "confidence_threshold": CONFIDENCE_THRESHOLD,
                "processing_time": round((time.perf_counter() - started) * 1000),
            },
        }

    async def assess_task(
        self,
        task: dict[str, Any],
        historical: list[dict[str, Any]],
        patterns: list[dict[str, Any]],
        model: str,
        today: date,
    ) -> dict[str, Any]:
        """Ask the model for an assessment; fall back to the formula on failure."""
        try:
            response = await self.ai.run_template(
                "task_risk_assessment",
                {"task": task, "historical_tasks": historical, "patterns": patterns},
                temperature=self.settings.risk_temperature,
                model=model,
            )
        except AIError as e:
            logger.warning("risk_assessment_fallback", task_id=str(task["id"]), error=e.message)
            return fallback_assessment(task, today)
        return parse_risk_assessment(response.content)

    async def mine_patterns(
        self,
        current: list[dict[str, Any]],
        historical: list[dict[str, Any]],
        model: str,
    ) -> list[dict[str, Any]]:
        """New delay patterns suggested by the model; empty on any failure."""
        try:
            response = await self.ai.run_template(
                "delay_pattern_mining",
                {"current_tasks": current, "historical_tasks": historical},
                temperature=self.settings.risk_temperature,
                model=model,
            )
        except AIError as e:
            logger.warning("pattern_mining_failed", error=e.message)
            return []
        return parse_pattern_response(response.content)

    async def _load_tasks(
        self,
        workspace_id: UUID,
        task_ids: Optional[Sequence[UUID]],
        project_id: Optional[UUID],
    ) -> list[Task]:
        filters: dict[str, Any] = {"workspace_id": workspace_id}
        if task_ids:
            filters["id"] = list(task_ids)
        if project_id:
            filters["project_id"] = project_id
        return await Repository(self.db, Task).list(**filters)

    async def _load_history(self, workspace_id: UUID) -> list[Task]:
        result = await self.db.execute(
            select(Task)
            .where(
                Task.workspace_id == workspace_id,
                Task.status == "done",
                Task.due_date.is_not(None),
            )
            .order_by(Task.created_at.desc())
            .limit(HISTORY_LIMIT)
        )
        return list(result.scalars().all())

    async def _record_assessment(
        self,
        workspace_id: UUID,
        task: dict[str, Any],
        assessment: dict[str, Any],
        model: str,
    ) -> None:
        await self._save(
            TaskRiskAssessment,
            task_id=task["id"],
            workspace_id=workspace_id,
            risk_score=assessment["risk_score"],
            delay_probability=assessment["delay_probability"],
            predicted_delay_days=assessment["predicted_delay_days"],
            risk_factors=storable_risk_factors(
                assessment["risk_factors"], int(time.time() * 1000)
            ),
            recommendations=assessment["recommendations"],
            confidence_level=assessment["confidence_level"],
            assessment_type="ai_generated",
            model_version=model,
        )

        alert = build_alert(task, assessment, self.thresholds)
        if alert is not None:
            await self._save(
                RiskAlert,
                workspace_id=workspace_id,
                task_id=task["id"],
                is_resolved=False,
                **alert,
            )

    async def _save(self, model_cls: type[Base], **values: Any) -> bool:
        """Insert one row in a savepoint; a failure is logged and skipped."""
        try:
            async with self.db.begin_nested():
                await Repository(self.db, model_cls).create(**values)
        except SQLAlchemyError as e:
            logger.error(
                "risk_analysis_persist_failed",
                table=model_cls.__tablename__,
                task_id=str(values.get("task_id")),
                error=str(e),
            )
            return False
        return True

    # =========================================================================
    # Assessments, alerts and patterns
    # =========================================================================

    async def latest_assessments(
        self, workspace_id: UUID, task_id: Optional[UUID] = None
    ) -> list[TaskRiskAssessment]:
        """Most recent assessment per task."""
        query = (
            select(TaskRiskAssessment)
            .where(TaskRiskAssessment.workspace_id == workspace_id)
            .distinct(TaskRiskAssessment.task_id)
            .order_by(TaskRiskAssessment.task_id, TaskRiskAssessment.created_at.desc())
        )
        if task_id is not None:
            query = query.where(TaskRiskAssessment.task_id == task_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_alerts(
        self, workspace_id: UUID, unresolved_only: bool = True
    ) -> list[RiskAlert]:
        filters: dict[str, Any] = {"workspace_id": workspace_id}
        if unresolved_only:
            filters["is_resolved"] = False
        return await self.alerts.list(order_by=(RiskAlert.created_at.desc(),), **filters)

    async def resolve_alert(self, workspace_id: UUID, alert_id: UUID, user_id: UUID) -> RiskAlert:
        alert = await self.alerts.get_by(id=alert_id, workspace_id=workspace_id)
        if alert is None:
            raise NotFoundError("Risk alert")
        alert = await self.alerts.update(
            alert,
            is_resolved=True,
            resolved_at=datetime.now(timezone.utc),
            resolved_by=user_id,
        )
        logger.info("risk_alert_resolved", alert_id=str(alert_id), user_id=str(user_id))
        return alert

    async def list_patterns(self, workspace_id: UUID) -> list[DelayRiskPattern]:
        return await self.patterns.list(
            order_by=(DelayRiskPattern.created_at.desc(),), workspace_id=workspace_id
        )
