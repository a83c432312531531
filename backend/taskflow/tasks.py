"""Celery background tasks."""

import asyncio
from uuid import UUID

import structlog

from taskflow.worker import celery_app

logger = structlog.get_logger()


@celery_app.task(bind=True, name="taskflow.tasks.process_recurring_tasks")
def process_recurring_tasks(self) -> dict:
    """
    Generate upcoming instances for every active recurring task pattern.

    Scheduled daily at midnight UTC by the beat schedule in ``taskflow.worker``.
    """
    async def _process() -> int:
        from taskflow.db.session import job_session
        from taskflow.services.recurring_task import RecurringTaskService

        async with job_session() as db:
            return await RecurringTaskService(db).process_due_patterns()

    try:
        tasks_created = asyncio.run(_process())
        logger.info("recurring_tasks_processed", tasks_created=tasks_created)
        return {
            "status": "success",
            "tasks_created": tasks_created,
        }
    except Exception as e:
        logger.error("recurring_tasks_processing_failed", error=str(e))
        return {
            "status": "error",
            "error": str(e),
        }


@celery_app.task(bind=True, name="taskflow.tasks.run_risk_analysis")
def run_risk_analysis(self, workspace_id: str, task_ids: list[str] | None = None) -> dict:
    """
    Run a delay-risk analysis over a workspace outside the request cycle.

    Args:
        workspace_id: Workspace to analyze
        task_ids: Optional subset of task ids

    Returns:
        Dict with status and the analysis counters
    """
    async def _analyze() -> dict:
        from taskflow.db.session import job_session
        from taskflow.services.risk_analysis import DelayRiskAnalyzer

        async with job_session() as db:
            return await DelayRiskAnalyzer(db).analyze(
                UUID(workspace_id),
                task_ids=[UUID(t) for t in task_ids or []],
                analysis_type="task" if task_ids else "workspace",
            )

    try:
        result = asyncio.run(_analyze())
        logger.info(
            "risk_analysis_task_completed",
            workspace_id=workspace_id,
            tasks_analyzed=result["tasks_analyzed"],
            high_risk_tasks=result["high_risk_tasks"],
        )
        return {
            "status": "success",
            "workspace_id": workspace_id,
            "tasks_analyzed": result["tasks_analyzed"],
            "high_risk_tasks": result["high_risk_tasks"],
            "patterns_identified": result["patterns_identified"],
        }
    except Exception as e:
        logger.error("risk_analysis_task_failed", workspace_id=workspace_id, error=str(e))
        return {
            "status": "error",
            "workspace_id": workspace_id,
            "error": str(e),
        }
