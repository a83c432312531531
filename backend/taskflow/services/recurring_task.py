"""Recurring task service for managing patterns and generating tasks."""

from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterable
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.config import get_settings
from taskflow.db.repository import Repository
from taskflow.exceptions import InvalidRequestError, NotFoundError
from taskflow.models.task import (
    RECURRENCE_TYPES,
    RecurringTaskInstance,
    RecurringTaskPattern,
    Task,
)
from taskflow.services.recurrence import (
    RecurrenceRule,
    describe_pattern,
    iter_occurrences,
    project_occurrences,
)

logger = structlog.get_logger()


def dates_to_generate(
    rule: RecurrenceRule,
    today: date,
    days_ahead: int,
    existing: Iterable[date],
    horizon_days: int = 365,
) -> list[date]:
    """Scheduled dates up to ``today + days_ahead`` that have no instance yet.

    The window never reaches past ``today + horizon_days``.
    """
    until = today + timedelta(days=min(days_ahead, horizon_days))
    seen = set(existing)
    return [d for d in iter_occurrences(rule, until=until) if d not in seen]


def instance_title(template_title: str, scheduled: date) -> str:
    return f"{template_title} ({scheduled.isoformat()})"


class RecurringTaskService:
    """Service for recurring task patterns and the tasks they generate."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.patterns = Repository(db, RecurringTaskPattern)
        self.instances = Repository(db, RecurringTaskInstance)
        self.tasks = Repository(db, Task)

    # =========================================================================
    # Pattern CRUD Operations
    # =========================================================================

    async def create_pattern(
        self, workspace_id: UUID, created_by: UUID, **values: Any
    ) -> RecurringTaskPattern:
        if values.get("recurrence_type") not in RECURRENCE_TYPES:
            raise InvalidRequestError(f"Invalid recurrence type: {values.get('recurrence_type')}")
        pattern = await self.patterns.create(
            workspace_id=workspace_id, created_by=created_by, **values
        )
        logger.info(
            "recurring_pattern_created",
            pattern_id=str(pattern.id),
            workspace_id=str(workspace_id),
            recurrence_type=pattern.recurrence_type,
        )
        return pattern

    async def get_pattern(self, pattern_id: UUID) -> RecurringTaskPattern:
        pattern = await self.patterns.get(pattern_id)
        if pattern is None:
            raise NotFoundError("Recurring pattern")
        return pattern

    async def list_patterns(
        self, workspace_id: UUID, active_only: bool = False
    ) -> list[RecurringTaskPattern]:
        filters: dict[str, Any] = {"workspace_id": workspace_id}
        if active_only:
            filters["is_active"] = True
        return await self.patterns.list(
            order_by=(RecurringTaskPattern.created_at.desc(),), **filters
        )

    async def update_pattern(self, pattern_id: UUID, **values: Any) -> RecurringTaskPattern:
        recurrence_type = values.get("recurrence_type")
        if recurrence_type is not None and recurrence_type not in RECURRENCE_TYPES:
            raise InvalidRequestError(f"Invalid recurrence type: {recurrence_type}")
        pattern = await self.get_pattern(pattern_id)
        return await self.patterns.update(pattern, **values)

    async def delete_pattern(self, pattern_id: UUID) -> None:
        pattern = await self.get_pattern(pattern_id)
        await self.patterns.delete(pattern)
        logger.info("recurring_pattern_deleted", pattern_id=str(pattern_id))

    async def preview(self, pattern_id: UUID, count: int = 5) -> dict[str, Any]:
        """Upcoming occurrence dates and the pattern's label."""
        pattern = await self.get_pattern(pattern_id)
        rule = RecurrenceRule.from_pattern(pattern)
        return {
            "description": describe_pattern(rule),
            "next_occurrences": project_occurrences(rule, count, after=date.today()),
        }

    async def list_instances(self, pattern_id: UUID) -> list[RecurringTaskInstance]:
        return await self.instances.list(
            order_by=(RecurringTaskInstance.scheduled_date,), pattern_id=pattern_id
        )

    # =========================================================================
    # Task Generation
    # =========================================================================

    async def generate_instances(
        self, pattern: RecurringTaskPattern, today: date | None = None
    ) -> int:
        """Create the pattern's missing tasks up to its look-ahead window.

        Returns the number of tasks generated. Patterns without a template
        task generate nothing.
        """
        today = today or date.today()
        template = pattern.template_task
        if template is None:
            logger.warning("recurring_pattern_without_template", pattern_id=str(pattern.id))
            return 0

        result = await self.db.execute(
            select(RecurringTaskInstance.scheduled_date).where(
                RecurringTaskInstance.pattern_id == pattern.id
            )
        )
        pending = dates_to_generate(
            RecurrenceRule.from_pattern(pattern),
            today,
            pattern.generate_days_ahead or 7,
            result.scalars().all(),
            horizon_days=self.settings.recurrence_generation_horizon_days,
        )

        for scheduled in pending:
            task = await self.tasks.create(
                workspace_id=pattern.workspace_id,
                project_id=template.project_id,
                title=instance_title(template.title, scheduled),
                description=template.description,
                priority=template.priority,
                status="todo",
                assignee_id=pattern.auto_assign_to or template.assignee_id,
                due_date=scheduled,
                estimated_hours=template.estimated_hours,
                tags=list(template.tags or []),
                is_recurring=True,
                recurring_pattern_id=pattern.id,
                created_by=pattern.created_by,
            )
            await self.instances.create(
                pattern_id=pattern.id, task_id=task.id, scheduled_date=scheduled
            )

        if pending:
            await self.patterns.update(pattern, last_generated_at=datetime.now(timezone.utc))
            logger.info(
                "recurring_tasks_generated",
                pattern_id=str(pattern.id),
                count=len(pending),
            )
        return len(pending)

    async def process_due_patterns(self, today: date | None = None) -> int:
        """Generate tasks for every active pattern.

        A failing pattern is logged and skipped. Returns the total number
        of tasks generated.
        """
        today = today or date.today()
        result = await self.db.execute(
            select(RecurringTaskPattern).where(
                RecurringTaskPattern.is_active.is_(True),
                RecurringTaskPattern.start_date
                <= today + timedelta(days=self.settings.recurrence_generation_horizon_days),
                (RecurringTaskPattern.end_date.is_(None))
                | (RecurringTaskPattern.end_date >= today),
            )
        )
        patterns = result.scalars().unique().all()

        generated = 0
        for pattern in patterns:
            try:
                async with self.db.begin_nested():
                    generated += await self.generate_instances(pattern, today)
            except Exception as e:
                logger.error(
                    "recurring_pattern_failed",
                    pattern_id=str(pattern.id),
                    error=str(e),
                )
                continue

        logger.info("recurring_patterns_processed", patterns=len(patterns), generated=generated)
        return generated
