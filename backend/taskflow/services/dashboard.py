"""Dashboard widgets, user preferences and workload metrics."""

from datetime import date, timedelta
from typing import Any, Iterable, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.repository import Repository
from taskflow.exceptions import NotFoundError
from taskflow.models.dashboard import (
    DashboardWidget,
    UserPreferences,
    WorkloadForecast,
    WorkloadMetric,
)
from taskflow.models.task import Task
from taskflow.models.workspace import WorkspaceMember

logger = structlog.get_logger()

DEFAULT_WIDGETS = (
    {"widget_type": "stats_overview", "title": "Overview", "position_x": 0, "position_y": 0, "width": 4, "height": 1},
    {"widget_type": "upcoming_tasks", "title": "Upcoming Tasks", "position_x": 0, "position_y": 1, "width": 2, "height": 2},
    {"widget_type": "recent_projects", "title": "Recent Projects", "position_x": 2, "position_y": 1, "width": 2, "height": 2},
    {"widget_type": "activity_feed", "title": "Activity", "position_x": 0, "position_y": 3, "width": 4, "height": 2},
)


def member_workload(tasks: Iterable[Any], user_id: UUID, day: date) -> dict[str, Any]:
    """Workload figures for one member on ``day``.

    ``task_count`` counts every task assigned to the member; completed
    tasks and hours only count work finished on ``day``.
    """
    assigned = [t for t in tasks if t.assignee_id == user_id]
    finished = [
        t for t in assigned
        if t.status == "done" and t.completed_at is not None and t.completed_at.date() == day
    ]
    hours = sum(t.estimated_hours or 0 for t in finished)
    productivity = len(finished) / len(assigned) if assigned else 0.0
    return {
        "task_count": len(assigned),
        "completed_tasks": len(finished),
        "hours_worked": round(hours, 2),
        "productivity_score": round(min(productivity, 1.0), 2),
    }


class DashboardService:
    """Service for per-user dashboard layout and workspace workload figures."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.widgets = Repository(db, DashboardWidget)
        self.preferences = Repository(db, UserPreferences)
        self.forecasts = Repository(db, WorkloadForecast)

    # =========================================================================
    # Widgets
    # =========================================================================

    async def list_widgets(self, user_id: UUID, workspace_id: UUID) -> list[DashboardWidget]:
        """The user's widgets, creating the default layout on first use."""
        widgets = await self.widgets.list(
            order_by=(DashboardWidget.position_y, DashboardWidget.position_x),
            user_id=user_id,
            workspace_id=workspace_id,
        )
        if widgets:
            return widgets

        created = [
            await self.widgets.create(user_id=user_id, workspace_id=workspace_id, **spec)
            for spec in DEFAULT_WIDGETS
        ]
        logger.info("default_widgets_created", user_id=str(user_id), workspace_id=str(workspace_id))
        return created

    async def _own_widget(self, widget_id: UUID, user_id: UUID) -> DashboardWidget:
        widget = await self.widgets.get_by(id=widget_id, user_id=user_id)
        if widget is None:
            raise NotFoundError("Widget")
        return widget

    async def create_widget(self, user_id: UUID, workspace_id: UUID, **values: Any) -> DashboardWidget:
        return await self.widgets.create(user_id=user_id, workspace_id=workspace_id, **values)

    async def update_widget(self, widget_id: UUID, user_id: UUID, **values: Any) -> DashboardWidget:
        widget = await self._own_widget(widget_id, user_id)
        return await self.widgets.update(widget, **values)

    async def update_positions(
        self, user_id: UUID, positions: Iterable[dict[str, Any]]
    ) -> list[DashboardWidget]:
        """Apply ``{id, position_x, position_y}`` moves to the user's widgets."""
        updated = []
        for move in positions:
            widget = await self._own_widget(move["id"], user_id)
            updated.append(
                await self.widgets.update(
                    widget, position_x=move["position_x"], position_y=move["position_y"]
                )
            )
        return updated

    async def delete_widget(self, widget_id: UUID, user_id: UUID) -> None:
        widget = await self._own_widget(widget_id, user_id)
        await self.widgets.delete(widget)

    # =========================================================================
    # Preferences
    # =========================================================================

    async def get_preferences(self, user_id: UUID) -> UserPreferences:
        preferences = await self.preferences.get_by(user_id=user_id)
        if preferences is None:
            preferences = await self.preferences.create(user_id=user_id)
            logger.info("default_preferences_created", user_id=str(user_id))
        return preferences

    async def update_preferences(self, user_id: UUID, **values: Any) -> UserPreferences:
        preferences = await self.get_preferences(user_id)
        return await self.preferences.update(preferences, **values)

    # =========================================================================
    # Workload
    # =========================================================================

    async def compute_workload_metrics(
        self, workspace_id: UUID, day: Optional[date] = None
    ) -> list[WorkloadMetric]:
        """Recompute and upsert every active member's metrics for ``day``."""
        day = day or date.today()
        members = await Repository(self.db, WorkspaceMember).list(
            workspace_id=workspace_id, status="active"
        )
        tasks = await Repository(self.db, Task).list(workspace_id=workspace_id)

        for member in members:
            values = member_workload(tasks, member.user_id, day)
            statement = insert(WorkloadMetric).values(
                workspace_id=workspace_id, user_id=member.user_id, metric_date=day, **values
            )
            await self.db.execute(
                statement.on_conflict_do_update(
                    constraint="uq_workload_metric_day",
                    set_=values,
                )
            )

        logger.info(
            "workload_metrics_computed",
            workspace_id=str(workspace_id),
            members=len(members),
            date=day.isoformat(),
        )
        return await self.list_workload_metrics(workspace_id, day, day)

    async def list_workload_metrics(
        self, workspace_id: UUID, start: Optional[date] = None, end: Optional[date] = None
    ) -> list[WorkloadMetric]:
        end = end or date.today()
        start = start or end - timedelta(days=30)
        result = await self.db.execute(
            select(WorkloadMetric)
            .where(
                WorkloadMetric.workspace_id == workspace_id,
                WorkloadMetric.metric_date >= start,
                WorkloadMetric.metric_date <= end,
            )
            .order_by(WorkloadMetric.metric_date, WorkloadMetric.user_id)
        )
        return list(result.scalars().all())

    async def list_forecasts(
        self, workspace_id: UUID, user_id: Optional[UUID] = None
    ) -> list[WorkloadForecast]:
        filters: dict[str, Any] = {"workspace_id": workspace_id}
        if user_id is not None:
            filters["user_id"] = user_id
        return await self.forecasts.list(order_by=(WorkloadForecast.forecast_date,), **filters)
