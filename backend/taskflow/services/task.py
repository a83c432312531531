"""Task and task dependency service."""

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.repository import Repository
from taskflow.exceptions import ConflictError, InvalidRequestError, NotFoundError
from taskflow.models.task import DEPENDENCY_TYPES, TASK_STATUSES, Task, TaskDependency

logger = structlog.get_logger()


def completion_change(current_status: str, new_status: str) -> dict[str, Any]:
    """Return the ``completed_at`` change implied by a status transition."""
    if new_status == current_status:
        return {}
    if new_status == "done":
        return {"completed_at": datetime.now(timezone.utc)}
    if current_status == "done":
        return {"completed_at": None}
    return {}


class TaskService:
    """Service for task CRUD, board moves and dependencies."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.tasks = Repository(db, Task)
        self.dependencies = Repository(db, TaskDependency)

    # =========================================================================
    # Task CRUD Operations
    # =========================================================================

    async def list_tasks(
        self,
        workspace_id: UUID,
        project_id: UUID | None = None,
        status: str | None = None,
        assignee_id: UUID | None = None,
    ) -> list[Task]:
        filters: dict[str, Any] = {"workspace_id": workspace_id}
        if project_id is not None:
            filters["project_id"] = project_id
        if status is not None:
            filters["status"] = status
        if assignee_id is not None:
            filters["assignee_id"] = assignee_id
        return await self.tasks.list(
            order_by=(Task.position, Task.created_at.desc()), **filters
        )

    async def get_task(self, task_id: UUID) -> Task:
        task = await self.tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task")
        return task

    async def create_task(self, workspace_id: UUID, created_by: UUID, **values: Any) -> Task:
        status = values.get("status") or "todo"
        if status not in TASK_STATUSES:
            raise InvalidRequestError(f"Invalid status: {status}")
        if status == "done":
            values["completed_at"] = datetime.now(timezone.utc)
        task = await self.tasks.create(
            workspace_id=workspace_id, created_by=created_by, **values
        )
        logger.info("task_created", task_id=str(task.id), workspace_id=str(workspace_id))
        return task

    async def update_task(self, task_id: UUID, **values: Any) -> Task:
        """Apply a partial update; a status change maintains ``completed_at``."""
        task = await self.get_task(task_id)
        new_status = values.get("status")
        if new_status is not None:
            if new_status not in TASK_STATUSES:
                raise InvalidRequestError(f"Invalid status: {new_status}")
            values.update(completion_change(task.status, new_status))
        return await self.tasks.update(task, **values)

    async def move_task(self, task_id: UUID, status: str, position: int | None = None) -> Task:
        values: dict[str, Any] = {"status": status}
        if position is not None:
            values["position"] = position
        task = await self.update_task(task_id, **values)
        logger.info("task_moved", task_id=str(task_id), status=status)
        return task

    async def delete_task(self, task_id: UUID) -> None:
        task = await self.get_task(task_id)
        await self.tasks.delete(task)
        logger.info("task_deleted", task_id=str(task_id))

    # =========================================================================
    # Dependencies
    # =========================================================================

    async def list_dependencies(self, task_id: UUID) -> dict[str, list[TaskDependency]]:
        """Dependencies where the task is the successor and the predecessor."""
        return {
            "predecessors": await self.dependencies.list(successor_id=task_id),
            "successors": await self.dependencies.list(predecessor_id=task_id),
        }

    async def add_dependency(
        self,
        predecessor_id: UUID,
        successor_id: UUID,
        created_by: UUID | None = None,
        dependency_type: str = "finish_to_start",
        lag_days: int = 0,
    ) -> TaskDependency:
        if predecessor_id == successor_id:
            raise InvalidRequestError("A task cannot depend on itself")
        if dependency_type not in DEPENDENCY_TYPES:
            raise InvalidRequestError(f"Invalid dependency type: {dependency_type}")

        successor = await self.get_task(successor_id)
        predecessor = await self.tasks.get(predecessor_id)
        if predecessor is None:
            raise NotFoundError("Predecessor task")
        if predecessor.workspace_id != successor.workspace_id:
            raise InvalidRequestError("Both tasks must belong to the same workspace")

        existing = await self.dependencies.get_by(
            predecessor_id=predecessor_id, successor_id=successor_id
        )
        if existing is not None:
            raise ConflictError("This dependency already exists")

        dependency = await self.dependencies.create(
            predecessor_id=predecessor_id,
            successor_id=successor_id,
            dependency_type=dependency_type,
            lag_days=lag_days,
            created_by=created_by,
        )
        logger.info(
            "task_dependency_added",
            predecessor_id=str(predecessor_id),
            successor_id=str(successor_id),
            dependency_type=dependency_type,
        )
        return dependency

    async def remove_dependency(self, task_id: UUID, dependency_id: UUID) -> None:
        """Delete a dependency that ``task_id`` takes part in."""
        dependency = await self.dependencies.get(dependency_id)
        if dependency is None or task_id not in (
            dependency.successor_id,
            dependency.predecessor_id,
        ):
            raise NotFoundError("Dependency")
        await self.dependencies.delete(dependency)
        logger.info("task_dependency_removed", dependency_id=str(dependency_id), task_id=str(task_id))

    async def can_start(self, task_id: UUID) -> bool:
        """True when every predecessor of the task is done."""
        result = await self.db.execute(
            select(Task.status)
            .join(TaskDependency, TaskDependency.predecessor_id == Task.id)
            .where(TaskDependency.successor_id == task_id)
        )
        return all(status == "done" for status in result.scalars().all())
