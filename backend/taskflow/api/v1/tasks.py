"""Task and dependency endpoints."""

from datetime import date, datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.task import Task, TaskDependency
from taskflow.services.task import TaskService
from taskflow.services.workspace import WorkspaceService

router = APIRouter()
logger = structlog.get_logger()

STATUS_PATTERN = "^(todo|in-progress|done)$"
PRIORITY_PATTERN = "^(High|Medium|Low)$"
DEPENDENCY_PATTERN = "^(finish_to_start|start_to_start|finish_to_finish|start_to_finish)$"


# Request/Response Models
class TaskCreate(BaseModel):
    """Create a new task."""

    workspace_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    project_id: UUID | None = None
    status: str = Field(default="todo", pattern=STATUS_PATTERN)
    priority: str = Field(default="Medium", pattern=PRIORITY_PATTERN)
    assignee_id: UUID | None = None
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = Field(None, ge=0)
    complexity: str | None = Field(None, pattern="^(low|medium|high|very_high)$")
    tags: list[str] = Field(default_factory=list)
    position: int = 0


class TaskUpdate(BaseModel):
    """Partial task update."""

    title: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    project_id: UUID | None = None
    status: str | None = Field(None, pattern=STATUS_PATTERN)
    priority: str | None = Field(None, pattern=PRIORITY_PATTERN)
    assignee_id: UUID | None = None
    start_date: date | None = None
    due_date: date | None = None
    estimated_hours: float | None = Field(None, ge=0)
    complexity: str | None = Field(None, pattern="^(low|medium|high|very_high)$")
    is_blocked: bool | None = None
    blocked_reason: str | None = None
    tags: list[str] | None = None
    position: int | None = None


class TaskResponse(BaseModel):
    """Task response."""

    id: UUID
    workspace_id: UUID
    project_id: UUID | None
    title: str
    description: str | None
    status: str
    priority: str
    assignee_id: UUID | None
    assignee_name: str | None = None
    created_by: UUID | None
    start_date: date | None
    due_date: date | None
    completed_at: datetime | None
    estimated_hours: float | None
    complexity: str | None
    position: int
    is_blocked: bool
    blocked_reason: str | None
    tags: list[str]
    is_recurring: bool
    recurring_pattern_id: UUID | None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DependencyCreate(BaseModel):
    predecessor_id: UUID
    dependency_type: str = Field(default="finish_to_start", pattern=DEPENDENCY_PATTERN)
    lag_days: int = 0


class DependencyResponse(BaseModel):
    id: UUID
    predecessor_id: UUID
    successor_id: UUID
    dependency_type: str
    lag_days: int
    created_at: datetime

    class Config:
        from_attributes = True


class DependenciesResponse(BaseModel):
    predecessors: list[DependencyResponse]
    successors: list[DependencyResponse]
    can_start: bool


async def _task_for(
    db: AsyncSession, task_id: UUID, user_id: UUID, action: str = "read"
) -> Task:
    task = await TaskService(db).get_task(task_id)
    await WorkspaceService(db).require_member(task.workspace_id, user_id, "tasks", action)
    return task


@router.get("/", response_model=list[TaskResponse])
async def list_tasks(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    project_id: UUID | None = Query(None),
    task_status: str | None = Query(None, alias="status", pattern=STATUS_PATTERN),
    assignee_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[Task]:
    """List tasks in a workspace with optional filters."""
    await WorkspaceService(db).require_member(workspace_id, current_user.id, "tasks", "read")
    return await TaskService(db).list_tasks(
        workspace_id, project_id=project_id, status=task_status, assignee_id=assignee_id
    )


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    data: TaskCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    await WorkspaceService(db).require_member(data.workspace_id, current_user.id, "tasks", "create")
    values = data.model_dump(exclude={"workspace_id"})
    return await TaskService(db).create_task(data.workspace_id, current_user.id, **values)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    return await _task_for(db, task_id, current_user.id)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    await _task_for(db, task_id, current_user.id, "update")
    return await TaskService(db).update_task(task_id, **data.model_dump(exclude_unset=True))


@router.post("/{task_id}/move", response_model=TaskResponse)
async def move_task(
    task_id: UUID,
    current_user: CurrentUser,
    new_status: str = Query(..., pattern=STATUS_PATTERN),
    new_position: int | None = Query(None, ge=0),
    db: AsyncSession = Depends(get_db_session),
) -> Task:
    """Move a task to another board column."""
    await _task_for(db, task_id, current_user.id, "update")
    return await TaskService(db).move_task(task_id, new_status, new_position)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await _task_for(db, task_id, current_user.id, "delete")
    await TaskService(db).delete_task(task_id)


# Dependencies
@router.get("/{task_id}/dependencies", response_model=DependenciesResponse)
async def list_dependencies(
    task_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    await _task_for(db, task_id, current_user.id)
    service = TaskService(db)
    return {**await service.list_dependencies(task_id), "can_start": await service.can_start(task_id)}


@router.post(
    "/{task_id}/dependencies",
    response_model=DependencyResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_dependency(
    task_id: UUID,
    data: DependencyCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TaskDependency:
    """Make ``task_id`` depend on ``predecessor_id``."""
    await _task_for(db, task_id, current_user.id, "update")
    return await TaskService(db).add_dependency(
        predecessor_id=data.predecessor_id,
        successor_id=task_id,
        created_by=current_user.id,
        dependency_type=data.dependency_type,
        lag_days=data.lag_days,
    )


@router.delete(
    "/{task_id}/dependencies/{dependency_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_dependency(
    task_id: UUID,
    dependency_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await _task_for(db, task_id, current_user.id, "update")
    await TaskService(db).remove_dependency(task_id, dependency_id)
