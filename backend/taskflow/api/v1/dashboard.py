"""Dashboard widget, preference and workload endpoints."""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.dashboard import (
    DashboardWidget,
    UserPreferences,
    WorkloadForecast,
    WorkloadMetric,
)
from taskflow.services.dashboard import DashboardService
from taskflow.services.workspace import WorkspaceService

router = APIRouter()


class WidgetCreate(BaseModel):
    workspace_id: UUID
    widget_type: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=255)
    position_x: int = Field(default=0, ge=0)
    position_y: int = Field(default=0, ge=0)
    width: int = Field(default=1, ge=1)
    height: int = Field(default=1, ge=1)
    config: dict = Field(default_factory=dict)
    is_visible: bool = True


class WidgetUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    position_x: int | None = Field(None, ge=0)
    position_y: int | None = Field(None, ge=0)
    width: int | None = Field(None, ge=1)
    height: int | None = Field(None, ge=1)
    config: dict | None = None
    is_visible: bool | None = None


class WidgetPosition(BaseModel):
    id: UUID
    position_x: int = Field(..., ge=0)
    position_y: int = Field(..., ge=0)


class WidgetResponse(BaseModel):
    id: UUID
    user_id: UUID
    workspace_id: UUID
    widget_type: str
    title: str
    position_x: int
    position_y: int
    width: int
    height: int
    config: dict
    is_visible: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PreferencesUpdate(BaseModel):
    theme: str | None = Field(None, pattern="^(light|dark|system)$")
    default_view: str | None = Field(None, max_length=20)
    timezone: str | None = Field(None, max_length=64)
    email_notifications: bool | None = None
    mention_notifications: bool | None = None
    dashboard_layout: dict | None = None


class PreferencesResponse(BaseModel):
    id: UUID
    user_id: UUID
    theme: str
    default_view: str
    timezone: str
    email_notifications: bool
    mention_notifications: bool
    dashboard_layout: dict

    class Config:
        from_attributes = True


class WorkloadMetricResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID | None
    metric_date: date
    task_count: int
    completed_tasks: int
    hours_worked: float
    productivity_score: float

    class Config:
        from_attributes = True


class WorkloadForecastResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID | None
    forecast_date: date
    predicted_workload: float
    confidence_score: float
    recommendations: dict | None
    forecast_type: str

    class Config:
        from_attributes = True


# Widgets
@router.get("/widgets", response_model=list[WidgetResponse])
async def list_widgets(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> list[DashboardWidget]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await DashboardService(db).list_widgets(current_user.id, workspace_id)


@router.post("/widgets", response_model=WidgetResponse, status_code=status.HTTP_201_CREATED)
async def create_widget(
    data: WidgetCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> DashboardWidget:
    await WorkspaceService(db).require_member(data.workspace_id, current_user.id)
    return await DashboardService(db).create_widget(
        current_user.id, data.workspace_id, **data.model_dump(exclude={"workspace_id"})
    )


@router.put("/widgets/positions", response_model=list[WidgetResponse])
async def update_widget_positions(
    positions: list[WidgetPosition],
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[DashboardWidget]:
    return await DashboardService(db).update_positions(
        current_user.id, [p.model_dump() for p in positions]
    )


@router.patch("/widgets/{widget_id}", response_model=WidgetResponse)
async def update_widget(
    widget_id: UUID,
    data: WidgetUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> DashboardWidget:
    return await DashboardService(db).update_widget(
        widget_id, current_user.id, **data.model_dump(exclude_unset=True)
    )


@router.delete("/widgets/{widget_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_widget(
    widget_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await DashboardService(db).delete_widget(widget_id, current_user.id)


# Preferences
@router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> UserPreferences:
    return await DashboardService(db).get_preferences(current_user.id)


@router.patch("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    data: PreferencesUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> UserPreferences:
    return await DashboardService(db).update_preferences(
        current_user.id, **data.model_dump(exclude_unset=True)
    )


# Workload
@router.get("/workload", response_model=list[WorkloadMetricResponse])
async def list_workload(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    start: date | None = Query(None),
    end: date | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[WorkloadMetric]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await DashboardService(db).list_workload_metrics(workspace_id, start, end)


@router.post("/workload/compute", response_model=list[WorkloadMetricResponse])
async def compute_workload(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    day: date | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[WorkloadMetric]:
    """Recompute workload figures for every member on ``day`` (default today)."""
    await WorkspaceService(db).require_member(workspace_id, current_user.id, "timeline", "update")
    return await DashboardService(db).compute_workload_metrics(workspace_id, day)


@router.get("/forecasts", response_model=list[WorkloadForecastResponse])
async def list_forecasts(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    user_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[WorkloadForecast]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await DashboardService(db).list_forecasts(workspace_id, user_id)
