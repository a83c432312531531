"""Risk assessment and time estimation records."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.ai import (
    DelayRiskPattern,
    RiskAlert,
    TaskCompletionHistory,
    TaskEstimation,
    TaskRiskAssessment,
)
from taskflow.services.risk_analysis import DelayRiskAnalyzer
from taskflow.services.time_estimation import TaskTimeEstimator
from taskflow.services.workspace import WorkspaceService

router = APIRouter()


class AssessmentResponse(BaseModel):
    id: UUID
    task_id: UUID
    workspace_id: UUID
    risk_score: float
    delay_probability: float
    predicted_delay_days: int
    risk_factors: list[Any]
    recommendations: dict
    confidence_level: float
    assessment_type: str
    model_version: str
    created_at: datetime

    class Config:
        from_attributes = True


class AlertResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    task_id: UUID | None
    project_id: UUID | None
    alert_type: str
    severity_level: str
    alert_message: str
    alert_data: dict
    is_resolved: bool
    resolved_at: datetime | None
    resolved_by: UUID | None
    created_at: datetime

    class Config:
        from_attributes = True


class PatternResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    pattern_name: str
    pattern_type: str
    pattern_data: dict
    frequency_score: float
    impact_score: float
    confidence_score: float
    examples: list[Any]
    created_at: datetime

    class Config:
        from_attributes = True


class EstimationResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID | None
    task_id: UUID | None
    task_title: str
    task_description: str | None
    task_priority: str
    task_complexity: str
    estimated_hours: float
    confidence_score: float
    estimation_factors: dict | None
    similar_tasks_analyzed: int
    historical_accuracy: float | None
    created_at: datetime

    class Config:
        from_attributes = True


class CompletionCreate(BaseModel):
    """Record how long a task actually took."""

    workspace_id: UUID
    task_title: str = Field(..., min_length=1)
    actual_hours: float = Field(..., gt=0)
    task_id: UUID | None = None
    task_description: str | None = None
    task_priority: str | None = None
    task_complexity: str | None = None
    estimated_hours: float | None = Field(None, ge=0)
    completion_date: date | None = None
    factors: dict | None = None


class CompletionResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID | None
    task_id: UUID | None
    task_title: str
    task_priority: str | None
    task_complexity: str | None
    estimated_hours: float | None
    actual_hours: float
    completion_date: date
    accuracy_score: float | None
    created_at: datetime

    class Config:
        from_attributes = True


class AccuracyMetricsResponse(BaseModel):
    average_accuracy: float
    total_completions: int
    estimated_completions: int
    trend: str


# Risk
@router.get("/risk/assessments", response_model=list[AssessmentResponse])
async def list_assessments(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    task_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[TaskRiskAssessment]:
    """Latest assessment for each task."""
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await DelayRiskAnalyzer(db).latest_assessments(workspace_id, task_id)


@router.get("/risk/alerts", response_model=list[AlertResponse])
async def list_alerts(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    unresolved_only: bool = Query(True),
    db: AsyncSession = Depends(get_db_session),
) -> list[RiskAlert]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await DelayRiskAnalyzer(db).list_alerts(workspace_id, unresolved_only)


@router.post("/risk/alerts/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: UUID,
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> RiskAlert:
    await WorkspaceService(db).require_member(workspace_id, current_user.id, "tasks", "update")
    return await DelayRiskAnalyzer(db).resolve_alert(workspace_id, alert_id, current_user.id)


@router.get("/risk/patterns", response_model=list[PatternResponse])
async def list_patterns(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> list[DelayRiskPattern]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await DelayRiskAnalyzer(db).list_patterns(workspace_id)


# Estimation
@router.get("/estimations", response_model=list[EstimationResponse])
async def list_estimations(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    task_id: UUID | None = Query(None),
    db: AsyncSession = Depends(get_db_session),
) -> list[TaskEstimation]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await TaskTimeEstimator(db).list_estimations(workspace_id, task_id)


@router.delete("/estimations/{estimation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_estimation(
    estimation_id: UUID,
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await WorkspaceService(db).require_member(workspace_id, current_user.id, "tasks", "update")
    await TaskTimeEstimator(db).delete_estimation(workspace_id, estimation_id)


@router.get("/completions", response_model=list[CompletionResponse])
async def list_completions(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> list[TaskCompletionHistory]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await TaskTimeEstimator(db).list_completions(workspace_id)


@router.post("/completions", response_model=CompletionResponse, status_code=status.HTTP_201_CREATED)
async def record_completion(
    data: CompletionCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> TaskCompletionHistory:
    await WorkspaceService(db).require_member(data.workspace_id, current_user.id, "tasks", "update")
    return await TaskTimeEstimator(db).record_completion(
        user_id=current_user.id, **data.model_dump()
    )


@router.get("/completions/metrics", response_model=AccuracyMetricsResponse)
async def accuracy_metrics(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await TaskTimeEstimator(db).get_accuracy_metrics(workspace_id)
