"""Recurring task pattern endpoints."""

from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.task import RecurringTaskInstance, RecurringTaskPattern
from taskflow.services.recurrence import RecurrenceRule, describe_pattern
from taskflow.services.recurring_task import RecurringTaskService
from taskflow.services.workspace import WorkspaceService

router = APIRouter()

RECURRENCE_PATTERN = "^(daily|weekly|monthly|yearly|custom)$"


class PatternFields(BaseModel):
    description: str | None = None
    template_task_id: UUID | None = None
    interval_value: int = Field(default=1, ge=1)
    days_of_week: list[int] | None = None
    day_of_month: int | None = Field(None, ge=1, le=31)
    is_last_day_of_month: bool = False
    month_of_year: int | None = Field(None, ge=1, le=12)
    end_date: date | None = None
    max_occurrences: int | None = Field(None, ge=1)
    generate_days_ahead: int = Field(default=7, ge=1, le=365)
    auto_assign: bool = False
    auto_assign_to: UUID | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def check_weekdays(self) -> "PatternFields":
        if self.days_of_week and any(d < 0 or d > 6 for d in self.days_of_week):
            raise ValueError("days_of_week values must be between 0 (Sunday) and 6")
        return self


class PatternCreate(PatternFields):
    """Create a recurring pattern."""

    workspace_id: UUID
    name: str = Field(..., min_length=1, max_length=255)
    recurrence_type: str = Field(..., pattern=RECURRENCE_PATTERN)
    start_date: date

    @model_validator(mode="after")
    def check_dates(self) -> "PatternCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class PatternUpdate(BaseModel):
    """Partial pattern update."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    template_task_id: UUID | None = None
    recurrence_type: str | None = Field(None, pattern=RECURRENCE_PATTERN)
    interval_value: int | None = Field(None, ge=1)
    days_of_week: list[int] | None = None
    day_of_month: int | None = Field(None, ge=1, le=31)
    is_last_day_of_month: bool | None = None
    month_of_year: int | None = Field(None, ge=1, le=12)
    start_date: date | None = None
    end_date: date | None = None
    max_occurrences: int | None = Field(None, ge=1)
    generate_days_ahead: int | None = Field(None, ge=1, le=365)
    auto_assign: bool | None = None
    auto_assign_to: UUID | None = None
    is_active: bool | None = None


class PatternResponse(BaseModel):
    """Recurring pattern with its human readable label."""

    id: UUID
    workspace_id: UUID
    name: str
    description: str | None
    template_task_id: UUID | None
    recurrence_type: str
    interval_value: int
    days_of_week: list[int] | None
    day_of_month: int | None
    is_last_day_of_month: bool
    month_of_year: int | None
    start_date: date
    end_date: date | None
    max_occurrences: int | None
    generate_days_ahead: int
    auto_assign: bool
    auto_assign_to: UUID | None
    is_active: bool
    created_by: UUID | None
    last_generated_at: datetime | None
    created_at: datetime
    updated_at: datetime
    label: str = ""

    class Config:
        from_attributes = True


class InstanceResponse(BaseModel):
    id: UUID
    pattern_id: UUID
    task_id: UUID | None
    scheduled_date: date
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class PreviewResponse(BaseModel):
    description: str
    next_occurrences: list[date]


class GenerateResponse(BaseModel):
    generated: int


def _with_label(pattern: RecurringTaskPattern) -> PatternResponse:
    response = PatternResponse.model_validate(pattern)
    response.label = describe_pattern(RecurrenceRule.from_pattern(pattern))
    return response


async def _pattern_for(
    db: AsyncSession, pattern_id: UUID, user_id: UUID, action: str = "read"
) -> RecurringTaskPattern:
    pattern = await RecurringTaskService(db).get_pattern(pattern_id)
    await WorkspaceService(db).require_member(pattern.workspace_id, user_id, "tasks", action)
    return pattern


@router.get("/", response_model=list[PatternResponse])
async def list_patterns(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db_session),
) -> list[PatternResponse]:
    await WorkspaceService(db).require_member(workspace_id, current_user.id, "tasks", "read")
    patterns = await RecurringTaskService(db).list_patterns(workspace_id, active_only=active_only)
    return [_with_label(p) for p in patterns]


@router.post("/", response_model=PatternResponse, status_code=status.HTTP_201_CREATED)
async def create_pattern(
    data: PatternCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> PatternResponse:
    await WorkspaceService(db).require_member(data.workspace_id, current_user.id, "tasks", "create")
    pattern = await RecurringTaskService(db).create_pattern(
        data.workspace_id, current_user.id, **data.model_dump(exclude={"workspace_id"})
    )
    return _with_label(pattern)


@router.get("/{pattern_id}", response_model=PatternResponse)
async def get_pattern(
    pattern_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> PatternResponse:
    return _with_label(await _pattern_for(db, pattern_id, current_user.id))


@router.patch("/{pattern_id}", response_model=PatternResponse)
async def update_pattern(
    pattern_id: UUID,
    data: PatternUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> PatternResponse:
    await _pattern_for(db, pattern_id, current_user.id, "update")
    pattern = await RecurringTaskService(db).update_pattern(
        pattern_id, **data.model_dump(exclude_unset=True)
    )
    return _with_label(pattern)


@router.delete("/{pattern_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pattern(
    pattern_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await _pattern_for(db, pattern_id, current_user.id, "delete")
    await RecurringTaskService(db).delete_pattern(pattern_id)


@router.get("/{pattern_id}/preview", response_model=PreviewResponse)
async def preview_pattern(
    pattern_id: UUID,
    current_user: CurrentUser,
    count: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Next occurrence dates for a pattern."""
    await _pattern_for(db, pattern_id, current_user.id)
    return await RecurringTaskService(db).preview(pattern_id, count)


@router.get("/{pattern_id}/instances", response_model=list[InstanceResponse])
async def list_instances(
    pattern_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[RecurringTaskInstance]:
    await _pattern_for(db, pattern_id, current_user.id)
    return await RecurringTaskService(db).list_instances(pattern_id)


@router.post("/{pattern_id}/generate", response_model=GenerateResponse)
async def generate_now(
    pattern_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Generate the pattern's due tasks without waiting for the daily job."""
    pattern = await _pattern_for(db, pattern_id, current_user.id, "create")
    return {"generated": await RecurringTaskService(db).generate_instances(pattern)}
