"""Function-style endpoints for AI delay-risk analysis, time estimation and workload forecasts.

Each endpoint reads a raw JSON body, answers browser preflight requests
itself and always replies with permissive CORS headers, so browser
clients can call it directly.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

import orjson
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse, PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.ai.forecast import DEFAULT_DAYS_AHEAD, FORECAST_TYPES, MAX_DAYS_AHEAD
from taskflow.ai.service import AIService, get_ai_service
from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.exceptions import TaskflowError
from taskflow.services.risk_analysis import DelayRiskAnalyzer
from taskflow.services.time_estimation import TaskTimeEstimator
from taskflow.services.workload_forecast import WorkloadForecaster
from taskflow.services.workspace import WorkspaceService

router = APIRouter()
logger = structlog.get_logger()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

ANALYSIS_TYPES = {"task", "project", "workspace"}
TASK_PRIORITIES = {"low", "medium", "high", "urgent"}
TASK_COMPLEXITIES = {"low", "medium", "high", "very_high"}


def _respond(body: dict[str, Any], status_code: int = 200) -> ORJSONResponse:
    return ORJSONResponse(body, status_code=status_code, headers=CORS_HEADERS)


async def _read_body(request: Request) -> Optional[dict[str, Any]]:
    """Parsed JSON body; None when it is not JSON, {} when it is not an object."""
    try:
        body = orjson.loads(await request.body())
    except orjson.JSONDecodeError:
        return None
    return body if isinstance(body, dict) else {}


def _as_uuid(value: Any) -> Optional[UUID]:
    if not value:
        return None
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _uuid_list(value: Any) -> Optional[list[UUID]]:
    """Ids from a JSON list; None unless every item is a UUID."""
    if value is None:
        return []
    if not isinstance(value, list):
        return None
    ids = [_as_uuid(item) for item in value]
    return None if None in ids else ids


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _choice(value: Any, allowed: set[str], default: str) -> str:
    return value if isinstance(value, str) and value in allowed else default


# Risk analysis
@router.options("/ai-delay-risk-analysis")
async def risk_analysis_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/ai-delay-risk-analysis")
async def ai_delay_risk_analysis(
    request: Request,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    ai_service: AIService = Depends(get_ai_service),
) -> ORJSONResponse:
    """Score workspace tasks for delay risk and mine delay patterns."""
    body = await _read_body(request)
    if body is None:
        return _respond({"error": "Invalid JSON in request body"}, 400)

    workspace_id = _as_uuid(body.get("workspace_id"))
    if workspace_id is None:
        return _respond({"error": "workspace_id is required"}, 400)

    task_ids = _uuid_list(body.get("task_ids"))
    if task_ids is None:
        return _respond({"error": "task_ids must be a list of task ids"}, 400)
    project_id = _as_uuid(body.get("project_id"))
    if body.get("project_id") and project_id is None:
        return _respond({"error": "project_id must be a valid id"}, 400)

    try:
        await WorkspaceService(db).require_member(workspace_id, current_user.id)
        result = await DelayRiskAnalyzer(db, ai_service=ai_service).analyze(
            workspace_id,
            task_ids=task_ids,
            project_id=project_id,
            analysis_type=_choice(body.get("analysis_type"), ANALYSIS_TYPES, "workspace"),
            ai_model=body.get("ai_model") or None,
        )
    except TaskflowError as e:
        await db.rollback()
        return _respond({"error": e.message, "success": False}, e.status_code)
    except Exception as e:
        await db.rollback()
        logger.exception("risk_analysis_failed", workspace_id=str(workspace_id))
        return _respond({"error": str(e), "success": False}, 500)

    return _respond(result)


# Time estimation
@router.options("/task-time-estimator")
async def time_estimator_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/task-time-estimator")
async def task_time_estimator(
    request: Request,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    ai_service: AIService = Depends(get_ai_service),
) -> ORJSONResponse:
    """Estimate effort for a task from the workspace's completion history."""
    body = await _read_body(request)
    if body is None:
        return _respond({"error": "Invalid JSON in request body"}, 400)

    workspace_id = _as_uuid(body.get("workspace_id"))
    task_title = body.get("task_title")
    if workspace_id is None or not isinstance(task_title, str) or not task_title.strip():
        return _respond({"error": "workspace_id and task_title are required"}, 400)

    try:
        await WorkspaceService(db).require_member(workspace_id, current_user.id)
        result = await TaskTimeEstimator(db, ai_service=ai_service).estimate(
            workspace_id,
            task_title,
            user_id=_as_uuid(body.get("user_id")) or current_user.id,
            task_id=_as_uuid(body.get("task_id")),
            task_description=str(body.get("task_description") or ""),
            task_priority=_choice(body.get("task_priority"), TASK_PRIORITIES, "medium"),
            task_complexity=_choice(body.get("task_complexity"), TASK_COMPLEXITIES, "medium"),
            project_type=str(body.get("project_type") or ""),
            similar_tasks=body.get("similar_tasks", True) is not False,
        )
    except TaskflowError as e:
        await db.rollback()
        return _respond({"error": e.message, "timestamp": _now()}, e.status_code)
    except Exception as e:
        await db.rollback()
        logger.exception("time_estimate_failed", workspace_id=str(workspace_id))
        return _respond({"error": str(e), "timestamp": _now()}, 500)

    return _respond(result)


# Workload forecast
@router.options("/workload-forecast")
async def workload_forecast_preflight() -> PlainTextResponse:
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/workload-forecast")
async def workload_forecast(
    request: Request,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
    ai_service: AIService = Depends(get_ai_service),
) -> ORJSONResponse:
    """Forecast the workspace's daily workload for the coming days."""
    body = await _read_body(request)
    if body is None:
        return _respond({"error": "Invalid JSON in request body"}, 400)

    workspace_id = _as_uuid(body.get("workspace_id"))
    if workspace_id is None:
        return _respond({"error": "workspace_id is required"}, 400)

    days_ahead = body.get("days_ahead", DEFAULT_DAYS_AHEAD)
    if (
        isinstance(days_ahead, bool)
        or not isinstance(days_ahead, int)
        or not 1 <= days_ahead <= MAX_DAYS_AHEAD
    ):
        return _respond({"error": f"days_ahead must be between 1 and {MAX_DAYS_AHEAD}"}, 400)
    user_id = _as_uuid(body.get("user_id"))
    if body.get("user_id") and user_id is None:
        return _respond({"error": "user_id must be a valid id"}, 400)

    try:
        await WorkspaceService(db).require_member(workspace_id, current_user.id)
        result = await WorkloadForecaster(db, ai_service=ai_service).forecast(
            workspace_id,
            user_id=user_id,
            days_ahead=days_ahead,
            forecast_type=_choice(body.get("forecast_type"), set(FORECAST_TYPES), "daily"),
        )
    except TaskflowError as e:
        await db.rollback()
        return _respond({"error": e.message, "timestamp": _now()}, e.status_code)
    except Exception as e:
        await db.rollback()
        logger.exception("workload_forecast_failed", workspace_id=str(workspace_id))
        return _respond({"error": str(e), "timestamp": _now()}, 500)

    return _respond(result)
