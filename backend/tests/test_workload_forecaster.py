"""Tests for the workload forecast service with storage and AI stubbed."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from taskflow.ai.exceptions import AIConfigurationError
from taskflow.config import Settings
from taskflow.services.workload_forecast import WorkloadForecaster

TODAY = date(2026, 3, 2)


def saved_row(**values):
    values.setdefault("id", uuid4())
    return SimpleNamespace(to_dict=lambda: dict(values), **values)


@pytest.fixture
def ai():
    service = MagicMock()
    service.run_template = AsyncMock()
    return service


@pytest.fixture
def forecaster(mock_db, ai):
    forecaster = WorkloadForecaster(mock_db, ai_service=ai, settings=Settings())
    forecaster._load_metrics = AsyncMock(
        return_value=[
            {"date": "2026-03-01", "task_count": 5, "completed_tasks": 3, "hours_worked": 7, "productivity_score": 0.6}
        ]
    )
    forecaster._load_open_tasks = AsyncMock(
        return_value=[{"title": "Export", "priority": "high", "status": "todo", "due_date": None}] * 3
    )
    forecaster._team_size = AsyncMock(return_value=4)
    forecaster.forecasts = MagicMock(create=AsyncMock(side_effect=lambda **values: saved_row(**values)))
    return forecaster


@pytest.mark.asyncio
async def test_ai_forecast(forecaster, ai, workspace_id, user_id):
    ai.run_template.return_value = SimpleNamespace(
        content='{"predicted_workload": 6.5, "confidence_score": 0.75, "recommendations": {"capacity_planning": "Hold"},'
        ' "daily_breakdown": [{"date": "2026-03-02", "predicted_hours": 6, "key_tasks": ["Export"]}]}'
    )

    result = await forecaster.forecast(
        workspace_id, user_id=user_id, days_ahead=14, forecast_type="weekly", today=TODAY
    )

    assert result["success"] is True
    assert result["forecast"]["predicted_workload"] == 6.5
    assert result["forecast"]["confidence_score"] == 0.75
    assert result["forecast"]["forecast_date"] == date(2026, 3, 16)
    assert result["forecast"]["forecast_type"] == "weekly"
    assert result["forecast"]["user_id"] == user_id
    assert result["daily_breakdown"] == [{"date": "2026-03-02", "predicted_hours": 6, "key_tasks": ["Export"]}]
    assert result["metadata"] == {
        "metrics_analyzed": 1,
        "tasks_analyzed": 3,
        "team_size": 4,
        "forecast_horizon": "14 days",
        "forecast_method": "ai_analysis",
    }

    template_key, variables = ai.run_template.await_args.args
    assert template_key == "workload_forecast"
    assert variables["team_size"] == 4
    assert variables["today"] == "2026-03-02"
    assert variables["tasks_analysis"].startswith("Task Pipeline Analysis:")
    assert ai.run_template.await_args.kwargs["temperature"] == Settings().forecast_temperature


@pytest.mark.asyncio
async def test_fallback_when_ai_unavailable(forecaster, ai, workspace_id):
    ai.run_template.side_effect = AIConfigurationError("GEMINI_API_KEY")

    result = await forecaster.forecast(workspace_id, days_ahead=3, today=TODAY)

    assert result["metadata"]["forecast_method"] == "fallback"
    assert result["forecast"]["predicted_workload"] == 8.0
    assert result["forecast"]["confidence_score"] == 0.5
    assert result["forecast"]["user_id"] is None
    assert [day["date"] for day in result["daily_breakdown"]] == ["2026-03-02", "2026-03-03", "2026-03-04"]
    forecaster.forecasts.create.assert_awaited_once()


@pytest.mark.asyncio
async def test_fallback_when_reply_unreadable(forecaster, ai, workspace_id):
    ai.run_template.return_value = SimpleNamespace(content="Busy week ahead")

    result = await forecaster.forecast(workspace_id, today=TODAY)

    assert result["metadata"]["forecast_method"] == "fallback"
    assert result["forecast"]["forecast_date"] == date(2026, 3, 9)
    assert len(result["daily_breakdown"]) == 7


@pytest.mark.asyncio
async def test_empty_breakdown_becomes_none(forecaster, ai, workspace_id):
    ai.run_template.return_value = SimpleNamespace(
        content='{"predicted_workload": 4, "confidence_score": 0.9, "daily_breakdown": []}'
    )

    result = await forecaster.forecast(workspace_id, today=TODAY)

    assert result["daily_breakdown"] is None
    assert result["metadata"]["forecast_method"] == "ai_analysis"
