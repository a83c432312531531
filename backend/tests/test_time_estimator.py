"""Tests for the time estimation service with storage and AI stubbed."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from taskflow.ai.exceptions import AIConfigurationError
from taskflow.config import Settings
from taskflow.exceptions import InvalidRequestError, NotFoundError
from taskflow.services.time_estimation import TaskTimeEstimator


def saved_row(**values):
    values.setdefault("id", uuid4())
    return SimpleNamespace(to_dict=lambda: dict(values), **values)


@pytest.fixture
def ai():
    service = MagicMock()
    service.run_template = AsyncMock()
    return service


@pytest.fixture
def estimator(mock_db, ai):
    estimator = TaskTimeEstimator(mock_db, ai_service=ai, settings=Settings())
    estimator._load_history = AsyncMock(
        return_value=[{"task_title": "Old", "estimated_hours": 4, "actual_hours": 5}] * 6
    )
    estimator._load_current_tasks = AsyncMock(return_value=[{"title": "Now", "status": "todo"}])
    estimator.estimations = MagicMock(create=AsyncMock(side_effect=lambda **values: saved_row(**values)))
    return estimator


@pytest.mark.asyncio
async def test_ai_estimate(estimator, ai, workspace_id, user_id):
    ai.run_template.return_value = SimpleNamespace(
        content='{"estimated_hours": 12, "confidence_score": 0.8, "similar_tasks_analyzed": 6}'
    )

    result = await estimator.estimate(
        workspace_id, "Build export", user_id=user_id, task_priority="high"
    )

    assert result["success"] is True
    assert result["estimation"]["estimated_hours"] == 12
    assert result["estimation"]["user_id"] == user_id
    assert result["time_breakdown"]["development"] == 7.2
    assert result["metadata"] == {
        "similar_tasks_found": 6,
        "current_tasks_analyzed": 1,
        "ai_model": Settings().gemini_model,
        "estimation_method": "ai_analysis",
    }
    variables = ai.run_template.await_args.args[1]
    assert variables["task_priority"] == "high"
    assert variables["historical_analysis"].startswith("Historical Task Analysis (6 tasks)")


@pytest.mark.asyncio
async def test_fallback_when_ai_unavailable(estimator, ai, workspace_id):
    ai.run_template.side_effect = AIConfigurationError("GEMINI_API_KEY")

    result = await estimator.estimate(
        workspace_id, "Build export", task_complexity="high", task_priority="urgent"
    )

    assert result["metadata"]["estimation_method"] == "fallback"
    assert result["estimation"]["estimated_hours"] == 24
    assert result["estimation"]["confidence_score"] == 0.7


@pytest.mark.asyncio
async def test_fallback_when_reply_unreadable(estimator, ai, workspace_id):
    ai.run_template.return_value = SimpleNamespace(content="About two days")

    result = await estimator.estimate(workspace_id, "Build export")

    assert result["metadata"]["estimation_method"] == "fallback"
    assert result["estimation"]["estimated_hours"] == 8


@pytest.mark.asyncio
async def test_similar_tasks_disabled_skips_history(estimator, ai, workspace_id):
    ai.run_template.side_effect = AIConfigurationError("GEMINI_API_KEY")

    result = await estimator.estimate(workspace_id, "Build export", similar_tasks=False)

    estimator._load_history.assert_not_awaited()
    assert result["metadata"]["similar_tasks_found"] == 0
    assert result["estimation"]["confidence_score"] == 0.4


class TestRecordCompletion:
    @pytest.mark.asyncio
    async def test_scores_against_estimate(self, mock_db, ai, workspace_id):
        estimator = TaskTimeEstimator(mock_db, ai_service=ai, settings=Settings())

        row = await estimator.record_completion(
            workspace_id,
            "Build export",
            actual_hours=10,
            estimated_hours=8,
            completion_date=date(2024, 6, 1),
        )

        assert row.accuracy_score == 0.8
        assert row.completion_date == date(2024, 6, 1)
        mock_db.add.assert_called_once_with(row)

    @pytest.mark.asyncio
    async def test_without_estimate(self, mock_db, ai, workspace_id):
        estimator = TaskTimeEstimator(mock_db, ai_service=ai, settings=Settings())

        row = await estimator.record_completion(workspace_id, "Build export", actual_hours=3)

        assert row.accuracy_score is None
        assert row.estimated_hours is None
        assert row.completion_date == date.today()

    @pytest.mark.asyncio
    async def test_rejects_non_positive_hours(self, mock_db, ai, workspace_id):
        estimator = TaskTimeEstimator(mock_db, ai_service=ai, settings=Settings())

        with pytest.raises(InvalidRequestError):
            await estimator.record_completion(workspace_id, "Build export", actual_hours=0)
        mock_db.add.assert_not_called()


@pytest.mark.asyncio
async def test_delete_missing_estimation(mock_db, ai, workspace_id):
    estimator = TaskTimeEstimator(mock_db, ai_service=ai, settings=Settings())
    estimator.estimations = MagicMock(get_by=AsyncMock(return_value=None))

    with pytest.raises(NotFoundError):
        await estimator.delete_estimation(workspace_id, uuid4())
