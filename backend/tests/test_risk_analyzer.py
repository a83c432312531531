"""Tests for the delay-risk analysis service with storage and AI stubbed."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from taskflow.ai.exceptions import AIProviderError
from taskflow.config import Settings
from taskflow.exceptions import NotFoundError
from taskflow.models.ai import DelayRiskPattern, RiskAlert, TaskRiskAssessment
from taskflow.services.risk_analysis import DelayRiskAnalyzer

from tests.factories import TODAY, make_task


def task_row(**overrides):
    values = make_task(**overrides)
    return SimpleNamespace(to_dict=lambda: dict(values), assignee_name="Ada")


def reply(content):
    return SimpleNamespace(content=content)


@pytest.fixture
def ai():
    service = MagicMock()
    service.run_template = AsyncMock()
    return service


@pytest.fixture
def analyzer(mock_db, ai):
    analyzer = DelayRiskAnalyzer(mock_db, ai_service=ai, settings=Settings())
    analyzer.patterns = MagicMock(list=AsyncMock(return_value=[]))
    analyzer._load_history = AsyncMock(return_value=[])
    analyzer._save = AsyncMock(return_value=True)
    return analyzer


def saved_models(analyzer):
    return [call.args[0] for call in analyzer._save.await_args_list]


@pytest.mark.asyncio
async def test_ai_failure_uses_fallback_and_raises_alert(analyzer, ai, workspace_id):
    analyzer._load_tasks = AsyncMock(
        return_value=[task_row(title="Migrate DB", is_blocked=True, due_date=TODAY - timedelta(days=1))]
    )
    ai.run_template.side_effect = AIProviderError("gemini", "unavailable")

    result = await analyzer.analyze(workspace_id, today=TODAY)

    assert result["success"] is True
    assert result["tasks_analyzed"] == 1
    assert result["high_risk_tasks"] == 1
    assert result["patterns_identified"] == 0
    assert result["results"][0]["risk_score"] == pytest.approx(0.9)
    assert result["results"][0]["risk_factors"][0]["factor"] == "ai_unavailable"
    assert result["ai_model_used"] == Settings().gemini_model
    assert isinstance(result["analysis_metadata"]["processing_time"], int)
    assert saved_models(analyzer) == [TaskRiskAssessment, RiskAlert]

    alert = analyzer._save.await_args_list[1].kwargs
    assert alert["alert_type"] == "critical_risk"
    assert alert["is_resolved"] is False


@pytest.mark.asyncio
async def test_ai_assessment_and_patterns_are_stored(analyzer, ai, workspace_id):
    analyzer._load_tasks = AsyncMock(return_value=[task_row(), task_row()])

    async def run_template(template_key, variables, temperature, model=None):
        if template_key == "task_risk_assessment":
            return reply('{"risk_score": 0.2, "delay_probability": 0.1, "confidence_level": 0.9}')
        return reply(
            '{"patterns": [{"name": "review_bottleneck", "type": "dependency",'
            ' "frequency": 1.4, "impact": 0.5, "confidence": 0.6, "examples": ["t1"]}]}'
        )

    ai.run_template.side_effect = run_template

    result = await analyzer.analyze(
        workspace_id, analysis_type="project", ai_model="gemini-pro", today=TODAY
    )

    assert result["tasks_analyzed"] == 2
    assert result["high_risk_tasks"] == 0
    assert result["patterns_identified"] == 1
    assert result["analysis_type"] == "project"
    assert result["analysis_metadata"]["model_version"] == "gemini-pro"
    assert saved_models(analyzer) == [TaskRiskAssessment, TaskRiskAssessment, DelayRiskPattern]

    pattern = analyzer._save.await_args_list[2].kwargs
    assert pattern["pattern_name"] == "review_bottleneck"
    assert pattern["frequency_score"] == 1.0
    assert pattern["examples"] == ["t1"]
    assert ai.run_template.await_args_list[0].kwargs["model"] == "gemini-pro"


@pytest.mark.asyncio
async def test_no_tasks(analyzer, ai, workspace_id):
    analyzer._load_tasks = AsyncMock(return_value=[])
    ai.run_template.return_value = reply('{"patterns": []}')

    result = await analyzer.analyze(workspace_id, today=TODAY)

    assert result["tasks_analyzed"] == 0
    assert result["results"] == []
    analyzer._save.assert_not_awaited()


@pytest.mark.asyncio
async def test_save_failure_is_skipped(mock_db, ai, workspace_id):
    analyzer = DelayRiskAnalyzer(mock_db, ai_service=ai, settings=Settings())
    mock_db.flush.side_effect = OperationalError("INSERT", {}, Exception("connection lost"))

    saved = await analyzer._save(
        RiskAlert,
        workspace_id=workspace_id,
        task_id=uuid4(),
        alert_type="high_risk",
        severity_level="high",
        alert_message="x",
        alert_data={},
    )

    assert saved is False
    mock_db.begin_nested.assert_called_once()


@pytest.mark.asyncio
async def test_resolve_missing_alert(mock_db, ai, workspace_id, user_id):
    analyzer = DelayRiskAnalyzer(mock_db, ai_service=ai, settings=Settings())
    analyzer.alerts = MagicMock(get_by=AsyncMock(return_value=None))

    with pytest.raises(NotFoundError):
        await analyzer.resolve_alert(workspace_id, uuid4(), user_id)
