"""Tests for workload forecast rules."""

from datetime import date

import pytest

from taskflow.ai.exceptions import AIResponseParseError
from taskflow.ai.forecast import (
    default_daily_breakdown,
    fallback_forecast,
    parse_forecast,
    summarize_metrics,
    summarize_pipeline,
)

START = date(2026, 3, 2)


def test_default_daily_breakdown():
    breakdown = default_daily_breakdown(6.5, 3, START)
    assert [day["date"] for day in breakdown] == ["2026-03-02", "2026-03-03", "2026-03-04"]
    assert {day["predicted_hours"] for day in breakdown} == {6.5}
    assert breakdown[0]["key_tasks"] == ["Task analysis unavailable"]


def test_fallback_forecast():
    forecast = fallback_forecast(7, START)
    assert forecast["predicted_workload"] == 8.0
    assert forecast["confidence_score"] == 0.5
    assert len(forecast["daily_breakdown"]) == 7
    assert "Data parsing error" in forecast["recommendations"]["risk_factors"]


class TestParseForecast:
    def test_reads_reply(self):
        text = """Forecast below.
        {"predicted_workload": 6.25, "confidence_score": 0.8,
         "recommendations": {"resource_allocation": "Pair on reviews"},
         "daily_breakdown": [{"date": "2026-03-02", "predicted_hours": 6, "key_tasks": ["Export"]}]}"""
        forecast = parse_forecast(text, 7, START)
        assert forecast["predicted_workload"] == 6.25
        assert forecast["confidence_score"] == 0.8
        assert forecast["recommendations"] == {"resource_allocation": "Pair on reviews"}
        assert forecast["daily_breakdown"][0]["key_tasks"] == ["Export"]

    def test_clamps_numbers(self):
        forecast = parse_forecast('{"predicted_workload": 5000, "confidence_score": 1.7}', 2, START)
        assert forecast["predicted_workload"] == 999.99
        assert forecast["confidence_score"] == 1.0

        forecast = parse_forecast('{"predicted_workload": -3, "confidence_score": -0.2}', 2, START)
        assert forecast["predicted_workload"] == 0.0
        assert forecast["confidence_score"] == 0.0

    def test_missing_sections_take_defaults(self):
        forecast = parse_forecast(
            '{"predicted_workload": 5, "confidence_score": 0.6, "recommendations": "n/a"}', 2, START
        )
        assert forecast["recommendations"]["capacity_planning"]
        assert forecast["daily_breakdown"] == default_daily_breakdown(5.0, 2, START)

    @pytest.mark.parametrize(
        "text",
        [
            "No forecast today",
            '{"confidence_score": 0.5}',
            '{"predicted_workload": "eight", "confidence_score": 0.5}',
            '{"predicted_workload": true, "confidence_score": 0.5}',
            '{"predicted_workload": 8}',
        ],
    )
    def test_unusable_reply(self, text):
        with pytest.raises(AIResponseParseError):
            parse_forecast(text, 7, START)


class TestSummaries:
    def test_no_metrics(self):
        assert summarize_metrics([]) == "No historical metrics available - this is a new workspace."

    def test_metrics(self):
        rows = [
            {"date": "2026-02-27", "task_count": 4, "completed_tasks": 2, "hours_worked": 6, "productivity_score": 0.5},
            {"date": "2026-02-28", "task_count": 6, "completed_tasks": 4, "hours_worked": 8, "productivity_score": 0.7},
        ]
        summary = summarize_metrics(rows)
        assert "- Average daily task count: 5.0" in summary
        assert "- Average hours worked: 7.0" in summary
        assert "- Completion rate: 60.0%" in summary
        assert "2026-02-28: 6 tasks, 4 completed, 8h, productivity: 0.7" in summary

    def test_no_pipeline(self):
        assert summarize_pipeline([], START) == "No pending tasks found."

    def test_pipeline(self):
        rows = [
            {"title": "Late", "priority": "high", "status": "todo", "due_date": date(2026, 3, 1), "estimated_hours": 3},
            {"title": "Soon", "priority": "high", "status": "in-progress", "due_date": date(2026, 3, 5), "estimated_hours": 2.5},
        ] + [
            {"title": f"Backlog {i}", "priority": "low", "status": "todo", "due_date": None, "estimated_hours": None}
            for i in range(10)
        ]
        summary = summarize_pipeline(rows, START)
        assert "- Total pending tasks: 12" in summary
        assert "- Priority distribution: high: 2, low: 10" in summary
        assert "- Overdue tasks: 1" in summary
        assert "- Estimated hours (where available): 5.5" in summary
        assert '- "Late" (high priority, todo, due: 2026-03-01, est: 3h)' in summary
        assert "... and 2 more tasks" in summary
