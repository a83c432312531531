"""Workload forecast rules: prompt context, reply parsing, fallback."""

from collections import Counter
from datetime import date, timedelta
from typing import Any, Mapping, Optional, Sequence

from taskflow.ai.exceptions import AIResponseParseError
from taskflow.ai.parsing import extract_json_object

FORECAST_TYPES = ("daily", "weekly", "monthly")
DEFAULT_DAYS_AHEAD = 7
MAX_DAYS_AHEAD = 90
DEFAULT_WORKLOAD_HOURS = 8.0
DEFAULT_CONFIDENCE = 0.5
# predicted_workload is stored as NUMERIC(5, 2)
MAX_WORKLOAD_HOURS = 999.99
RECENT_DAYS = 7
PIPELINE_SAMPLE = 10


def default_recommendations() -> dict[str, Any]:
    return {
        "resource_allocation": "Unable to generate specific recommendations due to data parsing error. Please review task distribution manually.",
        "priority_adjustments": "Review high-priority tasks and ensure adequate resources are allocated.",
        "risk_factors": ["Data parsing error", "Limited historical data"],
        "optimization_tips": ["Improve data collection consistency", "Regular workload monitoring"],
        "bottleneck_analysis": "Manual analysis required due to processing error.",
        "capacity_planning": "Review team capacity and adjust task assignments accordingly.",
    }


def default_daily_breakdown(hours: float, days: int, start: date) -> list[dict[str, Any]]:
    """One entry per day from ``start`` predicting ``hours`` each."""
    return [
        {
            "date": (start + timedelta(days=offset)).isoformat(),
            "predicted_hours": hours,
            "key_tasks": ["Task analysis unavailable"],
        }
        for offset in range(days)
    ]


def fallback_forecast(days_ahead: int, start: date) -> dict[str, Any]:
    return {
        "predicted_workload": DEFAULT_WORKLOAD_HOURS,
        "confidence_score": DEFAULT_CONFIDENCE,
        "recommendations": default_recommendations(),
        "daily_breakdown": default_daily_breakdown(DEFAULT_WORKLOAD_HOURS, days_ahead, start),
    }


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def parse_forecast(text: Optional[str], days_ahead: int, start: date) -> dict[str, Any]:
    """Read the model's forecast.

    ``predicted_workload`` and ``confidence_score`` must be numbers; the
    confidence is clamped into [0, 1]. Missing recommendations or daily
    breakdown are replaced with defaults.

    Raises:
        AIResponseParseError: If the reply holds no usable forecast
    """
    parsed = extract_json_object(text)
    if parsed is None:
        raise AIResponseParseError("No valid JSON found in forecast reply")

    workload = _number(parsed.get("predicted_workload"))
    confidence = _number(parsed.get("confidence_score"))
    if workload is None:
        raise AIResponseParseError("Invalid predicted_workload in forecast reply")
    if confidence is None:
        raise AIResponseParseError("Invalid confidence_score in forecast reply")

    workload = max(0.0, min(MAX_WORKLOAD_HOURS, workload))
    recommendations = parsed.get("recommendations")
    breakdown = parsed.get("daily_breakdown")
    return {
        "predicted_workload": workload,
        "confidence_score": max(0.0, min(1.0, confidence)),
        "recommendations": recommendations if isinstance(recommendations, dict) else default_recommendations(),
        "daily_breakdown": (
            breakdown
            if isinstance(breakdown, list)
            else default_daily_breakdown(workload, days_ahead, start)
        ),
    }


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def summarize_metrics(rows: Sequence[Mapping[str, Any]]) -> str:
    """Prompt section describing daily workload metrics, oldest first."""
    if not rows:
        return "No historical metrics available - this is a new workspace."

    task_counts = [r.get("task_count") or 0 for r in rows]
    completed = [r.get("completed_tasks") or 0 for r in rows]
    productivity = [r.get("productivity_score") or 0 for r in rows]
    avg_tasks = _mean(task_counts)
    avg_completed = _mean(completed)
    completion_rate = avg_completed / avg_tasks * 100 if avg_tasks else 0.0

    lines = [
        "Historical Metrics Summary:",
        f"- Average daily task count: {avg_tasks:.1f}",
        f"- Average completed tasks: {avg_completed:.1f}",
        f"- Average hours worked: {_mean([r.get('hours_worked') or 0 for r in rows]):.1f}",
        f"- Average productivity score: {_mean(productivity):.2f}",
        f"- Recent productivity trend: {_mean(productivity[-RECENT_DAYS:]):.2f} (last {RECENT_DAYS} days)",
        f"- Total data points: {len(rows)} days",
        f"- Completion rate: {completion_rate:.1f}%",
        "",
        "Daily Metrics Detail:",
    ]
    for r in rows:
        lines.append(
            f"{r.get('date')}: {r.get('task_count')} tasks, {r.get('completed_tasks')} completed, "
            f"{r.get('hours_worked')}h, productivity: {r.get('productivity_score')}"
        )
    return "\n".join(lines)


def summarize_pipeline(rows: Sequence[Mapping[str, Any]], today: date) -> str:
    """Prompt section describing open tasks ordered by due date."""
    if not rows:
        return "No pending tasks found."

    priorities = Counter(r.get("priority") for r in rows)
    statuses = Counter(r.get("status") for r in rows)
    due = [r["due_date"] for r in rows if r.get("due_date")]
    hours = sum(r.get("estimated_hours") or 0 for r in rows)

    lines = [
        "Task Pipeline Analysis:",
        f"- Total pending tasks: {len(rows)}",
        "- Priority distribution: " + ", ".join(f"{p}: {c}" for p, c in priorities.items()),
        "- Status distribution: " + ", ".join(f"{s}: {c}" for s, c in statuses.items()),
        f"- Tasks with due dates: {len(due)}",
        f"- Overdue tasks: {sum(1 for d in due if d < today)}",
        f"- Estimated hours (where available): {hours:g}",
        "",
        "Task Details:",
    ]
    for r in rows[:PIPELINE_SAMPLE]:
        lines.append(
            f'- "{r.get("title")}" ({r.get("priority")} priority, {r.get("status")}, '
            f'due: {r.get("due_date") or "no date"}, est: {r.get("estimated_hours") or "unknown"}h)'
        )
    if len(rows) > PIPELINE_SAMPLE:
        lines.append(f"... and {len(rows) - PIPELINE_SAMPLE} more tasks")
    return "\n".join(lines)
