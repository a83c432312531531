"""Task time estimation rules: prompt context, reply parsing, fallback."""

import math
from collections import Counter
from typing import Any, Mapping, Optional, Sequence

from taskflow.ai.exceptions import AIResponseParseError
from taskflow.ai.parsing import clamp, extract_json_object

BASE_HOURS = {"low": 4, "medium": 8, "high": 16, "very_high": 24}
PRIORITY_MULTIPLIERS = {"low": 0.8, "medium": 1.0, "high": 1.2, "urgent": 1.5}
BREAKDOWN_SHARES = {"planning": 0.15, "development": 0.60, "testing": 0.15, "review": 0.10}

MIN_HOURS = 0.5
MAX_HOURS = 200.0
DEFAULT_HOURS = 8.0
TREND_WINDOW = 10
TREND_THRESHOLD = 0.05
TREND_MIN_SAMPLES = 3


def _round1(value: float) -> float:
    # half-up to one decimal place
    return math.floor(value * 10 + 0.5) / 10


def time_breakdown(total_hours: float) -> dict[str, float]:
    """Split an estimate into phases (15/60/15/10 percent)."""
    return {phase: _round1(total_hours * share) for phase, share in BREAKDOWN_SHARES.items()}


def default_estimation_factors() -> dict[str, Any]:
    return {
        "complexity_analysis": "Unable to analyze complexity due to parsing error",
        "priority_impact": "Default priority consideration applied",
        "historical_similarity": "Historical analysis unavailable",
        "risk_factors": ["Data parsing error", "Using fallback estimation"],
        "assumptions": ["Standard task workflow"],
        "methodology": "Fallback rule-based estimation",
    }


def parse_estimation(text: Optional[str]) -> dict[str, Any]:
    """Read the model's estimate, clamping hours to [0.5, 200].

    Raises:
        AIResponseParseError: If the reply holds no JSON object
    """
    parsed = extract_json_object(text)
    if parsed is None:
        raise AIResponseParseError("Failed to parse AI response")

    hours = clamp(parsed.get("estimated_hours"), MIN_HOURS, MAX_HOURS, DEFAULT_HOURS)
    factors = parsed.get("estimation_factors")
    breakdown = parsed.get("time_breakdown")
    recommendations = parsed.get("recommendations")
    try:
        similar = int(parsed.get("similar_tasks_analyzed") or 0)
    except (TypeError, ValueError):
        similar = 0

    return {
        "estimated_hours": hours,
        "confidence_score": clamp(parsed.get("confidence_score"), 0.0, 1.0, 0.5),
        "estimation_factors": factors if isinstance(factors, dict) else default_estimation_factors(),
        "similar_tasks_analyzed": similar,
        "time_breakdown": breakdown if isinstance(breakdown, dict) else time_breakdown(hours),
        "recommendations": recommendations if isinstance(recommendations, list) else [],
    }


def fallback_estimation(
    complexity: str,
    priority: str,
    history_count: int,
) -> dict[str, Any]:
    """Rule-based estimate from complexity and priority alone."""
    base_hours = BASE_HOURS.get(complexity, 8)
    multiplier = PRIORITY_MULTIPLIERS.get(priority, 1.0)
    hours = base_hours * multiplier

    return {
        "estimated_hours": hours,
        "confidence_score": 0.7 if history_count > 5 else 0.4,
        "estimation_factors": {
            "complexity_analysis": f"Task classified as {complexity} complexity, requiring {base_hours} base hours",
            "priority_impact": f"{priority} priority adds {(multiplier - 1) * 100:.0f}% time adjustment",
            "historical_similarity": f"Based on {history_count} historical tasks in workspace",
            "risk_factors": ["Limited historical data", "Rule-based estimation fallback"],
            "assumptions": ["Standard development workflow", "No major blockers expected"],
            "methodology": "Rule-based estimation using complexity and priority factors",
        },
        "similar_tasks_analyzed": history_count,
        "time_breakdown": time_breakdown(hours),
        "recommendations": [
            "Track actual completion time to improve future estimates",
            "Break down complex tasks into smaller subtasks",
            "Consider potential dependencies and blockers",
        ],
    }


def summarize_history(rows: Sequence[Mapping[str, Any]]) -> str:
    """Prompt section describing completed tasks with known effort."""
    if not rows:
        return "No historical task data available for this workspace."

    count = len(rows)
    avg_estimated = sum(r.get("estimated_hours") or 0 for r in rows) / count
    avg_actual = sum(r.get("actual_hours") or 0 for r in rows) / count
    avg_accuracy = sum(r.get("accuracy_score") or 0 for r in rows) / count
    complexity = Counter(r.get("task_complexity") for r in rows)

    lines = [
        f"Historical Task Analysis ({count} tasks):",
        f"- Average estimated time: {avg_estimated:.1f} hours",
        f"- Average actual time: {avg_actual:.1f} hours",
        f"- Average estimation accuracy: {avg_accuracy * 100:.1f}%",
        "- Complexity distribution: " + ", ".join(f"{k}: {v}" for k, v in complexity.items()),
        "",
        "Recent Task Examples:",
    ]
    for r in rows[:5]:
        lines.append(
            f'- "{r.get("task_title")}" ({r.get("task_complexity")} complexity, '
            f'{r.get("task_priority")} priority): Est {r.get("estimated_hours")}h, '
            f'Actual {r.get("actual_hours")}h'
        )
    return "\n".join(lines)


def summarize_current_tasks(rows: Sequence[Mapping[str, Any]]) -> str:
    """Prompt section describing the workspace's open workload."""
    if not rows:
        return "No current tasks available for context analysis."

    statuses = Counter(r.get("status") for r in rows)
    estimated = [r["estimated_hours"] for r in rows if r.get("estimated_hours")]
    avg_estimated = sum(estimated) / len(estimated) if estimated else 0.0
    sample = ", ".join(f'"{r.get("title")}"' for r in rows[:3])

    return "\n".join(
        [
            f"Current Workspace Context ({len(rows)} tasks):",
            "- Status distribution: " + ", ".join(f"{s}: {c}" for s, c in statuses.items()),
            f"- Average estimated time: {avg_estimated:.1f} hours",
            f"- Sample tasks: {sample}",
        ]
    )


def accuracy_score(estimated_hours: Optional[float], actual_hours: float) -> Optional[float]:
    """Ratio of the smaller to the larger of estimate and actual (1.0 is exact).

    None when there was no estimate to compare against.
    """
    if not estimated_hours or estimated_hours <= 0 or actual_hours <= 0:
        return None
    return min(estimated_hours, actual_hours) / max(estimated_hours, actual_hours)


def accuracy_trend(scores_newest_first: Sequence[float]) -> str:
    """Compare the newest window of accuracy scores with the one before it."""
    recent = scores_newest_first[:TREND_WINDOW]
    older = scores_newest_first[TREND_WINDOW:TREND_WINDOW * 2]
    if len(recent) < TREND_MIN_SAMPLES or len(older) < TREND_MIN_SAMPLES:
        return "neutral"
    delta = sum(recent) / len(recent) - sum(older) / len(older)
    if delta > TREND_THRESHOLD:
        return "improving"
    if delta < -TREND_THRESHOLD:
        return "declining"
    return "neutral"


def accuracy_metrics(history: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
    """Summarize recorded completions, newest first, by estimate accuracy."""
    scored = [
        h["accuracy_score"]
        for h in history
        if (h.get("estimated_hours") or 0) > 0 and h.get("accuracy_score") is not None
    ]
    return {
        "average_accuracy": sum(scored) / len(scored) if scored else 0.0,
        "total_completions": len(history),
        "estimated_completions": len(scored),
        "trend": accuracy_trend(scored),
    }
