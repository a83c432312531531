"""Delay-risk scoring rules shared by the analysis service and its tests.

The model is asked for a JSON assessment. When its reply cannot be read
we return a fixed neutral assessment; when the call itself fails we score
the task with a simple additive formula. Both are marked low confidence.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional

from taskflow.ai.parsing import clamp, extract_json_object, non_negative_int

RECOMMENDATION_KEYS = (
    "immediate_actions",
    "resource_adjustments",
    "timeline_suggestions",
    "risk_mitigations",
)


@dataclass(frozen=True)
class RiskThresholds:
    alert_risk: float = 0.7
    critical_risk: float = 0.8
    alert_delay: float = 0.6
    high_risk: float = 0.6


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def basic_risk_score(task: Mapping[str, Any], today: date) -> float:
    """Additive risk score used when the model cannot be reached.

    +0.4 blocked, +0.3 ``High`` priority, +0.5 overdue or +0.3 due within
    three days, +0.2 for estimates above 40 hours; capped at 1.0.
    """
    score = 0.0
    if task.get("is_blocked"):
        score += 0.4
    if task.get("priority") == "High":
        score += 0.3
    due = _as_date(task.get("due_date"))
    if due is not None:
        days_until_due = (due - today).days
        if days_until_due < 0:
            score += 0.5
        elif days_until_due <= 3:
            score += 0.3
    if (task.get("estimated_hours") or 0) > 40:
        score += 0.2
    return min(score, 1.0)


def basic_delay_probability(task: Mapping[str, Any], today: date) -> float:
    return basic_risk_score(task, today) * 0.8


def fallback_assessment(task: Mapping[str, Any], today: date) -> dict[str, Any]:
    """Assessment used when the model call fails."""
    return {
        "risk_score": basic_risk_score(task, today),
        "delay_probability": basic_delay_probability(task, today),
        "predicted_delay_days": 0,
        "risk_factors": [
            {
                "factor": "ai_unavailable",
                "impact_level": "low",
                "confidence": 0.5,
                "reasoning": "Gemini AI analysis unavailable, using fallback algorithm",
            }
        ],
        "recommendations": {
            "immediate_actions": ["Review task manually"],
            "resource_adjustments": ["Ensure adequate resources"],
            "timeline_suggestions": ["Monitor progress closely"],
            "risk_mitigations": ["Regular check-ins"],
        },
        "confidence_level": 0.3,
        "ai_reasoning": "Gemini AI analysis failed, fallback algorithm used",
    }


def unparseable_assessment() -> dict[str, Any]:
    """Assessment used when the model replied without a readable JSON object."""
    return {
        "risk_score": 0.5,
        "delay_probability": 0.4,
        "predicted_delay_days": 0,
        "risk_factors": [
            {
                "factor": "parsing_error",
                "impact_level": "low",
                "confidence": 0.3,
                "reasoning": "Unable to parse AI response, using fallback values",
            }
        ],
        "recommendations": {
            "immediate_actions": ["Review task manually due to analysis error"],
            "resource_adjustments": ["Ensure adequate resources"],
            "timeline_suggestions": ["Monitor progress closely"],
            "risk_mitigations": ["Regular check-ins recommended"],
        },
        "confidence_level": 0.3,
        "ai_reasoning": "Parsing error occurred, fallback analysis applied",
    }


def parse_risk_assessment(text: Optional[str]) -> dict[str, Any]:
    """Read the model's assessment, clamping every score into range.

    Never raises: unreadable replies give :func:`unparseable_assessment`.
    """
    parsed = extract_json_object(text)
    if parsed is None:
        return unparseable_assessment()

    recommendations = parsed.get("recommendations")
    if not isinstance(recommendations, dict):
        recommendations = {key: [] for key in RECOMMENDATION_KEYS}
    factors = parsed.get("risk_factors")

    return {
        "risk_score": clamp(parsed.get("risk_score"), 0.0, 1.0, 0.0),
        "delay_probability": clamp(parsed.get("delay_probability"), 0.0, 1.0, 0.0),
        "predicted_delay_days": non_negative_int(parsed.get("predicted_delay_days")),
        "risk_factors": [f for f in factors if isinstance(f, dict)] if isinstance(factors, list) else [],
        "recommendations": recommendations,
        "confidence_level": clamp(parsed.get("confidence_level"), 0.0, 1.0, 0.5),
        "ai_reasoning": parsed.get("ai_reasoning") or "AI analysis completed",
    }


def parse_pattern_response(text: Optional[str]) -> list[dict[str, Any]]:
    """Patterns listed in the model's reply; empty when unreadable."""
    parsed = extract_json_object(text)
    if parsed is None:
        return []
    patterns = parsed.get("patterns")
    if not isinstance(patterns, list):
        return []
    return [p for p in patterns if isinstance(p, dict)]


def storable_risk_factors(factors: list[dict[str, Any]], stamp: int) -> list[dict[str, Any]]:
    """Reshape model risk factors into the stored form.

    ``critical`` impact is stored as ``high``.
    """
    stored = []
    for factor in factors:
        impact = factor.get("impact_level", "low")
        stored.append(
            {
                "id": f"{factor.get('factor')}_{stamp}",
                "type": factor.get("factor"),
                "description": factor.get("reasoning"),
                "impact_level": "high" if impact == "critical" else impact,
                "confidence": factor.get("confidence"),
            }
        )
    return stored


def _percent(value: float) -> int:
    # half-up rounding
    return math.floor(value * 100 + 0.5)


def build_alert(
    task: Mapping[str, Any],
    assessment: Mapping[str, Any],
    thresholds: RiskThresholds = RiskThresholds(),
) -> Optional[dict[str, Any]]:
    """Alert fields for a risky task, or None when no alert is warranted."""
    risk = assessment["risk_score"]
    delay = assessment["delay_probability"]
    if risk < thresholds.alert_risk and delay < thresholds.alert_delay:
        return None

    critical = risk >= thresholds.critical_risk
    return {
        "alert_type": "critical_risk" if critical else "high_risk",
        "severity_level": "critical" if critical else "high",
        "alert_message": (
            f'AI detected high risk for task "{task.get("title")}": '
            f"{_percent(risk)}% risk score, {_percent(delay)}% delay probability"
        ),
        "alert_data": {
            "ai_reasoning": assessment.get("ai_reasoning"),
            "risk_factors": assessment.get("risk_factors"),
            "recommendations": assessment.get("recommendations"),
            "confidence": assessment.get("confidence_level"),
        },
    }
