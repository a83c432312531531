"""Tests for delay-risk scoring, reply parsing and alert rules."""

from datetime import date, timedelta

import pytest

from taskflow.ai.risk import (
    RiskThresholds,
    basic_risk_score,
    build_alert,
    fallback_assessment,
    parse_pattern_response,
    parse_risk_assessment,
    storable_risk_factors,
    unparseable_assessment,
)

from tests.factories import TODAY, make_task


class TestBasicRiskScore:
    def test_quiet_task_scores_zero(self):
        assert basic_risk_score(make_task(), TODAY) == 0.0

    def test_blocked_and_high_priority(self):
        task = make_task(is_blocked=True, priority="High")
        assert basic_risk_score(task, TODAY) == pytest.approx(0.7)

    def test_due_soon(self):
        task = make_task(due_date=TODAY + timedelta(days=3))
        assert basic_risk_score(task, TODAY) == pytest.approx(0.3)
        task = make_task(due_date=TODAY + timedelta(days=4))
        assert basic_risk_score(task, TODAY) == 0.0

    def test_due_date_as_iso_string(self):
        task = make_task(due_date=(TODAY - timedelta(days=1)).isoformat())
        assert basic_risk_score(task, TODAY) == pytest.approx(0.5)

    def test_large_estimate(self):
        assert basic_risk_score(make_task(estimated_hours=41), TODAY) == pytest.approx(0.2)
        assert basic_risk_score(make_task(estimated_hours=40), TODAY) == 0.0

    def test_capped_at_one(self):
        task = make_task(
            is_blocked=True,
            priority="High",
            due_date=TODAY - timedelta(days=2),
            estimated_hours=80,
        )
        assert basic_risk_score(task, TODAY) == 1.0


def test_fallback_assessment():
    task = make_task(is_blocked=True, due_date=TODAY - timedelta(days=1))
    result = fallback_assessment(task, TODAY)
    assert result["risk_score"] == pytest.approx(0.9)
    assert result["delay_probability"] == pytest.approx(0.72)
    assert result["risk_factors"][0]["factor"] == "ai_unavailable"
    assert result["confidence_level"] == 0.3


class TestParseRiskAssessment:
    def test_clamps_and_defaults(self):
        reply = """Analysis:
        {"risk_score": 1.7, "delay_probability": -0.2, "predicted_delay_days": 3.9,
         "risk_factors": [{"factor": "scope", "impact_level": "high"}, "junk"],
         "confidence_level": 0}"""
        result = parse_risk_assessment(reply)
        assert result["risk_score"] == 1.0
        assert result["delay_probability"] == 0.0
        assert result["predicted_delay_days"] == 3
        assert result["risk_factors"] == [{"factor": "scope", "impact_level": "high"}]
        assert result["confidence_level"] == 0.5
        assert result["ai_reasoning"] == "AI analysis completed"
        assert result["recommendations"] == {
            "immediate_actions": [],
            "resource_adjustments": [],
            "timeline_suggestions": [],
            "risk_mitigations": [],
        }

    def test_unreadable_reply(self):
        assert parse_risk_assessment("I cannot help with that") == unparseable_assessment()
        result = unparseable_assessment()
        assert (result["risk_score"], result["delay_probability"]) == (0.5, 0.4)
        assert result["risk_factors"][0]["factor"] == "parsing_error"
        assert result["confidence_level"] == 0.3


def test_parse_pattern_response():
    assert parse_pattern_response('{"patterns": [{"name": "late_reviews"}, 3]}') == [
        {"name": "late_reviews"}
    ]
    assert parse_pattern_response('{"patterns": "none"}') == []
    assert parse_pattern_response("nothing") == []


def test_storable_risk_factors_maps_critical_to_high():
    stored = storable_risk_factors(
        [
            {"factor": "deadline", "impact_level": "critical", "confidence": 0.9, "reasoning": "due"},
            {"factor": "scope", "confidence": 0.4},
        ],
        1700000000000,
    )
    assert stored[0] == {
        "id": "deadline_1700000000000",
        "type": "deadline",
        "description": "due",
        "impact_level": "high",
        "confidence": 0.9,
    }
    assert stored[1]["impact_level"] == "low"


class TestBuildAlert:
    def assessment(self, risk, delay):
        return {
            "risk_score": risk,
            "delay_probability": delay,
            "risk_factors": [],
            "recommendations": {},
            "confidence_level": 0.8,
            "ai_reasoning": "because",
        }

    def test_below_thresholds(self):
        assert build_alert(make_task(), self.assessment(0.69, 0.59)) is None

    def test_high_risk(self):
        alert = build_alert(make_task(title="Ship it"), self.assessment(0.75, 0.5))
        assert alert["alert_type"] == "high_risk"
        assert alert["severity_level"] == "high"
        assert alert["alert_message"] == (
            'AI detected high risk for task "Ship it": 75% risk score, 50% delay probability'
        )
        assert alert["alert_data"]["ai_reasoning"] == "because"

    def test_delay_alone_triggers(self):
        alert = build_alert(make_task(), self.assessment(0.5, 0.65))
        assert alert["alert_type"] == "high_risk"

    def test_critical(self):
        alert = build_alert(make_task(title="T"), self.assessment(0.9, 0.125))
        assert alert["alert_type"] == "critical_risk"
        assert alert["severity_level"] == "critical"
        assert alert["alert_message"].endswith("90% risk score, 13% delay probability")

    def test_custom_thresholds(self):
        thresholds = RiskThresholds(alert_risk=0.9, critical_risk=0.95, alert_delay=0.9)
        assert build_alert(make_task(), self.assessment(0.85, 0.5), thresholds) is None
