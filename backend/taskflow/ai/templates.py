"""Prompt templates for the delay-risk, time-estimation and workload forecast functions."""

from typing import Any

from jinja2 import BaseLoader, Environment, StrictUndefined

from taskflow.ai.exceptions import AIError

# Jinja2 environment for template rendering
_jinja_env = Environment(loader=BaseLoader(), undefined=StrictUndefined, trim_blocks=True)


def render_template(template_str: str, variables: dict[str, Any]) -> str:
    """Render a Jinja2 template string with variables.

    Args:
        template_str: Template string with {{ variable }} placeholders
        variables: Variables to substitute

    Returns:
        Rendered string
    """
    template = _jinja_env.from_string(template_str)
    return template.render(**variables)


# =============================================================================
# Delay Risk Templates
# =============================================================================

TASK_RISK_ASSESSMENT = {
    "template_key": "task_risk_assessment",
    "display_name": "Task Delay Risk",
    "system_prompt": """You are an expert AI project management assistant specializing in delay risk prediction and task analysis.""",
    "user_prompt_template": """Analyze the following task for delay risks and provide a comprehensive risk assessment:

TASK TO ANALYZE:
- ID: {{ task.id }}
- Title: {{ task.title }}
- Description: {{ task.description or 'No description' }}
- Priority: {{ task.priority }}
- Status: {{ task.status }}
- Due Date: {{ task.due_date or 'No due date' }}
- Estimated Hours: {{ task.estimated_hours or 'Not estimated' }}
- Is Blocked: {{ 'Yes' if task.is_blocked else 'No' }}
- Block Reason: {{ task.blocked_reason or 'N/A' }}
- Assignee: {{ task.assignee_name or 'Unassigned' }}

HISTORICAL CONTEXT:
{% for ht in historical_tasks[:10] %}
- Task: {{ ht.title }} | Priority: {{ ht.priority }} | Est: {{ ht.estimated_hours }}h | Status: {{ ht.status }}
{% endfor %}

EXISTING RISK PATTERNS:
{% for p in patterns[:5] %}
- Pattern: {{ p.pattern_name }} | Type: {{ p.pattern_type }} | Frequency: {{ "%.0f"|format(p.frequency_score * 100) }}%
{% endfor %}

Provide your analysis in the following JSON format:
{
  "risk_score": 0.0-1.0,
  "delay_probability": 0.0-1.0,
  "predicted_delay_days": integer,
  "risk_factors": [
    {
      "factor": "factor_name",
      "impact_level": "low|medium|high|critical",
      "confidence": 0.0-1.0,
      "reasoning": "detailed explanation"
    }
  ],
  "recommendations": {
    "immediate_actions": ["action1", "action2"],
    "resource_adjustments": ["adjustment1", "adjustment2"],
    "timeline_suggestions": ["suggestion1", "suggestion2"],
    "risk_mitigations": ["mitigation1", "mitigation2"]
  },
  "confidence_level": 0.0-1.0,
  "ai_reasoning": "comprehensive explanation of the risk assessment"
}

Focus on:
1. Timeline pressure and deadline proximity
2. Task complexity and scope
3. Dependency risks and blockers
4. Resource allocation and team capacity
5. Historical patterns and similar task outcomes
6. External factors and uncertainties

Be precise, actionable, and data-driven in your assessment.""",
}

DELAY_PATTERN_MINING = {
    "template_key": "delay_pattern_mining",
    "display_name": "Delay Pattern Mining",
    "system_prompt": """You analyze project task history to find recurring causes of delay.""",
    "user_prompt_template": """Analyze the following task data to identify new delay risk patterns:

CURRENT TASKS:
{% for t in current_tasks[:20] %}
{{ t.title }} | {{ t.priority }} | {{ t.status }} | {{ t.estimated_hours or 0 }}h
{% endfor %}

HISTORICAL COMPLETED TASKS:
{% for t in historical_tasks[:50] %}
{{ t.title }} | {{ t.priority }} | {{ t.estimated_hours or 0 }}h
{% endfor %}

Identify 3-5 new risk patterns in JSON format:
{
  "patterns": [
    {
      "name": "pattern_name",
      "type": "task_type|user_behavior|timeline|complexity",
      "data": {"key": "value"},
      "frequency": 0.0-1.0,
      "impact": 0.0-1.0,
      "confidence": 0.0-1.0,
      "examples": [{"task_id": "id", "reasoning": "why this fits"}]
    }
  ]
}

Focus on patterns like:
- Task types that consistently face delays
- Estimation accuracy patterns
- Priority vs completion patterns
- Team workload patterns
- Seasonal or timing patterns""",
}


# =============================================================================
# Time Estimation Templates
# =============================================================================

TASK_TIME_ESTIMATE = {
    "template_key": "task_time_estimate",
    "display_name": "Task Time Estimate",
    "system_prompt": """You are an expert AI task estimation system specializing in software development and project management.""",
    "user_prompt_template": """Analyze the following task and provide a detailed time estimation.

TASK TO ESTIMATE:
Title: {{ task_title }}
Description: {{ task_description }}
Priority: {{ task_priority }}
Complexity: {{ task_complexity }}
Project Type: {{ project_type }}

HISTORICAL CONTEXT:
{{ historical_analysis }}

CURRENT WORKSPACE CONTEXT:
{{ current_context }}

ESTIMATION REQUIREMENTS:
1. Provide time estimation in hours (be realistic, consider all phases)
2. Factor in complexity, priority, and historical patterns
3. Consider potential risks and unknowns
4. Account for testing, review, and deployment time
5. Provide confidence score based on available data

Please respond in this exact JSON format:
{
  "estimated_hours": <number>,
  "confidence_score": <number between 0 and 1>,
  "estimation_factors": {
    "complexity_analysis": "<detailed analysis of task complexity>",
    "priority_impact": "<how priority affects timeline>",
    "historical_similarity": "<analysis of similar historical tasks>",
    "risk_factors": ["<risk1>", "<risk2>", "<risk3>"],
    "assumptions": ["<assumption1>", "<assumption2>"],
    "methodology": "<explanation of estimation approach>"
  },
  "similar_tasks_analyzed": <number>,
  "time_breakdown": {
    "planning": <hours for planning/analysis>,
    "development": <hours for implementation>,
    "testing": <hours for testing/QA>,
    "review": <hours for code review and refinement>
  },
  "recommendations": ["<recommendation1>", "<recommendation2>", "<recommendation3>"]
}

Focus on accuracy and provide actionable insights.""",
}


# =============================================================================
# Workload Forecast Templates
# =============================================================================

WORKLOAD_FORECAST = {
    "template_key": "workload_forecast",
    "display_name": "Workload Forecast",
    "system_prompt": """You are an advanced AI workload forecasting system with expertise in project management, resource planning, and productivity analysis.""",
    "user_prompt_template": """CONTEXT:
- Team Size: {{ team_size }} members
- Forecast Period: {{ days_ahead }} days ahead
- Forecast Type: {{ forecast_type }}
- Current Date: {{ today }}

HISTORICAL PERFORMANCE DATA (Last 30 days):
{{ metrics_analysis }}

CURRENT TASK PIPELINE:
{{ tasks_analysis }}

ANALYSIS REQUIREMENTS:
1. Analyze productivity trends and patterns
2. Consider task complexity and priority distribution
3. Account for potential bottlenecks and dependencies
4. Factor in team capacity and workload distribution
5. Identify seasonal or cyclical patterns
6. Assess risk factors that could impact delivery

Please provide your response in this exact JSON format:
{
  "predicted_workload": <number: average hours per day>,
  "confidence_score": <number: 0-1 confidence level>,
  "recommendations": {
    "resource_allocation": "<detailed recommendation>",
    "priority_adjustments": "<specific priority changes>",
    "risk_factors": ["<factor1>", "<factor2>", "<factor3>"],
    "optimization_tips": ["<tip1>", "<tip2>", "<tip3>"],
    "bottleneck_analysis": "<potential bottlenecks and solutions>",
    "capacity_planning": "<team capacity recommendations>"
  },
  "daily_breakdown": [
    {
      "date": "<YYYY-MM-DD>",
      "predicted_hours": <number>,
      "key_tasks": ["<task1>", "<task2>"]
    }
  ]
}

Focus on actionable insights and specific recommendations based on the data patterns you observe.""",
}


DEFAULT_TEMPLATES = {
    t["template_key"]: t
    for t in (TASK_RISK_ASSESSMENT, DELAY_PATTERN_MINING, TASK_TIME_ESTIMATE, WORKLOAD_FORECAST)
}


def get_template(template_key: str) -> dict:
    """Get a template by key.

    Raises:
        AIError: If no template is registered under ``template_key``
    """
    template = DEFAULT_TEMPLATES.get(template_key)
    if template is None:
        raise AIError(f"Prompt template '{template_key}' not found", code="AI_TEMPLATE_NOT_FOUND")
    return template
