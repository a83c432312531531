"""Tests for workload figures."""

from datetime import date, datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

from taskflow.services.dashboard import member_workload

DAY = date(2024, 6, 10)


def task(assignee_id, status="todo", completed_at=None, estimated_hours=None):
    return SimpleNamespace(
        assignee_id=assignee_id,
        status=status,
        completed_at=completed_at,
        estimated_hours=estimated_hours,
    )


def test_member_workload():
    me, other = uuid4(), uuid4()
    tasks = [
        task(me, "done", datetime(2024, 6, 10, 15, tzinfo=timezone.utc), 2.5),
        task(me, "done", datetime(2024, 6, 9, 15, tzinfo=timezone.utc), 4),
        task(me, "in_progress"),
        task(other, "done", datetime(2024, 6, 10, 9, tzinfo=timezone.utc), 8),
    ]

    assert member_workload(tasks, me, DAY) == {
        "task_count": 3,
        "completed_tasks": 1,
        "hours_worked": 2.5,
        "productivity_score": 0.33,
    }


def test_member_without_tasks():
    assert member_workload([], uuid4(), DAY) == {
        "task_count": 0,
        "completed_tasks": 0,
        "hours_worked": 0,
        "productivity_score": 0.0,
    }
