"""HTTP tests that rows of one workspace stay out of reach from another."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from taskflow.api.v1 import comments, tasks
from taskflow.api.v1.auth import get_current_user
from taskflow.db.session import get_db_session
from taskflow.exceptions import PermissionDeniedError, TaskflowError
from taskflow.main import taskflow_error_handler


@pytest.fixture
def current_user():
    return SimpleNamespace(id=uuid4(), email="ada@example.com", display_name="Ada")


@pytest.fixture
def rows():
    """Rows returned by ``db.get``, keyed by id."""
    return {}


@pytest.fixture
def client(mock_db, current_user, rows):
    mock_db.get = AsyncMock(side_effect=lambda model, id: rows.get(id))

    app = FastAPI()
    app.add_exception_handler(TaskflowError, taskflow_error_handler)
    app.include_router(tasks.router, prefix="/tasks")
    app.include_router(comments.router, prefix="/comments")

    async def db_session():
        yield mock_db

    app.dependency_overrides[get_db_session] = db_session
    app.dependency_overrides[get_current_user] = lambda: current_user
    return TestClient(app)


@pytest.fixture
def require_member():
    with patch("taskflow.api.v1.tasks.WorkspaceService") as tasks_cls, patch(
        "taskflow.api.v1.comments.WorkspaceService"
    ) as comments_cls, patch("taskflow.services.comment.WorkspaceService") as service_cls:
        check = AsyncMock()
        for cls in (tasks_cls, comments_cls, service_cls):
            cls.return_value.require_member = check
        yield check


def add_task(rows, workspace_id):
    task = SimpleNamespace(id=uuid4(), workspace_id=workspace_id, status="todo")
    rows[task.id] = task
    return task


class TestTaskDependencies:
    def test_cannot_remove_dependency_of_another_task(
        self, client, rows, mock_db, require_member, workspace_id
    ):
        own = add_task(rows, workspace_id)
        other = uuid4()
        foreign = SimpleNamespace(id=uuid4(), predecessor_id=uuid4(), successor_id=other)
        rows[foreign.id] = foreign

        response = client.delete(f"/tasks/{own.id}/dependencies/{foreign.id}")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
        mock_db.delete.assert_not_awaited()

    def test_removes_own_dependency(self, client, rows, mock_db, require_member, workspace_id):
        own = add_task(rows, workspace_id)
        dependency = SimpleNamespace(id=uuid4(), predecessor_id=uuid4(), successor_id=own.id)
        rows[dependency.id] = dependency

        response = client.delete(f"/tasks/{own.id}/dependencies/{dependency.id}")

        assert response.status_code == 204
        mock_db.delete.assert_awaited_once_with(dependency)

    def test_cannot_depend_on_task_of_another_workspace(
        self, client, rows, mock_db, require_member, workspace_id
    ):
        own = add_task(rows, workspace_id)
        foreign = add_task(rows, uuid4())

        response = client.post(f"/tasks/{own.id}/dependencies", json={"predecessor_id": str(foreign.id)})

        assert response.status_code == 400
        assert response.json()["error"] == "Both tasks must belong to the same workspace"
        mock_db.add.assert_not_called()

    def test_non_member_cannot_touch_dependencies(
        self, client, rows, mock_db, require_member, workspace_id
    ):
        own = add_task(rows, workspace_id)
        require_member.side_effect = PermissionDeniedError("Not a workspace member")

        response = client.delete(f"/tasks/{own.id}/dependencies/{uuid4()}")

        assert response.status_code == 403
        mock_db.delete.assert_not_awaited()


class TestComments:
    def test_list_is_scoped_to_workspace(self, client, mock_db, require_member, workspace_id):
        response = client.get(
            "/comments/",
            params={"workspace_id": str(workspace_id), "entity_type": "task", "entity_id": str(uuid4())},
        )

        assert response.status_code == 200
        assert response.json() == []
        statement = mock_db.execute.await_args.args[0]
        assert "comments.workspace_id = :workspace_id_1" in str(statement)
        assert workspace_id in statement.compile().params.values()

    def test_cannot_comment_on_task_of_another_workspace(
        self, client, mock_db, require_member, workspace_id
    ):
        owner = MagicMock()
        owner.scalar_one_or_none.return_value = uuid4()
        mock_db.execute = AsyncMock(return_value=owner)

        response = client.post(
            "/comments/",
            json={
                "workspace_id": str(workspace_id),
                "entity_type": "task",
                "entity_id": str(uuid4()),
                "content": "hello",
            },
        )

        assert response.status_code == 404
        assert response.json()["error"] == "Task not found"
        mock_db.add.assert_not_called()

    def test_non_member_cannot_count(self, client, require_member, workspace_id):
        require_member.side_effect = PermissionDeniedError("Not a workspace member")

        response = client.get(
            "/comments/count",
            params={"workspace_id": str(workspace_id), "entity_type": "task", "entity_id": str(uuid4())},
        )

        assert response.status_code == 403
