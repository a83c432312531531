"""Tests for task status transitions and dependencies."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from taskflow.exceptions import ConflictError, InvalidRequestError, NotFoundError
from taskflow.services.task import TaskService, completion_change


def make_task_row(workspace_id):
    return SimpleNamespace(id=uuid4(), workspace_id=workspace_id, status="todo")


class TestCompletionChange:
    def test_completing_stamps_time(self):
        assert completion_change("in_progress", "done")["completed_at"] is not None

    def test_reopening_clears_time(self):
        assert completion_change("done", "todo") == {"completed_at": None}

    @pytest.mark.parametrize("current, new", [("todo", "in-progress"), ("done", "done"), ("todo", "todo")])
    def test_no_change(self, current, new):
        assert completion_change(current, new) == {}


class TestAddDependency:
    @pytest.fixture
    def rows(self, workspace_id):
        before, after = make_task_row(workspace_id), make_task_row(workspace_id)
        return {before.id: before, after.id: after}

    @pytest.fixture
    def service(self, mock_db, rows):
        service = TaskService(mock_db)
        service.tasks = MagicMock(get=AsyncMock(side_effect=rows.get))
        service.dependencies = MagicMock(
            get_by=AsyncMock(return_value=None), create=AsyncMock(return_value=MagicMock())
        )
        return service

    @pytest.mark.asyncio
    async def test_self_dependency(self, service):
        task_id = uuid4()
        with pytest.raises(InvalidRequestError):
            await service.add_dependency(task_id, task_id)

    @pytest.mark.asyncio
    async def test_unknown_type(self, service, rows):
        before, after = rows
        with pytest.raises(InvalidRequestError):
            await service.add_dependency(before, after, dependency_type="sometime")

    @pytest.mark.asyncio
    async def test_duplicate(self, service, rows):
        before, after = rows
        service.dependencies.get_by.return_value = MagicMock()
        with pytest.raises(ConflictError):
            await service.add_dependency(before, after)
        service.dependencies.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_predecessor(self, service, rows):
        _, after = rows
        with pytest.raises(NotFoundError):
            await service.add_dependency(uuid4(), after)
        service.dependencies.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_predecessor_from_other_workspace(self, service, rows):
        _, after = rows
        foreign = make_task_row(uuid4())
        rows[foreign.id] = foreign

        with pytest.raises(InvalidRequestError, match="same workspace"):
            await service.add_dependency(foreign.id, after)
        service.dependencies.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_creates(self, service, rows, user_id):
        before, after = rows

        await service.add_dependency(before, after, created_by=user_id, lag_days=2)

        service.dependencies.create.assert_awaited_once_with(
            predecessor_id=before,
            successor_id=after,
            dependency_type="finish_to_start",
            lag_days=2,
            created_by=user_id,
        )


class TestRemoveDependency:
    @pytest.fixture
    def dependency(self):
        return SimpleNamespace(id=uuid4(), predecessor_id=uuid4(), successor_id=uuid4())

    @pytest.fixture
    def service(self, mock_db, dependency):
        service = TaskService(mock_db)
        service.dependencies = MagicMock(
            get=AsyncMock(return_value=dependency), delete=AsyncMock()
        )
        return service

    @pytest.mark.asyncio
    async def test_removes_from_either_side(self, service, dependency):
        await service.remove_dependency(dependency.successor_id, dependency.id)
        await service.remove_dependency(dependency.predecessor_id, dependency.id)
        assert service.dependencies.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_dependency_of_another_task(self, service, dependency):
        with pytest.raises(NotFoundError):
            await service.remove_dependency(uuid4(), dependency.id)
        service.dependencies.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing(self, service):
        service.dependencies.get.return_value = None
        with pytest.raises(NotFoundError):
            await service.remove_dependency(uuid4(), uuid4())
