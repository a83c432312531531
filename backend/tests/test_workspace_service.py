"""Tests for membership rules and invitations."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from taskflow.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from taskflow.services.permissions import default_permissions
from taskflow.services.workspace import WorkspaceService

from tests.factories import make_member


def repository(**methods):
    repo = MagicMock()
    for name in ("get", "get_by", "list", "create", "update", "delete"):
        setattr(repo, name, AsyncMock(return_value=methods.get(name)))
    repo.update.side_effect = _apply
    return repo


async def _apply(instance, **values):
    for name, value in values.items():
        setattr(instance, name, value)
    return instance


@pytest.fixture
def service(mock_db):
    service = WorkspaceService(mock_db)
    service.members = repository()
    service.invitations = repository()
    service.workspaces = repository()
    return service


def invitation(workspace_id, **overrides):
    values = {
        "id": uuid4(),
        "workspace_id": workspace_id,
        "email": "ada@example.com",
        "role": "manager",
        "permissions": default_permissions("manager"),
        "accepted_at": None,
        "expires_at": datetime.now(timezone.utc) + timedelta(days=1),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def ada(user_id):
    return SimpleNamespace(id=user_id, email="Ada@Example.com")


class TestRequireMember:
    @pytest.mark.asyncio
    async def test_non_member(self, service, workspace_id, user_id):
        with pytest.raises(PermissionDeniedError):
            await service.require_member(workspace_id, user_id)

    @pytest.mark.asyncio
    async def test_member_without_permission(self, service, workspace_id, user_id):
        service.members.get_by.return_value = make_member(user_id, "Gus", role="guest")

        with pytest.raises(PermissionDeniedError, match="Only editors"):
            await service.require_member(
                workspace_id, user_id, "tasks", "update", message="Only editors can do that"
            )

    @pytest.mark.asyncio
    async def test_member_with_permission(self, service, workspace_id, user_id):
        member = make_member(user_id, "Mo", role="member")
        service.members.get_by.return_value = member

        assert await service.require_member(workspace_id, user_id, "tasks", "update") is member
        service.members.get_by.assert_awaited_once_with(
            workspace_id=workspace_id, user_id=user_id, status="active"
        )

    @pytest.mark.asyncio
    async def test_custom_matrix_overrides_role(self, service, workspace_id, user_id):
        service.members.get_by.return_value = make_member(
            user_id, "Gus", role="guest", permissions={"tasks": {"update": True}}
        )
        await service.require_member(workspace_id, user_id, "tasks", "update")


class TestOwnerProtections:
    @pytest.mark.asyncio
    async def test_owner_cannot_be_removed(self, service, workspace_id, user_id):
        service.members.get_by.return_value = make_member(user_id, "Olive", role="owner")
        with pytest.raises(PermissionDeniedError):
            await service.remove_member(workspace_id, uuid4())
        service.members.update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_owner_role_is_fixed(self, service, workspace_id, user_id):
        service.members.get_by.return_value = make_member(user_id, "Olive", role="owner")
        with pytest.raises(PermissionDeniedError):
            await service.update_member_role(workspace_id, uuid4(), "admin")

    @pytest.mark.asyncio
    async def test_owner_cannot_leave(self, service, workspace_id, user_id):
        service.members.get_by.return_value = make_member(user_id, "Olive", role="owner")
        with pytest.raises(InvalidRequestError):
            await service.leave_workspace(workspace_id, user_id)

    @pytest.mark.asyncio
    async def test_remove_member_deactivates(self, service, workspace_id, user_id):
        member = make_member(user_id, "Mo")
        service.members.get_by.return_value = member

        await service.remove_member(workspace_id, member.id)

        assert member.status == "inactive"

    @pytest.mark.asyncio
    async def test_role_change_resets_permissions(self, service, workspace_id, user_id):
        member = make_member(user_id, "Mo", permissions={"tasks": {"delete": True}})
        service.members.get_by.return_value = member

        await service.update_member_role(workspace_id, member.id, "guest")

        assert member.role == "guest"
        assert member.permissions == default_permissions("guest")

    @pytest.mark.asyncio
    async def test_unknown_role(self, service, workspace_id):
        with pytest.raises(InvalidRequestError):
            await service.update_member_role(workspace_id, uuid4(), "superuser")


class TestInvitations:
    @pytest.mark.asyncio
    async def test_cannot_invite_owner(self, service, workspace_id, user_id):
        with pytest.raises(InvalidRequestError):
            await service.create_invitation(workspace_id, "a@example.com", "owner", user_id)

    @pytest.mark.asyncio
    async def test_invitation_defaults(self, service, workspace_id, user_id):
        service.invitations.create.return_value = SimpleNamespace(id=uuid4())

        await service.create_invitation(workspace_id, "Ada@Example.com", "member", user_id)

        values = service.invitations.create.await_args.kwargs
        assert values["email"] == "ada@example.com"
        assert values["permissions"] == default_permissions("member")
        assert len(values["token"]) == 32
        assert values["expires_at"] > datetime.now(timezone.utc) + timedelta(days=6)

    @pytest.mark.asyncio
    async def test_accept_creates_membership(self, service, workspace_id, ada):
        pending = invitation(workspace_id)
        service.invitations.get_by.return_value = pending
        service.members.create.return_value = make_member(ada.id, "Ada", role="manager")

        await service.accept_invitation("tok", ada)

        service.invitations.get_by.assert_awaited_once_with(token="tok", email="ada@example.com")
        values = service.members.create.await_args.kwargs
        assert values["role"] == "manager"
        assert values["status"] == "active"
        assert pending.accepted_at is not None

    @pytest.mark.asyncio
    async def test_accept_reactivates_former_member(self, service, workspace_id, ada):
        service.invitations.get_by.return_value = invitation(workspace_id, role="admin")
        former = make_member(ada.id, "Ada", status="inactive")
        service.members.get_by.return_value = former

        member = await service.accept_invitation("tok", ada)

        assert member is former
        assert (former.status, former.role) == ("active", "admin")
        service.members.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_accept_when_already_member(self, service, workspace_id, ada):
        service.invitations.get_by.return_value = invitation(workspace_id)
        service.members.get_by.return_value = make_member(ada.id, "Ada")

        with pytest.raises(ConflictError):
            await service.accept_invitation("tok", ada)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"accepted_at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
            {"expires_at": datetime(2024, 1, 1, tzinfo=timezone.utc)},
        ],
    )
    async def test_accept_used_or_expired(self, service, workspace_id, ada, overrides):
        service.invitations.get_by.return_value = invitation(workspace_id, **overrides)

        with pytest.raises(NotFoundError):
            await service.accept_invitation("tok", ada)

    @pytest.mark.asyncio
    async def test_accept_unknown_or_missing_token(self, service, ada):
        with pytest.raises(NotFoundError):
            await service.accept_invitation("tok", ada)
        with pytest.raises(InvalidRequestError):
            await service.accept_invitation("", ada)
