"""Workspace, membership and invitation service."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.db.repository import Repository
from taskflow.exceptions import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from taskflow.models.user import Profile
from taskflow.models.workspace import Workspace, WorkspaceInvitation, WorkspaceMember
from taskflow.services.permissions import ROLES, default_permissions, has_permission

logger = structlog.get_logger()

INVITATION_TTL = timedelta(days=7)


class WorkspaceService:
    """Service for workspaces, their members and pending invitations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.workspaces = Repository(db, Workspace)
        self.members = Repository(db, WorkspaceMember)
        self.invitations = Repository(db, WorkspaceInvitation)

    # =========================================================================
    # Workspaces
    # =========================================================================

    async def create_workspace(
        self,
        owner_id: UUID,
        name: str,
        description: str | None = None,
        settings: dict | None = None,
    ) -> Workspace:
        """Create a workspace and enrol its creator as owner."""
        workspace = await self.workspaces.create(
            name=name,
            description=description,
            owner_id=owner_id,
            settings=settings or {},
        )
        await self.members.create(
            workspace_id=workspace.id,
            user_id=owner_id,
            role="owner",
            permissions=default_permissions("owner"),
            status="active",
            joined_at=datetime.now(timezone.utc),
        )
        logger.info("workspace_created", workspace_id=str(workspace.id), owner_id=str(owner_id))
        return workspace

    async def list_user_workspaces(self, user_id: UUID) -> list[Workspace]:
        result = await self.db.execute(
            select(Workspace)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == user_id, WorkspaceMember.status == "active")
            .order_by(Workspace.name)
        )
        return list(result.scalars().unique().all())

    async def get_workspace(self, workspace_id: UUID) -> Workspace:
        workspace = await self.workspaces.get(workspace_id)
        if workspace is None:
            raise NotFoundError("Workspace")
        return workspace

    async def update_workspace(self, workspace_id: UUID, **values: Any) -> Workspace:
        workspace = await self.get_workspace(workspace_id)
        return await self.workspaces.update(workspace, **values)

    # =========================================================================
    # Membership and authorization
    # =========================================================================

    async def get_membership(self, workspace_id: UUID, user_id: UUID) -> WorkspaceMember | None:
        """Return the caller's active membership, if any."""
        return await self.members.get_by(
            workspace_id=workspace_id, user_id=user_id, status="active"
        )

    async def require_member(
        self,
        workspace_id: UUID,
        user_id: UUID,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Access denied",
    ) -> WorkspaceMember:
        """Return the active membership or raise ``PermissionDeniedError``.

        When ``resource`` and ``action`` are given the membership must also
        grant that permission.
        """
        member = await self.get_membership(workspace_id, user_id)
        if member is None:
            raise PermissionDeniedError(message)
        if resource and action and not has_permission(
            member.role, member.permissions, resource, action
        ):
            logger.warning(
                "permission_denied",
                workspace_id=str(workspace_id),
                user_id=str(user_id),
                resource=resource,
                action=action,
                role=member.role,
            )
            raise PermissionDeniedError(message)
        return member

    async def list_members(self, workspace_id: UUID) -> list[WorkspaceMember]:
        return await self.members.list(
            order_by=(WorkspaceMember.joined_at,),
            workspace_id=workspace_id,
            status="active",
        )

    async def _get_member(self, workspace_id: UUID, member_id: UUID) -> WorkspaceMember:
        member = await self.members.get_by(id=member_id, workspace_id=workspace_id)
        if member is None:
            raise NotFoundError("Member")
        return member

    async def update_member_role(
        self, workspace_id: UUID, member_id: UUID, role: str
    ) -> WorkspaceMember:
        """Change a member's role; permissions reset to the role defaults."""
        if role not in ROLES:
            raise InvalidRequestError(f"Unknown role: {role}")
        member = await self._get_member(workspace_id, member_id)
        if member.role == "owner":
            raise PermissionDeniedError("The workspace owner's role cannot be changed")
        member = await self.members.update(
            member, role=role, permissions=default_permissions(role)
        )
        logger.info("member_role_updated", member_id=str(member_id), role=role)
        return member

    async def update_member_permissions(
        self, workspace_id: UUID, member_id: UUID, permissions: dict
    ) -> WorkspaceMember:
        member = await self._get_member(workspace_id, member_id)
        return await self.members.update(member, permissions=permissions)

    async def remove_member(self, workspace_id: UUID, member_id: UUID) -> None:
        """Deactivate a membership; the owner cannot be removed."""
        member = await self._get_member(workspace_id, member_id)
        if member.role == "owner":
            raise PermissionDeniedError("The workspace owner cannot be removed")
        await self.members.update(member, status="inactive")
        logger.info("member_removed", workspace_id=str(workspace_id), member_id=str(member_id))

    async def leave_workspace(self, workspace_id: UUID, user_id: UUID) -> None:
        member = await self.require_member(workspace_id, user_id)
        if member.role == "owner":
            raise InvalidRequestError("The workspace owner cannot leave the workspace")
        await self.members.update(member, status="inactive")
        logger.info("member_left", workspace_id=str(workspace_id), user_id=str(user_id))

    # =========================================================================
    # Invitations
    # =========================================================================

    async def create_invitation(
        self,
        workspace_id: UUID,
        email: str,
        role: str,
        invited_by: UUID,
        permissions: dict | None = None,
    ) -> WorkspaceInvitation:
        if role not in ROLES or role == "owner":
            raise InvalidRequestError(f"Cannot invite with role: {role}")
        invitation = await self.invitations.create(
            workspace_id=workspace_id,
            email=email.lower(),
            role=role,
            permissions=permissions or default_permissions(role),
            token=uuid.uuid4().hex,
            invited_by=invited_by,
            expires_at=datetime.now(timezone.utc) + INVITATION_TTL,
        )
        logger.info(
            "invitation_created",
            workspace_id=str(workspace_id),
            invitation_id=str(invitation.id),
            role=role,
        )
        return invitation

    async def list_pending_invitations(self, workspace_id: UUID) -> list[WorkspaceInvitation]:
        result = await self.db.execute(
            select(WorkspaceInvitation)
            .where(
                WorkspaceInvitation.workspace_id == workspace_id,
                WorkspaceInvitation.accepted_at.is_(None),
                WorkspaceInvitation.expires_at > datetime.now(timezone.utc),
            )
            .order_by(WorkspaceInvitation.created_at.desc())
        )
        return list(result.scalars().all())

    async def revoke_invitation(self, workspace_id: UUID, invitation_id: UUID) -> None:
        invitation = await self.invitations.get_by(id=invitation_id, workspace_id=workspace_id)
        if invitation is None:
            raise NotFoundError("Invitation")
        await self.invitations.delete(invitation)

    async def accept_invitation(self, token: str, user: Profile) -> WorkspaceMember:
        """Redeem an invitation for ``user``.

        The token must belong to the user's email, be unaccepted and not
        expired.
        """
        if not token:
            raise InvalidRequestError("Missing token or email")

        invitation = await self.invitations.get_by(token=token, email=user.email.lower())
        now = datetime.now(timezone.utc)
        if invitation is None or invitation.accepted_at is not None or invitation.expires_at <= now:
            raise NotFoundError("Invitation", "Invalid or expired invitation")

        existing = await self.members.get_by(
            workspace_id=invitation.workspace_id, user_id=user.id
        )
        if existing is not None and existing.is_active:
            raise ConflictError("You are already a member of this workspace")

        if existing is not None:
            member = await self.members.update(
                existing,
                role=invitation.role,
                permissions=invitation.permissions,
                status="active",
                joined_at=now,
            )
        else:
            member = await self.members.create(
                workspace_id=invitation.workspace_id,
                user_id=user.id,
                role=invitation.role,
                permissions=invitation.permissions,
                status="active",
                joined_at=now,
            )
        await self.invitations.update(invitation, accepted_at=now)

        logger.info(
            "invitation_accepted",
            workspace_id=str(invitation.workspace_id),
            user_id=str(user.id),
            role=invitation.role,
        )
        return member
