"""Workspace, member and invitation endpoints."""

from datetime import datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.workspace import Workspace, WorkspaceInvitation, WorkspaceMember
from taskflow.services.workspace import WorkspaceService

router = APIRouter()
logger = structlog.get_logger()

ROLE_PATTERN = "^(owner|admin|manager|member|guest)$"


# Request/Response Models
class WorkspaceCreate(BaseModel):
    """Create a workspace."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    settings: dict = Field(default_factory=dict)


class WorkspaceUpdate(BaseModel):
    """Update a workspace."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    settings: dict | None = None


class WorkspaceResponse(BaseModel):
    """Workspace response."""

    id: UUID
    name: str
    description: str | None
    owner_id: UUID
    settings: dict
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileSummary(BaseModel):
    id: UUID
    email: str
    display_name: str | None
    avatar_url: str | None
    username: str

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    """Workspace member with profile."""

    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: str
    permissions: dict
    status: str
    joined_at: datetime | None
    user: ProfileSummary | None = None

    class Config:
        from_attributes = True


class MemberRoleUpdate(BaseModel):
    role: str = Field(..., pattern=ROLE_PATTERN)


class MemberPermissionsUpdate(BaseModel):
    permissions: dict[str, dict[str, bool]]


class InvitationCreate(BaseModel):
    """Invite someone by email."""

    email: EmailStr
    role: str = Field(default="member", pattern="^(admin|manager|member|guest)$")
    permissions: dict[str, dict[str, bool]] | None = None


class InvitationResponse(BaseModel):
    """Invitation response."""

    id: UUID
    workspace_id: UUID
    email: str
    role: str
    permissions: dict
    token: str
    invited_by: UUID | None
    expires_at: datetime
    accepted_at: datetime | None
    created_at: datetime

    class Config:
        from_attributes = True


class InvitationAccept(BaseModel):
    token: str


# Workspaces
@router.post("/", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    data: WorkspaceCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Workspace:
    """Create a workspace owned by the caller."""
    return await WorkspaceService(db).create_workspace(
        owner_id=current_user.id,
        name=data.name,
        description=data.description,
        settings=data.settings,
    )


@router.get("/", response_model=list[WorkspaceResponse])
async def list_my_workspaces(
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[Workspace]:
    """Workspaces the caller is an active member of."""
    return await WorkspaceService(db).list_user_workspaces(current_user.id)


@router.post("/invitations/accept", response_model=MemberResponse)
async def accept_invitation(
    data: InvitationAccept,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkspaceMember:
    """Redeem an invitation token for the caller."""
    return await WorkspaceService(db).accept_invitation(data.token, current_user)


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
async def get_workspace(
    workspace_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Workspace:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id)
    return await service.get_workspace(workspace_id)


@router.patch("/{workspace_id}", response_model=WorkspaceResponse)
async def update_workspace(
    workspace_id: UUID,
    data: WorkspaceUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Workspace:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "workspace", "manage")
    return await service.update_workspace(workspace_id, **data.model_dump(exclude_unset=True))


# Members
@router.get("/{workspace_id}/members", response_model=list[MemberResponse])
async def list_members(
    workspace_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[WorkspaceMember]:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id)
    return await service.list_members(workspace_id)


@router.patch("/{workspace_id}/members/{member_id}/role", response_model=MemberResponse)
async def update_member_role(
    workspace_id: UUID,
    member_id: UUID,
    data: MemberRoleUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkspaceMember:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "users", "manage")
    return await service.update_member_role(workspace_id, member_id, data.role)


@router.patch("/{workspace_id}/members/{member_id}/permissions", response_model=MemberResponse)
async def update_member_permissions(
    workspace_id: UUID,
    member_id: UUID,
    data: MemberPermissionsUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkspaceMember:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "users", "manage")
    return await service.update_member_permissions(workspace_id, member_id, data.permissions)


@router.delete("/{workspace_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    workspace_id: UUID,
    member_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "users", "manage")
    await service.remove_member(workspace_id, member_id)


@router.post("/{workspace_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_workspace(
    workspace_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await WorkspaceService(db).leave_workspace(workspace_id, current_user.id)


# Invitations
@router.get("/{workspace_id}/invitations", response_model=list[InvitationResponse])
async def list_invitations(
    workspace_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> list[WorkspaceInvitation]:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "users", "invite")
    return await service.list_pending_invitations(workspace_id)


@router.post(
    "/{workspace_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    workspace_id: UUID,
    data: InvitationCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> WorkspaceInvitation:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "users", "invite")
    return await service.create_invitation(
        workspace_id=workspace_id,
        email=data.email,
        role=data.role,
        invited_by=current_user.id,
        permissions=data.permissions,
    )


@router.delete(
    "/{workspace_id}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_invitation(
    workspace_id: UUID,
    invitation_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    service = WorkspaceService(db)
    await service.require_member(workspace_id, current_user.id, "users", "invite")
    await service.revoke_invitation(workspace_id, invitation_id)
