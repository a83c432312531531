"""Mention inbox and member lookup endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.mention import Mention
from taskflow.services.mention import MentionService
from taskflow.services.workspace import WorkspaceService

router = APIRouter()


class MentionerSummary(BaseModel):
    id: UUID
    display_name: str | None
    email: str
    avatar_url: str | None

    class Config:
        from_attributes = True


class MentionResponse(BaseModel):
    """A mention of the caller."""

    id: UUID
    workspace_id: UUID
    mentioned_user_id: UUID
    mentioner_user_id: UUID
    entity_type: str
    entity_id: UUID
    content_excerpt: str | None
    context_url: str | None
    is_read: bool
    created_at: datetime
    mentioner: MentionerSummary | None = None

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: UUID
    display_name: str | None
    email: str
    avatar_url: str | None
    username: str | None


class CountResponse(BaseModel):
    count: int


@router.get("/", response_model=list[MentionResponse])
async def list_mentions(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    unread_only: bool = Query(False),
    db: AsyncSession = Depends(get_db_session),
) -> list[Mention]:
    """The caller's mentions in a workspace, newest first."""
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await MentionService(db).list_mentions(workspace_id, current_user.id, unread_only)


@router.get("/unread-count", response_model=CountResponse)
async def unread_count(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return {"count": await MentionService(db).unread_count(workspace_id, current_user.id)}


@router.post("/read-all", response_model=CountResponse)
async def mark_all_read(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    return {"count": await MentionService(db).mark_all_read(workspace_id, current_user.id)}


@router.get("/users", response_model=list[UserSummary])
async def search_users(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    q: str = Query("", max_length=100),
    db: AsyncSession = Depends(get_db_session),
) -> list[dict]:
    """Members to offer while typing ``@``; all members when ``q`` is empty."""
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    service = MentionService(db)
    if not q:
        return await service.mentionable_members(workspace_id)
    return await service.search_users(workspace_id, q)


@router.post("/{mention_id}/read", response_model=MentionResponse)
async def mark_read(
    mention_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Mention:
    return await MentionService(db).mark_read(mention_id, current_user.id)


@router.delete("/{mention_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mention(
    mention_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await MentionService(db).delete_mention(mention_id, current_user.id)
