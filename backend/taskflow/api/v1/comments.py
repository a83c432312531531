"""Comment thread and reaction endpoints."""

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.api.v1.auth import CurrentUser
from taskflow.db.session import get_db_session
from taskflow.models.comment import Comment, CommentReaction
from taskflow.services.comment import CommentService
from taskflow.services.workspace import WorkspaceService

router = APIRouter()

ENTITY_PATTERN = "^(task|project|workspace|calendar_event)$"
REACTION_PATTERN = "^(like|love|laugh|thumbs_up|thumbs_down|confused|heart)$"


class CommentCreate(BaseModel):
    """Create a comment or reply."""

    workspace_id: UUID
    entity_type: str = Field(..., pattern=ENTITY_PATTERN)
    entity_id: UUID
    content: str = Field(..., min_length=1, max_length=10000)
    parent_comment_id: UUID | None = None


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    """A single comment row."""

    id: UUID
    workspace_id: UUID
    entity_type: str
    entity_id: UUID
    author_id: UUID
    parent_comment_id: UUID | None
    content: str
    thread_level: int
    is_edited: bool
    edited_at: datetime | None
    mentions: list[Any]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CommentCountResponse(BaseModel):
    count: int


class ReactionRequest(BaseModel):
    reaction_type: str = Field(..., pattern=REACTION_PATTERN)


class ReactionResponse(BaseModel):
    id: UUID
    comment_id: UUID
    user_id: UUID
    reaction_type: str
    created_at: datetime

    class Config:
        from_attributes = True


@router.get("/")
async def list_comments(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    entity_type: str = Query(..., pattern=ENTITY_PATTERN),
    entity_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> list[dict[str, Any]]:
    """Threaded comments on an entity with authors and reactions."""
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return await CommentService(db).list_comments(
        workspace_id, entity_type, entity_id, current_user.id
    )


@router.get("/count", response_model=CommentCountResponse)
async def count_comments(
    current_user: CurrentUser,
    workspace_id: UUID = Query(...),
    entity_type: str = Query(..., pattern=ENTITY_PATTERN),
    entity_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    await WorkspaceService(db).require_member(workspace_id, current_user.id)
    return {"count": await CommentService(db).count_comments(workspace_id, entity_type, entity_id)}


@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    data: CommentCreate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Comment:
    return await CommentService(db).create_comment(
        author_id=current_user.id,
        workspace_id=data.workspace_id,
        entity_type=data.entity_type,
        entity_id=data.entity_id,
        content=data.content,
        parent_comment_id=data.parent_comment_id,
    )


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: UUID,
    data: CommentUpdate,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> Comment:
    return await CommentService(db).update_comment(comment_id, current_user.id, data.content)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await CommentService(db).delete_comment(comment_id, current_user.id)


@router.put("/{comment_id}/reaction", response_model=ReactionResponse)
async def set_reaction(
    comment_id: UUID,
    data: ReactionRequest,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> CommentReaction:
    """Set the caller's reaction, replacing any previous one."""
    return await CommentService(db).add_reaction(comment_id, current_user.id, data.reaction_type)


@router.delete("/{comment_id}/reaction", status_code=status.HTTP_204_NO_CONTENT)
async def remove_reaction(
    comment_id: UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db_session),
) -> None:
    await CommentService(db).remove_reaction(comment_id, current_user.id)
