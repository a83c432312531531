"""API router package."""

from fastapi import APIRouter

from taskflow.api.v1 import (
    ai,
    comments,
    dashboard,
    health,
    mentions,
    realtime,
    recurring,
    tasks,
    workspaces,
)

router = APIRouter()

# Include all API routers
router.include_router(health.router, tags=["Health"])
router.include_router(workspaces.router, prefix="/workspaces", tags=["Workspaces"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(recurring.router, prefix="/recurring-patterns", tags=["Recurring Tasks"])
router.include_router(comments.router, prefix="/comments", tags=["Comments"])
router.include_router(mentions.router, prefix="/mentions", tags=["Mentions"])
router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
router.include_router(ai.router, prefix="/ai", tags=["AI"])
router.include_router(realtime.router, tags=["WebSocket"])
