"""Liveness and readiness checks."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.config import get_settings
from taskflow.db.errors import is_missing_relation_error
from taskflow.db.session import get_db_session

router = APIRouter()
logger = structlog.get_logger()

# Tables that older deployments may not have migrated yet
OPTIONAL_TABLES = ("comments", "mentions")


@router.get("/health")
async def health_check() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


async def _table_status(db: AsyncSession, table: str) -> str:
    try:
        async with db.begin_nested():
            await db.execute(text(f"SELECT 1 FROM {table} LIMIT 1"))
    except DBAPIError as e:
        if is_missing_relation_error(e):
            return "not_migrated"
        raise
    return "available"


@router.get("/health/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db_session),
) -> dict:
    """Database connectivity, migrated optional features and AI mode."""
    settings = get_settings()
    checks: dict[str, str] = {}

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = "healthy"
        for table in OPTIONAL_TABLES:
            checks[table] = await _table_status(db, table)
    except SQLAlchemyError as e:
        logger.warning("readiness_database_failed", error=str(e))
        checks["database"] = "unhealthy"

    checks["ai"] = (
        "gemini"
        if settings.feature_ai_enabled and settings.gemini_api_key.get_secret_value()
        else "fallback"
    )
    checks["realtime"] = "enabled" if settings.feature_realtime_enabled else "disabled"

    return {
        "status": "healthy" if checks["database"] == "healthy" else "unhealthy",
        "version": settings.app_version,
        "checks": checks,
    }
