"""Bearer token verification.

Tokens are issued by the hosted identity provider; this service only
verifies them and maps the subject to a profile row.
"""

from typing import Annotated, Any
from uuid import UUID

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.config import get_settings
from taskflow.db.session import get_db_session
from taskflow.models.user import Profile

logger = structlog.get_logger()
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and audience; return the claims.

    Raises:
        HTTPException: 401 if the token is invalid
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key.get_secret_value(),
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError as e:
        logger.warning("token_rejected", error=str(e))
        raise _unauthorized("Invalid authentication credentials") from e


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: AsyncSession = Depends(get_db_session),
) -> Profile:
    """Resolve the bearer token to a profile, creating it on first sight."""
    if not credentials:
        raise _unauthorized("Not authenticated")

    claims = decode_token(credentials.credentials)
    try:
        user_id = UUID(str(claims.get("sub")))
    except ValueError as e:
        raise _unauthorized("Invalid authentication credentials") from e

    profile = await db.get(Profile, user_id)
    if profile is None:
        email = claims.get("email")
        if not email:
            raise _unauthorized("User not found")
        metadata = claims.get("user_metadata") or {}
        profile = Profile(
            id=user_id,
            email=email,
            display_name=metadata.get("display_name") or metadata.get("full_name"),
            avatar_url=metadata.get("avatar_url"),
        )
        db.add(profile)
        await db.flush()
        logger.info("profile_created", user_id=str(user_id))

    if not profile.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")
    return profile


# Type alias for dependency injection
CurrentUser = Annotated[Profile, Depends(get_current_user)]
