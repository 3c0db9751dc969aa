"""JWT handling and the current-user dependency backed by the auth cookie."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from internlink.constants.constants import UserRole
from internlink.core.config import settings
from internlink.core.database import aget_db
from internlink.models.base import utcnow
from internlink.models.user import User

logger = logging.getLogger(__name__)


def create_jwt_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Creates a JWT with the provided claims.

    Args:
        data (dict): The payload, e.g. {"sub": user_id} or the provider
            claims {"gitlab_id", "username", "name", "email"}.
        expires_delta (timedelta, optional): Time until expiry. Defaults to
            ACCESS_TOKEN_EXPIRE_MINUTES.

    Returns:
        str: The encoded token.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "exp": now + expires_delta,
        "iat": now
    })
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> dict:
    """Decodes and validates a JWT; raises jwt.InvalidTokenError on failure."""
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM]
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"⚠️ JWT decode error: {str(e)}")
        raise


async def _provision_gitlab_user(db: AsyncSession, payload: dict) -> User:
    """Create the user on first provider sign-in with the pending role."""
    gitlab_id = str(payload["gitlab_id"])
    username = payload.get("username") or f"gitlab-{gitlab_id}"
    user = User(
        gitlab_id=gitlab_id,
        username=username,
        name=payload.get("name") or username,
        email=payload.get("email"),
        avatar=payload.get("avatar"),
        role=UserRole.pending,
        is_active=True,
        last_login=utcnow(),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"👤 Provisioned user {user.username} from GitLab sign-in")
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(aget_db)
) -> User:
    """
    Dependency to get the current user from the JWT cookie.
    Raises 401 if not authenticated and 403 if the account is inactive.
    """
    token = request.cookies.get(settings.AUTH_COOKIE_NAME)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )

    try:
        payload = decode_jwt_token(token)
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token"
        )

    user_id = payload.get("sub")
    gitlab_id = payload.get("gitlab_id")

    if user_id:
        result = await db.execute(select(User).where(User.user_id == str(user_id)))
        user = result.scalar_one_or_none()
    elif gitlab_id:
        result = await db.execute(select(User).where(User.gitlab_id == str(gitlab_id)))
        user = result.scalar_one_or_none()
        if not user:
            user = await _provision_gitlab_user(db, payload)
    else:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated"
        )

    return user
