"""
Request-scoped FastAPI dependencies: bearer-token auth and admin gating.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import User
from app.services.auth import get_auth_service

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to a user row, or 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    principal = await get_auth_service().verify_token(credentials.credentials)
    if principal is None:
        raise _unauthorized("Invalid or expired token")

    user = await db.get(User, principal.user_id)
    if user is None:
        logger.warning(f"Token for unknown user #{principal.user_id}")
        raise _unauthorized("Invalid or expired token")

    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
