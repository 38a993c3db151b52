from typing import Annotated, Optional
import uuid
import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.database import get_db
from pipetrade.core.security import verify_access_token
from pipetrade.core.permissions import AccessChecker
from pipetrade.models.user import User


logger = logging.getLogger(__name__)

# HTTP Bearer security scheme. auto_error is off so a missing header
# gives 401 rather than FastAPI's default 403.
security = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    Dependency to get the current authenticated user.
    Validates the JWT token and returns the active user it names.
    """
    if credentials is None:
        raise _unauthorized()

    payload = verify_access_token(credentials.credentials)
    if payload is None:
        logger.warning("Token verification failed - invalid or expired token")
        raise _unauthorized()

    try:
        user_uuid = uuid.UUID(payload.get("sub", ""))
    except ValueError:
        logger.warning(f"Invalid user id in token: {payload.get('sub')}")
        raise _unauthorized()

    result = await db.execute(select(User).where(User.id == user_uuid))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise _unauthorized()

    return user


async def get_access_checker(
    user: Annotated[User, Depends(get_current_user)],
) -> AccessChecker:
    """Get an AccessChecker for the current user."""
    return AccessChecker(user)


def require_access(module: str, action: str):
    """
    Dependency factory to require an action on a module.

    Usage:
        @router.post("/")
        async def create_grn(current_user: User = Depends(require_access("grn", "write"))):
            ...
    """
    async def access_dependency(
        checker: Annotated[AccessChecker, Depends(get_access_checker)]
    ) -> User:
        checker.check(module, action)
        return checker.user

    return access_dependency


# Type aliases for cleaner endpoint signatures
CurrentUser = Annotated[User, Depends(get_current_user)]
DB = Annotated[AsyncSession, Depends(get_db)]
Access = Annotated[AccessChecker, Depends(get_access_checker)]
