"""User management endpoints (admin only)."""
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.user import Role, User
from pipetrade.schemas.user import UserCreate, UserUpdate, UserResponse
from pipetrade.services.auth_service import AuthService

router = APIRouter()


@router.get("", response_model=List[UserResponse])
async def list_users(
    db: DB,
    role: Optional[Role] = None,
    current_user: User = Depends(require_access("admin", "read")),
):
    """List users, optionally filtered by role."""
    return await AuthService(db).list_users(role.value if role else None)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    db: DB,
    current_user: User = Depends(require_access("admin", "write")),
):
    """Create a user."""
    return await AuthService(db).create_user(data)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("admin", "read")),
):
    return await AuthService(db).get_user(user_id)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: DB,
    current_user: User = Depends(require_access("admin", "write")),
):
    """Update a user's name, role, active flag or password."""
    return await AuthService(db).update_user(user_id, data)
