from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging
import uuid

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pipetrade.models.user import User, Role
from pipetrade.core.security import (
    verify_and_check_needs_rehash,
    get_password_hash,
    create_access_token,
)
from pipetrade.config import settings
from pipetrade.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service for user login, tokens and user management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def authenticate_user(
        self,
        email: str,
        password: str
    ) -> Optional[User]:
        """
        Authenticate a user by email and password.

        bcrypt hashes are accepted and transparently migrated to argon2.

        Returns:
            User object if authentication successful, None otherwise
        """
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()

        if user is None:
            return None

        is_valid, needs_rehash = verify_and_check_needs_rehash(password, user.password_hash)
        if not is_valid or not user.is_active:
            return None

        if needs_rehash:
            user.password_hash = get_password_hash(password)

        return user

    async def create_tokens(self, user: User) -> Tuple[str, int]:
        """
        Create an access token for a user.

        Returns:
            Tuple of (access_token, expires_in_seconds)
        """
        access_token = create_access_token(
            subject=user.id,
            additional_claims={"email": user.email, "role": user.role},
        )
        expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

        user.last_login_at = datetime.now(timezone.utc)
        await self.db.commit()
        logger.info("User %s logged in", user.email)

        return access_token, expires_in

    # ==================== User management ====================

    async def list_users(self, role: Optional[str] = None) -> List[User]:
        query = select(User).order_by(User.name)
        if role:
            query = query.where(User.role == role)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_user(self, user_id: uuid.UUID) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return user

    async def create_user(self, data: UserCreate) -> User:
        email = data.email.lower()
        existing = await self.db.execute(select(User).where(User.email == email))
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"A user with email {email} already exists"
            )

        user = User(
            email=email,
            name=data.name,
            password_hash=get_password_hash(data.password),
            role=data.role.value,
            is_active=True,
        )
        self.db.add(user)
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Created user %s with role %s", user.email, user.role)
        return user

    async def update_user(self, user_id: uuid.UUID, data: UserUpdate) -> User:
        user = await self.get_user(user_id)
        update_data = data.model_dump(exclude_unset=True)

        if "password" in update_data:
            password = update_data.pop("password")
            if password:
                user.password_hash = get_password_hash(password)
        if update_data.get("role") is not None:
            update_data["role"] = Role(update_data["role"]).value

        for field, value in update_data.items():
            if value is not None:
                setattr(user, field, value)

        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def ensure_default_admin(self) -> Optional[User]:
        """Create the first ADMIN user on an empty database."""
        result = await self.db.execute(select(User.id).limit(1))
        if result.first() is not None:
            return None

        admin = User(
            email=settings.DEFAULT_ADMIN_EMAIL.lower(),
            name="Administrator",
            password_hash=get_password_hash(settings.DEFAULT_ADMIN_PASSWORD),
            role=Role.ADMIN.value,
            is_active=True,
        )
        self.db.add(admin)
        await self.db.commit()
        logger.info("Seeded default admin user %s", admin.email)
        return admin
