import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from pipetrade.database import Base
from pipetrade.db_types import UUIDType


class Role(str, Enum):
    """Functional roles. Each user holds exactly one."""
    SALES = "SALES"
    PURCHASE = "PURCHASE"
    STORES = "STORES"
    QC = "QC"
    ACCOUNTS = "ACCOUNTS"
    MANAGEMENT = "MANAGEMENT"
    ADMIN = "ADMIN"


class User(Base):
    """
    User model for authentication and authorization.
    Access is decided by the single role against the static module matrix.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.SALES.value,
        comment="SALES, PURCHASE, STORES, QC, ACCOUNTS, MANAGEMENT, ADMIN"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<User(email='{self.email}', role='{self.role}')>"
