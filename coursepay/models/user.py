"""CoursePay - User model."""

import uuid
from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from coursepay.utils.helpers import utc_now


class UserRole(str, Enum):
    """User roles for access control."""

    STUDENT = "student"
    EDUCATOR = "educator"
    ADMIN = "admin"


class User(SQLModel, table=True):
    """User model - synced from Clerk by the accounts service.

    Read-only from the payment service's perspective.

    Attributes:
        id: UUID primary key
        clerk_id: Unique Clerk user ID (indexed)
        email: User email address
        name: Display name
        role: User role for access control
        is_active: Account status
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    clerk_id: str = Field(max_length=255, unique=True, index=True)
    email: str = Field(max_length=255, index=True)
    name: str = Field(max_length=255)
    role: UserRole = Field(default=UserRole.STUDENT)
    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
