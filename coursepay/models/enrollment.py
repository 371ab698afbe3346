"""CoursePay - Enrollment model."""

import uuid
from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from coursepay.utils.helpers import utc_now


class EnrollmentStatus(str, Enum):
    """Enrollment status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    DROPPED = "dropped"


class Enrollment(SQLModel, table=True):
    """Grant of course access to a user.

    Created by settlement alongside the completed transaction; one row per
    (user, course).
    """

    __tablename__ = "enrollments"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    course_id: uuid.UUID = Field(foreign_key="courses.id", index=True)
    transaction_id: uuid.UUID | None = Field(default=None, foreign_key="transactions.id")

    status: EnrollmentStatus = Field(default=EnrollmentStatus.ACTIVE)
    enrolled_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))
    completed_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))
    last_accessed_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))

    __table_args__ = (
        sa.UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )
