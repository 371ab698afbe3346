"""CoursePay - Course model."""

import uuid
from datetime import datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from coursepay.utils.helpers import utc_now


class Course(SQLModel, table=True):
    """Course catalogue entry.

    Owned by the course service; the payment service only reads the
    authoritative name and price.
    """

    __tablename__ = "courses"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(max_length=255)
    description: str | None = Field(default=None, max_length=2048)
    educator_id: uuid.UUID | None = Field(default=None, foreign_key="users.id", index=True)
    price: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(10, 2), nullable=False),
        description="Course price in major units",
    )
    created_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))
