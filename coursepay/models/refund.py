"""CoursePay - Refund model."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from coursepay.utils.helpers import utc_now


class RefundSpeed(str, Enum):
    """Gateway refund speed."""

    NORMAL = "normal"
    OPTIMUM = "optimum"


class RefundStatus(str, Enum):
    """Refund status as reported by the gateway."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class Refund(SQLModel, table=True):
    """Refund issued through the gateway for a transaction."""

    __tablename__ = "refunds"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    transaction_id: uuid.UUID = Field(foreign_key="transactions.id", index=True)
    gateway_refund_id: str = Field(max_length=64, unique=True, description="Gateway refund ID")
    amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(10, 2), nullable=False),
        description="Refunded amount in major units",
    )
    currency: str = Field(default="INR", max_length=3)
    speed: RefundSpeed = Field(default=RefundSpeed.NORMAL)
    status: RefundStatus = Field(default=RefundStatus.PENDING)
    reason: str | None = Field(default=None, max_length=500)
    requested_by: uuid.UUID | None = Field(default=None, foreign_key="users.id")

    created_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))
