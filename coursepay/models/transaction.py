"""CoursePay - Transaction model."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from coursepay.utils.helpers import utc_now


class TransactionStatus(str, Enum):
    """Transaction status.

    State transitions:
    - pending -> completed -> refunded
    - pending -> failed
    Settlement may also create a row directly as completed.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    REFUNDED = "refunded"
    FAILED = "failed"


class Transaction(SQLModel, table=True):
    """One monetary event tied to a course purchase.

    Financial audit record: rows are never deleted. Only settlement creates
    or completes them and only the refund processor marks them refunded.

    Attributes:
        id: UUID primary key
        user_id: Payer
        course_id: Purchased course
        amount: Charged amount, corroborated with the gateway order
        currency: ISO currency code
        status: Transaction status
        gateway_payment_id: Gateway payment ID (unique when present)
        gateway_order_id: Gateway order ID
        created_at: Transaction date
        refund_reason: Reason given for the refund
        refunded_at: Refund time
        refunded_amount: Amount refunded (partial or full)
    """

    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    course_id: uuid.UUID = Field(foreign_key="courses.id", index=True)

    amount: Decimal = Field(
        sa_column=sa.Column(sa.DECIMAL(10, 2), nullable=False),
        description="Charged amount in major units",
    )
    currency: str = Field(default="INR", max_length=3)
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        index=True,
        description="Transaction status",
    )

    # Gateway references
    gateway_payment_id: str | None = Field(
        default=None,
        max_length=64,
        unique=True,
        description="Gateway payment ID",
    )
    gateway_order_id: str = Field(max_length=64, index=True, description="Gateway order ID")

    # Refund
    refund_reason: str | None = Field(default=None, max_length=500)
    refunded_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))
    refunded_amount: Decimal | None = Field(
        default=None,
        sa_column=sa.Column(sa.DECIMAL(10, 2), nullable=True),
    )

    created_at: datetime = Field(
        default_factory=utc_now, index=True, sa_type=sa.DateTime(timezone=True)
    )
    updated_at: datetime = Field(default_factory=utc_now, sa_type=sa.DateTime(timezone=True))
