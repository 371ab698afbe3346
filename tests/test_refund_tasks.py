"""Tests for the refund status sync task."""

from decimal import Decimal

import httpx
import pytest

from coursepay.core.exceptions import GatewayError
from coursepay.db import Database
from coursepay.models import (
    Course,
    Enrollment,
    EnrollmentStatus,
    Refund,
    RefundStatus,
    Transaction,
    TransactionStatus,
    User,
)
from coursepay.services.razorpay_service import RazorpayService
from coursepay.tasks.refunds import _sync_refund_status, sync_refund_status
from tests.conftest import GATEWAY_URL, KEY_ID, KEY_SECRET, FakeRazorpay, add_record, fetch_all


@pytest.fixture
async def sync_database(tmp_path):
    """File backed database; the task disposes its engine when done."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'sync.db'}")
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def sync_gateway(fake_razorpay: FakeRazorpay) -> RazorpayService:
    return RazorpayService(
        key_id=KEY_ID,
        key_secret=KEY_SECRET,
        base_url=GATEWAY_URL,
        transport=httpx.MockTransport(fake_razorpay.handler),
    )


@pytest.fixture
async def issued_refund(sync_database, fake_razorpay) -> tuple[User, dict]:
    """Completed purchase refunded at the gateway but not recorded locally."""
    user = await add_record(sync_database, User(clerk_id="user_sync", email="s@example.com", name="Sync"))
    course = await add_record(sync_database, Course(name="Linear Algebra", price=Decimal("499.00")))

    order = fake_razorpay.create_order(49900, notes={"courseId": str(course.id), "userId": str(user.id)})
    payment = fake_razorpay.capture(order["id"])
    transaction = await add_record(
        sync_database,
        Transaction(
            user_id=user.id,
            course_id=course.id,
            amount=Decimal("499.00"),
            status=TransactionStatus.COMPLETED,
            gateway_payment_id=payment["id"],
            gateway_order_id=order["id"],
        ),
    )
    await add_record(
        sync_database,
        Enrollment(user_id=user.id, course_id=course.id, transaction_id=transaction.id),
    )

    fake_razorpay.refund_status = "pending"
    gateway_refund = fake_razorpay.handler(
        httpx.Request(
            "POST",
            f"{GATEWAY_URL}/payments/{payment['id']}/refund",
            json={"speed": "normal", "notes": {"reason": "Course cancelled"}},
            headers={"Authorization": "Basic test"},
        )
    ).json()
    return user, gateway_refund


async def test_sync_records_refund_and_refreshes_status(
    sync_database, sync_gateway, fake_razorpay, issued_refund
):
    user, gateway_refund = issued_refund
    # Gateway finished processing before the sync ran
    fake_razorpay.refunds[gateway_refund["id"]]["status"] = "processed"

    result = await _sync_refund_status(
        sync_database,
        sync_gateway,
        gateway_refund["payment_id"],
        gateway_refund,
        "Course cancelled",
        str(user.id),
    )

    assert result == {"success": True, "refund_id": gateway_refund["id"], "status": "processed"}
    [refund] = await fetch_all(sync_database, Refund)
    assert refund.status == RefundStatus.PROCESSED
    assert refund.amount == Decimal("499.00")
    assert refund.requested_by == user.id
    [transaction] = await fetch_all(sync_database, Transaction)
    assert transaction.status == TransactionStatus.REFUNDED
    assert transaction.refund_reason == "Course cancelled"
    [enrollment] = await fetch_all(sync_database, Enrollment)
    assert enrollment.status == EnrollmentStatus.DROPPED


async def test_sync_is_idempotent(sync_database, sync_gateway, issued_refund):
    user, gateway_refund = issued_refund
    args = (gateway_refund["payment_id"], gateway_refund, "Course cancelled", str(user.id))

    await _sync_refund_status(sync_database, sync_gateway, *args)
    await _sync_refund_status(sync_database, sync_gateway, *args)

    assert len(await fetch_all(sync_database, Refund)) == 1


async def test_sync_gateway_failure_propagates_for_retry(
    sync_database, sync_gateway, fake_razorpay, issued_refund
):
    user, gateway_refund = issued_refund
    fake_razorpay.fail_with = 503

    with pytest.raises(GatewayError):
        await _sync_refund_status(
            sync_database, sync_gateway, gateway_refund["payment_id"], gateway_refund, "Course cancelled"
        )


def test_task_registration():
    assert sync_refund_status.name == "refunds.sync_refund_status"
    assert sync_refund_status.max_retries == 10
