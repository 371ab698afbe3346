"""Common FastAPI dependencies for API endpoints."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from coursepay.api.auth import get_current_user
from coursepay.core.config import get_settings
from coursepay.db import get_db
from coursepay.models.user import User
from coursepay.services.order_service import OrderService
from coursepay.services.razorpay_service import RazorpayService
from coursepay.services.refund_service import RefundService
from coursepay.services.settlement_service import SettlementService


def get_gateway(request: Request) -> RazorpayService:
    """Get the gateway client constructed at startup."""
    return request.app.state.gateway


DbSession = Annotated[AsyncSession, Depends(get_db)]
Gateway = Annotated[RazorpayService, Depends(get_gateway)]
CurrentUser = Annotated[User, Depends(get_current_user)]


def get_order_service(db: DbSession, gateway: Gateway) -> OrderService:
    return OrderService(db, gateway, currency=get_settings().payment_currency)


def get_settlement_service(db: DbSession, gateway: Gateway) -> SettlementService:
    return SettlementService(db, gateway)


def get_refund_service(db: DbSession, gateway: Gateway) -> RefundService:
    return RefundService(db, gateway)
