"""API module - route handlers and common dependencies."""

from fastapi import FastAPI

from coursepay.api.deps import CurrentUser, get_gateway

__all__ = [
    "CurrentUser",
    "get_gateway",
    "register_routers",
]


def register_routers(app: FastAPI) -> None:
    """Register all API routers to the application.

    Args:
        app: FastAPI application instance
    """
    # Checkout, history & refunds
    from coursepay.api.payment import router as payment_router

    app.include_router(payment_router)

    # Gateway callbacks
    from coursepay.api.webhooks import router as webhooks_router

    app.include_router(webhooks_router)
