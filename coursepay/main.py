"""CoursePay - FastAPI Application."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursepay.api import register_routers
from coursepay.core.config import get_settings
from coursepay.core.exceptions import CoursePayError
from coursepay.db import Database
from coursepay.schemas.payment import PaymentErrorCode, PaymentErrorResponse
from coursepay.services.razorpay_service import RazorpayService

logger = logging.getLogger(__name__)

HTTP_ERROR_CODES = {
    status.HTTP_401_UNAUTHORIZED: PaymentErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: PaymentErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: PaymentErrorCode.NOT_FOUND,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Startup: Create the database engine and the gateway client
    Shutdown: Close gateway connections and dispose the engine
    """
    settings = get_settings()
    app.state.db = Database.from_settings(settings)
    app.state.gateway = RazorpayService.from_settings(settings)
    yield
    await app.state.gateway.close()
    await app.state.db.dispose()


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    body = PaymentErrorResponse(error_code=code, error_message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def coursepay_error_handler(request: Request, exc: CoursePayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code.value} {exc.details}")
    return _error_response(exc.status_code, exc.code.value, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        PaymentErrorCode.VALIDATION_ERROR.value,
        message,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_ERROR_CODES.get(exc.status_code, PaymentErrorCode.INTERNAL_ERROR)
    return _error_response(exc.status_code, code.value, str(exc.detail))


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} failed: {type(exc).__name__}")
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        PaymentErrorCode.INTERNAL_ERROR.value,
        "Internal server error",
    )


def create_app() -> FastAPI:
    """Application factory.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Course Payment API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error envelope
    app.add_exception_handler(CoursePayError, coursepay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(SQLAlchemyError, internal_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    register_routers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


# Application instance
app = create_app()
