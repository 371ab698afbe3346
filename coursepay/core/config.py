"""CoursePay - Core Configuration."""

from functools import lru_cache

from pydantic import Field, MySQLDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "CoursePay"
    debug: bool = False
    allowed_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Database
    database_url: MySQLDsn = Field(..., description="MySQL connection string with aiomysql driver")

    # Clerk Authentication
    clerk_secret_key: str = Field(..., description="Clerk secret key")

    # Razorpay
    razorpay_key_id: str = Field(..., description="Razorpay key id (public, sent to checkout)")
    razorpay_key_secret: str = Field(
        ..., description="Razorpay key secret, also signs checkout callbacks"
    )
    razorpay_webhook_secret: str = Field(
        default="", description="Razorpay webhook secret (webhooks rejected when empty)"
    )
    razorpay_api_url: str = Field(
        default="https://api.razorpay.com/v1",
        description="Razorpay REST API base URL",
    )
    gateway_timeout_seconds: float = Field(
        default=30.0, description="Timeout for Razorpay API calls in seconds"
    )

    # Payment settings
    payment_currency: str = Field(default="INR", description="Currency of course prices")

    # Redis (for task queue)
    redis_url: str = Field(
        default="redis://localhost:6379",
        description="Redis connection URL for task queue",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Allowed CORS origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()  # type: ignore[call-arg]
