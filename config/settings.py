"""
Configuration settings for the application
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Task enums shared by the store, the services and the extraction prompt
TASK_TYPES = ("clean", "maintenance", "checkin", "checkout", "refill", "message", "custom")
TASK_STATUSES = ("pending", "in_progress", "completed")
TASK_PRIORITIES = ("high", "medium", "low")

# Placeholder listing for tasks not tied to a property
DEFAULT_LISTING_ID = "default"

# Supported identity resolvers
AUTH_MODE_NONE = "none"
AUTH_MODE_TOKEN = "token"
AUTH_MODE_SESSION = "session"


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Stripe billing configuration
    stripe_secret_key: Optional[str] = Field(default=None, alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: Optional[str] = Field(default=None, alias="STRIPE_WEBHOOK_SECRET")
    stripe_price_id: Optional[str] = Field(default=None, alias="STRIPE_PRICE_ID")
    stripe_webhook_tolerance: int = Field(default=300, alias="STRIPE_WEBHOOK_TOLERANCE")

    # Text generation
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    extraction_max_tokens: int = Field(default=1024, alias="EXTRACTION_MAX_TOKENS")

    # Infrastructure configuration
    redis_url: Optional[str] = Field(default=None, alias="REDIS_URL")
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./cohost.db", alias="DATABASE_URL")
    rate_limit_per_minute: int = Field(default=120, alias="RATE_LIMIT_PER_MINUTE")

    # Identity resolution
    auth_mode: str = Field(default=AUTH_MODE_NONE, alias="AUTH_MODE")
    jwt_secret_key: Optional[str] = Field(default=None, alias="JWT_SECRET_KEY")
    default_user_id: Optional[str] = Field(default="default-user", alias="DEFAULT_USER_ID")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Logging
    log_dir: str = Field(default="./logs", alias="LOG_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Render.com deployment configuration
    render: Optional[str] = Field(default=None, alias="RENDER")
    render_external_url: Optional[str] = Field(default=None, alias="RENDER_EXTERNAL_URL")
    render_service_name: Optional[str] = Field(default=None, alias="RENDER_SERVICE_NAME")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.render) or bool(settings.env and settings.env.lower() == "production")
