"""
Application configuration with Pydantic Settings for validation and type safety.
Supports environment-specific configurations and .env file loading.
"""

from decimal import Decimal
from enum import Enum
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Environment(str, Enum):
    """Application environment types"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """
    Application settings with validation.
    Settings are loaded from environment variables or .env file.
    """

    # Application settings
    app_name: str = Field(default="HomeChef", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT, description="Application environment"
    )
    debug: bool = Field(default=False, description="Debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")

    # Database settings
    database_url: str = Field(
        default="postgresql+psycopg2://homechef@localhost:5432/homechef",
        description="SQLAlchemy database URL",
    )
    db_echo: bool = Field(default=False, description="SQLAlchemy echo SQL statements")
    db_init_attempts: int = Field(
        default=8, ge=1, description="Database initialization retry attempts"
    )
    db_init_delay_sec: float = Field(
        default=2.0, ge=0, description="Delay between DB init attempts"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="%(asctime)s %(levelname)s %(name)s: %(message)s",
        description="Log format string",
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8081"],
        description="Allowed CORS origins (web client and Expo dev server)",
    )
    cors_allow_credentials: bool = Field(
        default=True, description="Allow CORS credentials"
    )
    cors_allow_methods: list[str] = Field(
        default=["*"], description="Allowed HTTP methods"
    )
    cors_allow_headers: list[str] = Field(
        default=["*"], description="Allowed HTTP headers"
    )

    # API settings
    api_prefix: str = Field(default="", description="API route prefix")
    api_title: str = Field(
        default="HomeChef API", description="API documentation title"
    )
    api_description: str = Field(
        default="Order lifecycle and moderated order chat for the HomeChef marketplace",
        description="API documentation description",
    )

    # Chat moderation
    chat_max_attachment_bytes: int = Field(
        default=5 * 1024 * 1024, ge=1, description="Maximum chat attachment size"
    )
    chat_moderation_block_any_digit: bool = Field(
        default=False,
        description="Reject any chat message that contains a digit",
    )
    chat_auto_reply_enabled: bool = Field(
        default=True, description="Post a scripted delivery-partner reply"
    )
    chat_auto_reply_delay_sec: float = Field(
        default=2.0, ge=0, description="Delay before the scripted reply"
    )

    # Order pricing
    order_delivery_fee: Decimal = Field(
        default=Decimal("50.00"), ge=0, description="Flat delivery fee"
    )
    order_tax_rate: Decimal = Field(
        default=Decimal("0.05"), ge=0, le=1, description="Tax rate on the subtotal"
    )

    # Cancellation policy
    cancellation_free_window_sec: int = Field(
        default=30, ge=0, description="Seconds after placement with free cancellation"
    )
    cancellation_penalty_rate: Decimal = Field(
        default=Decimal("0.40"), ge=0, le=1, description="Penalty share of the total"
    )
    cancellation_min_penalty: Decimal = Field(
        default=Decimal("20.00"), ge=0, description="Lower bound of a penalty"
    )
    cancellation_max_penalty: Decimal = Field(
        default=Decimal("500.00"), ge=0, description="Upper bound of a penalty"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        """Validate and normalize environment value"""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment == Environment.DEVELOPMENT

    def is_testing(self) -> bool:
        """Check if running in testing environment"""
        return self.environment == Environment.TESTING

    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


# Global settings instance
settings = Settings()
