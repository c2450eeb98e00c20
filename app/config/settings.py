"""
Environment configuration for the dine-in coordination service.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)

CASHFREE_ENVIRONMENTS = ("sandbox", "production")


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # Application configuration
    APP_NAME: str = Field(default="Dine-In Coordination API", alias="PROJECT_NAME")
    API_VERSION: str = Field(default="v1", alias="PROJECT_VERSION")
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    TIMEZONE: str = "UTC"
    CORS_ORIGINS: List[str] = Field(default=["*"], alias="BACKEND_CORS_ORIGINS")

    # Database configuration
    DATABASE_URL: str = "sqlite:///./dinein.db"
    DATABASE_ECHO: bool = False

    # Floor configuration
    TOTAL_TABLES: int = 20
    DEFAULT_BOOKING_DURATION_MINUTES: int = 60
    BOOKING_ASSIGN_MAX_ATTEMPTS: int = 3

    # Payment gateway (Cashfree PG)
    CASHFREE_APP_ID: Optional[str] = None
    CASHFREE_SECRET_KEY: Optional[SecretStr] = None
    CASHFREE_ENV: str = "sandbox"
    CASHFREE_API_VERSION: str = "2023-08-01"
    PAYMENT_CURRENCY: str = "INR"
    PAYMENT_MAX_ATTEMPTS: int = 4
    PAYMENT_RETRY_DELAY_SECONDS: float = 1.0
    PAYMENT_RETRY_BACKOFF: float = 1.0
    PAYMENT_TIMEOUT_SECONDS: float = 5.0
    PAYMENT_WEBHOOK_VERIFY: bool = True
    GATEWAY_ORDER_PREFIX: str = "RESTRO"

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "colored"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    # Validators
    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS_ORIGINS from string to list"""
        if isinstance(v, str):
            # Handle JSON string format from .env
            if v.startswith('[') and v.endswith(']'):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator('TOTAL_TABLES', 'DEFAULT_BOOKING_DURATION_MINUTES',
                     'BOOKING_ASSIGN_MAX_ATTEMPTS', 'PAYMENT_MAX_ATTEMPTS')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator('PAYMENT_RETRY_DELAY_SECONDS', 'PAYMENT_TIMEOUT_SECONDS')
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator('PAYMENT_RETRY_BACKOFF')
    @classmethod
    def validate_backoff(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("backoff multiplier must be >= 1.0")
        return v

    @field_validator('CASHFREE_ENV')
    @classmethod
    def validate_cashfree_env(cls, v: str) -> str:
        """Normalise the gateway environment name"""
        value = v.strip().lower()
        # The gateway SDKs call sandbox "TEST"
        if value == "test":
            value = "sandbox"
        if value not in CASHFREE_ENVIRONMENTS:
            raise ValueError(f"CASHFREE_ENV must be one of {CASHFREE_ENVIRONMENTS}")
        return value

    def get_cashfree_secret(self) -> Optional[str]:
        """Plain gateway secret, or None when not configured"""
        if self.CASHFREE_SECRET_KEY is None:
            return None
        return self.CASHFREE_SECRET_KEY.get_secret_value()

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
