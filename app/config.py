"""
Application Configuration
Loads settings from environment variables
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from .env file"""

    # Application
    APP_ENV: str = "development"
    APP_NAME: str = "CE Seminars"
    APP_URL: str = "http://localhost:8000"
    DEBUG: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # 'console' or 'json'

    # Database
    DATABASE_URL: str = "sqlite:///./ce_seminars.db"

    # JWT (tokens are issued by the identity provider)
    JWT_SECRET_KEY: str = "temp-jwt-secret-change-later"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Scheduled sweeps
    CRON_SECRET: Optional[str] = None

    # Email
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    EMAIL_FROM: str = "noreply@ce-seminars.com"
    EMAIL_REPLY_TO: Optional[str] = None

    # Storage (Supabase)
    SUPABASE_URL: Optional[str] = None
    SUPABASE_KEY: Optional[str] = None
    STORAGE_BUCKET: str = "certificates"

    # Seminar defaults
    DEFAULT_TOTAL_SESSIONS: int = 10
    DEFAULT_CREDITS_PER_SESSION: float = 2.0
    MAKEUP_APPROVAL_TTL_DAYS: int = 90
    MIN_SESSIONS_FOR_CERTIFICATE: int = 1
    CERTIFICATE_CODE_PREFIX: str = "CE"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Create global settings instance
settings = Settings()
