"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Forms API"
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3001, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(default="*", description="Allowed CORS origins (comma-separated)")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="text", description="Log format: 'json' or 'text'")
    log_sqlalchemy: bool = Field(default=False, description="Enable SQLAlchemy query logging")

    # Database
    database_url: str = Field(..., description="Database connection string")
    database_pool_size: int = Field(default=5, ge=1, description="Database pool size")

    # Tokens
    jwt_secret: str = Field(..., min_length=1, description="Signing key for identity tokens")
    token_ttl_hours: int = Field(default=24, ge=1, description="Identity token lifetime (hours)")

    # Outbound mail
    smtp_host: str = Field(..., description="SMTP relay host")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP relay port")
    smtp_username: str = Field(..., description="SMTP username")
    smtp_password: str = Field(..., description="SMTP password")
    mail_from: str = Field(
        default="Forms <noreply@forms.local>",
        description="Sender address for submission notifications"
    )

    @field_validator("database_url")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """Point plain PostgreSQL URLs at the asyncpg driver"""
        for prefix in ("postgresql://", "postgres://"):
            if v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix):]
        return v

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
