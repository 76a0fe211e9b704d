"""
FarmTrace Backend — Application Configuration
===============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development against a
    SQLite file. Production deployments point DATABASE_URL at PostgreSQL.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///path or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./farmtrace.db",
        description="Async SQLAlchemy connection URL for the world state",
    )

    # Pool sizing applies to server databases only; SQLite uses its own pool
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # Create tables on startup instead of relying on `alembic upgrade head`
    auto_create_schema: bool = Field(default=True)

    # Write the five sample records (keys 1..5) on startup
    seed_ledger: bool = Field(default=True)

    # ── Ledger Encoding ───────────────────────────────────────────────────
    # Separator between fields packed into a single path segment, e.g.
    # /add_produce/6-Apples-300.00-true-12.1, 33.4-Mon Jan 1 2024-Alice
    produce_field_separator: str = Field(default="-", min_length=1, max_length=3)

    # ── Retry Configuration ───────────────────────────────────────────────
    # Tenacity settings for transient storage failures (locked database,
    # dropped connection). Domain errors are never retried.
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: float = Field(default=0.1, ge=0, le=30)
    retry_max_wait: float = Field(default=2.0, ge=0.1, le=120)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()
