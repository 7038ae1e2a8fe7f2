import json
import os
import re
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # JSON lists are preferred, comma/space separated values are tolerated.
    if raw.startswith("["):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]

    origins: list[str] = []
    for part in (p for p in re.split(r"[,\s]+", raw) if p):
        if part == "*":
            return ["*"]
        if part not in origins:
            origins.append(part)
    return origins


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # PostgreSQL settings
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "foliovault"
    db_password: str = "foliovault"
    db_name: str = "foliovault"

    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 300
    db_command_timeout: float = 30.0

    # Explicit DATABASE_URL (takes priority over db_* settings)
    database_url_override: str = Field(default="", validation_alias="DATABASE_URL")

    @property
    def database_url(self) -> str:
        """Build database connection URL.

        Priority:
        1. database_url_override (from DATABASE_URL env var or .env file)
        2. Built from db_* settings
        """
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}@"
            f"{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # Encryption at rest for exchange credentials (64 hex chars = 32 bytes)
    encryption_key: str = ""

    # Binance settings
    binance_base_url: str = "https://api.binance.com"
    binance_recv_window_ms: int = 5000
    binance_max_retries: int = 3
    binance_retry_base_delay: float = 1.0

    # HTTP client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 30.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Rate limiting settings
    rate_limit_sweep_interval_seconds: float = 60.0
    rate_limit_trust_forwarded_for: bool = True

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["http://localhost:3000"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator("encryption_key")
    @classmethod
    def validate_encryption_key(cls, v: str) -> str:
        """Validate the encryption key is empty or 64 hex characters."""
        v = v.strip()
        if v and not re.fullmatch(r"[0-9a-fA-F]{64}", v):
            raise ValueError("ENCRYPTION_KEY must be a 64-character hex string (32 bytes)")
        return v

    @field_validator("binance_recv_window_ms")
    @classmethod
    def validate_recv_window(cls, v: int) -> int:
        """Binance rejects recvWindow values above 60000 ms."""
        if v < 1 or v > 60000:
            raise ValueError("binance_recv_window_ms must be between 1 and 60000")
        return v

    @field_validator("rate_limit_sweep_interval_seconds", "binance_retry_base_delay")
    @classmethod
    def validate_positive_float(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @field_validator("db_pool_size", "db_max_overflow", "binance_max_retries")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    model_config = SettingsConfigDict(
        env_file=os.getenv("FOLIOVAULT_ENV_FILE", ".env"), extra="ignore"
    )


# Global settings instance
settings = Settings()
