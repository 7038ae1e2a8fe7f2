import pytest
from pydantic import ValidationError

from foliovault.app.core.config import Settings


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ('["http://localhost:5173"]', ["http://localhost:5173"]),
        ("https://a.example, https://b.example", ["https://a.example", "https://b.example"]),
        ("*", ["*"]),
        ("[]", []),
        ("", []),
    ],
)
def test_cors_origins_parsing_variants(monkeypatch, raw: str, expected: list[str]) -> None:
    monkeypatch.setenv("CORS_ORIGINS", raw)

    settings = Settings(_env_file=None)
    assert settings.cors_origins == expected


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)

    settings = Settings(_env_file=None)

    assert settings.binance_base_url == "https://api.binance.com"
    assert settings.binance_recv_window_ms == 5000
    assert settings.rate_limit_sweep_interval_seconds == 60.0
    assert settings.database_url.startswith("postgresql+asyncpg://")


def test_database_url_override(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./foliovault.db")

    assert Settings(_env_file=None).database_url == "sqlite+aiosqlite:///./foliovault.db"


def test_encryption_key_must_be_64_hex(monkeypatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "not-a-key")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

    monkeypatch.setenv("ENCRYPTION_KEY", "ab" * 32)
    assert Settings(_env_file=None).encryption_key == "ab" * 32


@pytest.mark.parametrize("value", ["0", "60001"])
def test_recv_window_bounds(monkeypatch, value: str) -> None:
    monkeypatch.setenv("BINANCE_RECV_WINDOW_MS", value)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
