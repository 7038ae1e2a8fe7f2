import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from foliovault.app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        Index("idx_users_email", "email"),
        Index("idx_users_token_hash", "api_token_hash"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    email: Mapped[str] = mapped_column(String, unique=True)
    name: Mapped[str] = mapped_column(String)
    api_token_hash: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class ExchangeApiKey(Base):
    """Encrypted Binance credentials owned by a user.

    Whether a key may trade is inferred from its label: labels containing
    "read" (any case) are treated as read-only.
    """

    __tablename__ = "exchange_api_keys"
    __table_args__ = (
        Index("idx_exchange_keys_user_active", "user_id", "is_active"),
        Index("idx_exchange_keys_created", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    exchange: Mapped[str] = mapped_column(String(32), default="binance")
    label: Mapped[str] = mapped_column(String(100), default="Default")
    encrypted_api_key: Mapped[str] = mapped_column(Text)
    encrypted_secret: Mapped[str] = mapped_column(Text)
    permissions: Mapped[str] = mapped_column(String(100), default="read")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def decrypt_api_key(self) -> str:
        from foliovault.app.core.security import decrypt_secret

        return decrypt_secret(self.encrypted_api_key)

    def decrypt_secret_key(self) -> str:
        from foliovault.app.core.security import decrypt_secret

        return decrypt_secret(self.encrypted_secret)
