"""Database models for the hackathon starter.

## Security Notes

- Provider tokens are encrypted at rest using Fernet symmetric encryption
- The encryption key is derived from the session secret
- Passwords are stored as bcrypt hashes only

## Schema Overview

```
users
└── oauth_tokens (1:N) - encrypted
sessions (keyed by session id, opaque JSON payload)
```
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models."""

    type_annotation_map = {
        dict[str, Any]: JSON,
    }


class User(Base):
    """User account model.

    Accounts are created either by local signup (email + password) or by
    signing in with a provider. Provider identities live in `oauth_tokens`.
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str | None] = mapped_column(String(255), unique=True)
    password_hash: Mapped[str | None] = mapped_column(String(255))

    # Password reset
    password_reset_token: Mapped[str | None] = mapped_column(String(64), index=True)
    password_reset_expires: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True)
    )

    # Profile
    name: Mapped[str | None] = mapped_column(String(255))
    gender: Mapped[str | None] = mapped_column(String(32))
    location: Mapped[str | None] = mapped_column(String(255))
    website: Mapped[str | None] = mapped_column(String(512))
    picture: Mapped[str | None] = mapped_column(String(512))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    tokens: Mapped[list["OAuthToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan", lazy="selectin"
    )

    def token_for(self, provider: str) -> "OAuthToken | None":
        """Return the stored token for a provider kind, if any."""
        for token in self.tokens:
            if token.provider == provider:
                return token
        return None

    def has_token(self, provider: str) -> bool:
        return self.token_for(provider) is not None

    def __repr__(self) -> str:
        return f"<User {self.email or self.id}>"


class OAuthToken(Base):
    """Tokens for linked providers.

    Tokens are encrypted at rest. The encryption happens in the application
    layer, not at the database level, to allow for key rotation.
    """

    __tablename__ = "oauth_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE")
    )

    # Provider identification
    provider: Mapped[str] = mapped_column(String(32))  # github, twitter, steam, ...
    provider_user_id: Mapped[str] = mapped_column(String(255))

    # Encrypted tokens
    access_token_encrypted: Mapped[str] = mapped_column(Text)
    token_secret_encrypted: Mapped[str | None] = mapped_column(Text)  # OAuth 1.0a
    refresh_token_encrypted: Mapped[str | None] = mapped_column(Text)

    # Token metadata
    token_type: Mapped[str] = mapped_column(String(32), default="Bearer")
    scope: Mapped[str | None] = mapped_column(Text)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship(back_populates="tokens")

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_user_provider"),
        UniqueConstraint("provider", "provider_user_id", name="uq_provider_identity"),
    )

    def __repr__(self) -> str:
        return f"<OAuthToken {self.provider} user_id={self.user_id}>"


class SessionRecord(Base):
    """Server-side session document.

    The payload is owned by the session middleware and is opaque to the
    rest of the application.
    """

    __tablename__ = "sessions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    data: Mapped[dict[str, Any]] = mapped_column(default=dict)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (Index("ix_sessions_expires_at", "expires_at"),)

    def __repr__(self) -> str:
        return f"<SessionRecord {self.id[:8]}...>"


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without tz support."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
