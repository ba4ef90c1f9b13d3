"""Account lookups and provider linking.

Rules applied when a provider callback completes:

Sign-in providers
- Signed in: link the provider to the current account, unless another
  account already owns that provider identity.
- Signed out: log into the account that owns the identity. Otherwise create
  a new account, unless the provider's email already belongs to an account
  (the user must sign in and link manually).

Authorize-only providers
- Store or refresh the token on the current account.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hackathon_starter.auth.oauth import ProviderIdentity
from hackathon_starter.database.encryption import encrypt_token
from hackathon_starter.database.models import OAuthToken, User

logger = logging.getLogger(__name__)


class AccountConflict(Exception):
    """The requested link or sign-in would merge two accounts."""


def provider_title(provider: str) -> str:
    return {"github": "GitHub", "linkedin": "LinkedIn"}.get(provider, provider.title())


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def find_user_by_identity(
    db: AsyncSession, provider: str, provider_user_id: str
) -> User | None:
    result = await db.execute(
        select(User)
        .join(OAuthToken, OAuthToken.user_id == User.id)
        .where(
            OAuthToken.provider == provider,
            OAuthToken.provider_user_id == provider_user_id,
        )
    )
    return result.scalar_one_or_none()


async def store_token(db: AsyncSession, user: User, identity: ProviderIdentity) -> OAuthToken:
    """Insert or refresh the user's token for `identity.provider`."""
    result = await db.execute(
        select(OAuthToken).where(
            OAuthToken.user_id == user.id,
            OAuthToken.provider == identity.provider,
        )
    )
    token = result.scalar_one_or_none()

    if token is None:
        token = OAuthToken(user_id=user.id, provider=identity.provider)
        db.add(token)

    token.provider_user_id = identity.provider_user_id
    token.access_token_encrypted = encrypt_token(identity.access_token)
    token.token_secret_encrypted = encrypt_token(identity.token_secret)
    if identity.refresh_token:
        token.refresh_token_encrypted = encrypt_token(identity.refresh_token)
    token.token_type = identity.token_type
    token.scope = identity.scope
    token.expires_at = identity.expires_at
    return token


def _fill_profile(user: User, identity: ProviderIdentity) -> None:
    user.name = user.name or identity.name
    user.picture = user.picture or identity.picture


async def sign_in_with_provider(
    db: AsyncSession,
    current: User | None,
    identity: ProviderIdentity,
) -> User:
    """Resolve a sign-in callback to an account.

    Raises:
        AccountConflict: If the identity or its email belongs to another account
    """
    title = provider_title(identity.provider)
    owner = await find_user_by_identity(db, identity.provider, identity.provider_user_id)

    if current is not None:
        if owner is not None and owner.id != current.id:
            raise AccountConflict(
                f"There is already a {title} account that belongs to you. "
                f"Sign in with that account or delete it, then link it with your current account."
            )
        user = await db.get(User, current.id)
        if user is None:
            raise AccountConflict("Your account no longer exists.")
        await store_token(db, user, identity)
        _fill_profile(user, identity)
        await db.commit()
        logger.info(f"Linked {identity.provider} to user {user.id}")
        return user

    if owner is not None:
        await store_token(db, owner, identity)
        owner.last_login_at = datetime.now(timezone.utc)
        await db.commit()
        return owner

    if identity.email and await find_user_by_email(db, identity.email):
        raise AccountConflict(
            f"There is already an account using this email address. Sign in to that "
            f"account and link it with {title} manually from Account Settings."
        )

    user = User(
        email=identity.email.lower() if identity.email else None,
        name=identity.name,
        picture=identity.picture,
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.flush()  # Get user ID
    await store_token(db, user, identity)
    await db.commit()
    logger.info(f"Created user {user.id} from {identity.provider}")
    return user


async def authorize_provider(
    db: AsyncSession,
    current: User,
    identity: ProviderIdentity,
) -> User:
    """Attach an authorize-only provider token to the current account.

    Raises:
        AccountConflict: If another account already linked this identity
    """
    owner = await find_user_by_identity(db, identity.provider, identity.provider_user_id)
    if owner is not None and owner.id != current.id:
        raise AccountConflict(
            f"This {provider_title(identity.provider)} account is already linked to another user."
        )

    user = await db.get(User, current.id)
    if user is None:
        raise AccountConflict("Your account no longer exists.")
    await store_token(db, user, identity)
    await db.commit()
    return user
