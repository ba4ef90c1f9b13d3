"""Account routes: local login, signup, password reset, and account settings."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from hackathon_starter.auth.accounts import find_user_by_email, provider_title
from hackathon_starter.auth.gates import current_user
from hackathon_starter.auth.passwords import hash_password, verify_password
from hackathon_starter.auth.providers import PROVIDERS_BY_NAME
from hackathon_starter.config import get_settings
from hackathon_starter.controllers.forms import (
    ForgotForm,
    LoginForm,
    PasswordPair,
    ProfileForm,
    SignupForm,
    read_form,
)
from hackathon_starter.controllers.views import redirect, render
from hackathon_starter.database.connection import get_db_session
from hackathon_starter.database.models import OAuthToken, User, ensure_utc
from hackathon_starter.middleware.flash import flash
from hackathon_starter.middleware.principal import log_in, log_out
from hackathon_starter.middleware.return_to import get_return_to

logger = logging.getLogger(__name__)


async def _account_for(request: Request, db: AsyncSession) -> User:
    """Fetch the signed-in user's row into this request's database session."""
    user = await db.get(User, current_user(request).id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def _user_for_reset_token(db: AsyncSession, token: str) -> User | None:
    result = await db.execute(select(User).where(User.password_reset_token == token))
    user = result.scalar_one_or_none()
    if user is None:
        return None
    expires = ensure_utc(user.password_reset_expires)
    if expires is None or expires <= datetime.now(timezone.utc):
        return None
    return user


async def get_login(request: Request) -> Response:
    if current_user(request):
        return redirect("/")
    return render(request, "account/login", "Login")


async def post_login(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    settings = get_settings()
    form = await read_form(request, LoginForm)
    if form is None:
        return redirect(settings.login_path)

    user = await find_user_by_email(db, form.email)
    if user is None or not verify_password(form.password, user.password_hash):
        flash(request, "errors", "Invalid email or password.")
        return redirect(settings.login_path)

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()

    log_in(request, user)
    flash(request, "success", "Success! You are logged in.")
    logger.info(f"User {user.id} logged in")
    return redirect(get_return_to(request, settings.default_return_path))


async def logout(request: Request) -> Response:
    user = current_user(request)
    if user:
        logger.info(f"User {user.id} logged out")
    log_out(request)
    request.session.destroy()
    return redirect("/")


async def get_signup(request: Request) -> Response:
    if current_user(request):
        return redirect("/")
    return render(request, "account/signup", "Create Account")


async def post_signup(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    settings = get_settings()
    form = await read_form(request, SignupForm)
    if form is None:
        return redirect(settings.signup_path)

    if await find_user_by_email(db, form.email):
        flash(request, "errors", "Account with that email address already exists.")
        return redirect(settings.signup_path)

    user = User(
        email=form.email,
        password_hash=hash_password(form.password),
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(user)
    await db.commit()

    log_in(request, user)
    logger.info(f"User {user.id} signed up")
    return redirect("/")


async def get_account(request: Request) -> Response:
    return render(request, "account/profile", "Account Management")


async def post_update_profile(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    settings = get_settings()
    form = await read_form(request, ProfileForm)
    if form is None:
        return redirect(settings.account_path)

    user = await _account_for(request, db)
    if form.email != user.email:
        existing = await find_user_by_email(db, form.email)
        if existing is not None and existing.id != user.id:
            flash(
                request,
                "errors",
                "The email address you have entered is already associated with an account.",
            )
            return redirect(settings.account_path)

    user.email = form.email
    user.name = form.name
    user.gender = form.gender
    user.location = form.location
    user.website = form.website
    await db.commit()

    flash(request, "success", "Profile information has been updated.")
    return redirect(settings.account_path)


async def post_update_password(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    settings = get_settings()
    form = await read_form(request, PasswordPair)
    if form is None:
        return redirect(settings.account_path)

    user = await _account_for(request, db)
    user.password_hash = hash_password(form.password)
    await db.commit()

    flash(request, "success", "Password has been changed.")
    return redirect(settings.account_path)


async def post_delete_account(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    user = await _account_for(request, db)
    await db.delete(user)
    await db.commit()

    logger.info(f"User {user.id} deleted their account")
    log_out(request)
    flash(request, "info", "Your account has been deleted.")
    return redirect("/")


async def get_oauth_unlink(
    provider: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    settings = get_settings()
    if provider not in PROVIDERS_BY_NAME:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown provider")

    user = await _account_for(request, db)
    result = await db.execute(
        delete(OAuthToken).where(
            OAuthToken.user_id == user.id,
            OAuthToken.provider == provider,
        )
    )
    await db.commit()

    if not result.rowcount:
        flash(request, "errors", f"No {provider_title(provider)} account is linked.")
    else:
        flash(request, "info", f"{provider_title(provider)} account has been unlinked.")
    return redirect(settings.account_path)


async def get_forgot(request: Request) -> Response:
    if current_user(request):
        return redirect("/")
    return render(request, "account/forgot", "Forgot Password")


async def post_forgot(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    settings = get_settings()
    form = await read_form(request, ForgotForm)
    if form is None:
        return redirect("/api/forgot")

    user = await find_user_by_email(db, form.email)
    if user is None:
        flash(request, "errors", "Account with that email address does not exist.")
        return redirect("/api/forgot")

    user.password_reset_token = secrets.token_hex(16)
    user.password_reset_expires = datetime.now(timezone.utc) + timedelta(
        seconds=settings.password_reset_max_age_seconds
    )
    await db.commit()

    # Mail delivery is not wired up; the link is written to the log instead.
    reset_url = f"{settings.base_url.rstrip('/')}/api/reset/{user.password_reset_token}"
    logger.info(f"Password reset link for {user.email}: {reset_url}")

    flash(request, "info", f"Password reset instructions have been issued for {user.email}.")
    return redirect("/api/forgot")


async def get_reset(
    token: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    if current_user(request):
        return redirect("/")

    if await _user_for_reset_token(db, token) is None:
        flash(request, "errors", "Password reset token is invalid or has expired.")
        return redirect("/api/forgot")

    return render(request, "account/reset", "Password Reset", token=token)


async def post_reset(
    token: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    form = await read_form(request, PasswordPair)
    if form is None:
        return redirect(f"/api/reset/{token}")

    user = await _user_for_reset_token(db, token)
    if user is None:
        flash(request, "errors", "Password reset token is invalid or has expired.")
        return redirect("/api/forgot")

    user.password_hash = hash_password(form.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    await db.commit()

    log_in(request, user)
    flash(request, "success", "Success! Your password has been changed.")
    return redirect("/")
