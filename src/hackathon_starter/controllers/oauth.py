"""Provider authenticate/authorize routes.

Two handlers are generated per provider from the provider table:

- `GET /api/auth/<provider>` redirects to the provider
- `GET /api/auth/<provider>/callback` completes the flow

Sign-in providers land on `success_redirect` or the recorded return target;
authorize-only providers require a signed-in user. Every failure flashes an
error and redirects to the provider's `failure_redirect`.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from hackathon_starter.auth.accounts import (
    AccountConflict,
    authorize_provider,
    provider_title,
    sign_in_with_provider,
)
from hackathon_starter.auth.gates import current_user
from hackathon_starter.auth.oauth import ProviderRegistry, get_provider_registry
from hackathon_starter.auth.providers import Provider, ProviderError
from hackathon_starter.config import get_settings
from hackathon_starter.controllers.views import redirect
from hackathon_starter.database.connection import get_db_session
from hackathon_starter.middleware.flash import flash
from hackathon_starter.middleware.principal import log_in
from hackathon_starter.middleware.return_to import get_return_to

logger = logging.getLogger(__name__)


def _success_target(request: Request, provider: Provider) -> str:
    if provider.success_redirect:
        return provider.success_redirect
    return get_return_to(request, get_settings().default_return_path)


def start_handler(provider: Provider) -> Callable:
    """Build the handler that sends the user to `provider`."""

    async def start(
        request: Request,
        registry: ProviderRegistry = Depends(get_provider_registry),
    ) -> Response:
        try:
            return await registry.authorize_redirect(request, provider.name)
        except ProviderError as e:
            flash(request, "errors", str(e))
            return redirect(provider.failure_redirect)

    start.__name__ = f"auth_{provider.name}"
    return start


def callback_handler(provider: Provider) -> Callable:
    """Build the handler for `provider`'s callback."""

    async def callback(
        request: Request,
        registry: ProviderRegistry = Depends(get_provider_registry),
        db: AsyncSession = Depends(get_db_session),
    ) -> Response:
        title = provider_title(provider.name)
        user = current_user(request)

        if not provider.is_sign_in and user is None:
            flash(request, "errors", f"Sign in before linking your {title} account.")
            return redirect(provider.failure_redirect)

        try:
            identity = await registry.complete(request, provider.name)
        except ProviderError as e:
            logger.warning(f"{provider.name} callback failed: {e}")
            flash(request, "errors", str(e))
            return redirect(provider.failure_redirect)

        try:
            if provider.is_sign_in:
                account = await sign_in_with_provider(db, user, identity)
            else:
                account = await authorize_provider(db, user, identity)
        except AccountConflict as e:
            flash(request, "errors", str(e))
            return redirect(provider.failure_redirect)

        if user is None:
            log_in(request, account)
            logger.info(f"User {account.id} signed in with {provider.name}")
        else:
            flash(request, "info", f"{title} account has been linked.")

        return redirect(_success_target(request, provider))

    callback.__name__ = f"auth_{provider.name}_callback"
    return callback
