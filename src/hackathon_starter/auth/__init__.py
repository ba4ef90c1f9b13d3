"""Authentication and authorization.

Provides local password accounts, provider sign-in, and the route gates.

## Sign-in Flows

Local: POST /api/login with email and password.

Provider (OAuth 1.0a / 2.0 / Steam OpenID):

1. GET /api/auth/<provider> - redirect to the provider
2. Provider redirects back to /api/auth/<provider>/callback
3. Exchange the grant for tokens and fetch the provider profile
4. Log into, link, or create the account
5. Redirect to the recorded return target

## Gates

- `is_authenticated`: a user is signed in
- `is_authorized(provider)`: the user has linked `provider`

## Security

- Provider tokens are encrypted at rest
- The session cookie is a signed JWT naming a server-side session
"""

from hackathon_starter.auth.gates import (
    GateRedirect,
    current_user,
    is_authenticated,
    is_authorized,
)
from hackathon_starter.auth.oauth import (
    ProviderIdentity,
    ProviderRegistry,
    get_provider_registry,
)
from hackathon_starter.auth.providers import (
    PROVIDERS,
    Mode,
    Protocol,
    Provider,
    ProviderError,
    ProviderNotConfigured,
    get_provider,
)
from hackathon_starter.auth.session import create_session_token, verify_session_token

__all__ = [
    "GateRedirect",
    "current_user",
    "is_authenticated",
    "is_authorized",
    "ProviderIdentity",
    "ProviderRegistry",
    "get_provider_registry",
    "PROVIDERS",
    "Mode",
    "Protocol",
    "Provider",
    "ProviderError",
    "ProviderNotConfigured",
    "get_provider",
    "create_session_token",
    "verify_session_token",
]
