"""FastAPI application and routes.

## Route Structure

- / and /api/ - Home
- /api/login, /api/signup, /api/forgot, /api/reset/{token} - Local accounts
- /api/account/... - Account management (signed in)
- /api/api/... - API demonstrations (some need a linked provider)
- /api/auth/<provider> and /api/auth/<provider>/callback - OAuth / OpenID
- /status - Request statistics

## Authentication

Pages use a server-side session referenced by a signed cookie. Mutating
requests need the session's CSRF token, except the file-upload submission.
"""

from hackathon_starter.api.app import create_app

__all__ = ["create_app"]
