"""Database module for the hackathon starter.

This module provides:
- SQLAlchemy async database connection
- User, provider token, and session models
- Encrypted storage for provider tokens
"""

from hackathon_starter.database.connection import (
    DatabaseConnectionError,
    close_db,
    get_db,
    get_db_session,
    init_db,
    verify_connection,
)
from hackathon_starter.database.models import (
    Base,
    OAuthToken,
    SessionRecord,
    User,
)

__all__ = [
    # Connection
    "DatabaseConnectionError",
    "close_db",
    "get_db",
    "get_db_session",
    "init_db",
    "verify_connection",
    # Models
    "Base",
    "OAuthToken",
    "SessionRecord",
    "User",
]
