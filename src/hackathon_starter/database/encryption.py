"""Encryption utilities for provider tokens.

Uses Fernet symmetric encryption for storing access tokens, token secrets
and refresh tokens handed out by OAuth providers.

## Key Derivation

The encryption key is derived from the session secret using PBKDF2:
- Salt: ENCRYPTION_SALT, or derived from SESSION_SECRET
- Iterations: 480,000 (OWASP recommendation for PBKDF2-HMAC-SHA256)
- Key length: 32 bytes (256 bits)

## Usage

```python
from hackathon_starter.database.encryption import encrypt_token, decrypt_token

encrypted = encrypt_token("gho_abc123")
decrypted = decrypt_token(encrypted)
```
"""

from __future__ import annotations

import base64
import logging

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

# Module-level cipher instance (initialized on first use)
_fernet: Fernet | None = None


def _get_fernet() -> Fernet:
    """Get or create the Fernet cipher instance."""
    global _fernet

    if _fernet is None:
        from hackathon_starter.config import get_settings

        settings = get_settings()
        _fernet = _create_fernet(settings.session_secret, settings.encryption_salt)

    return _fernet


def _create_fernet(secret: str, salt: str) -> Fernet:
    """Create a Fernet cipher from the secret and salt using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,  # 256 bits for Fernet
        salt=salt.encode("utf-8"),
        iterations=480_000,
    )

    key = base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))
    return Fernet(key)


def encrypt_token(plaintext: str | None) -> str | None:
    """Encrypt a token for storage.

    Empty or missing tokens are stored as None.
    """
    if not plaintext:
        return None

    encrypted = _get_fernet().encrypt(plaintext.encode("utf-8"))
    return encrypted.decode("utf-8")


def decrypt_token(ciphertext: str | None) -> str | None:
    """Decrypt a stored token.

    Raises:
        ValueError: If decryption fails (invalid token or wrong key)
    """
    if not ciphertext:
        return None

    try:
        decrypted = _get_fernet().decrypt(ciphertext.encode("utf-8"))
    except InvalidToken as e:
        logger.error("Failed to decrypt token: invalid token or key")
        raise ValueError("Failed to decrypt token") from e
    return decrypted.decode("utf-8")


def reset_cipher() -> None:
    """Reset the cached cipher instance.

    Call this if the configuration changes (e.g., in tests).
    """
    global _fernet
    _fernet = None
