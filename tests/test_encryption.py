"""Tests for token encryption and password hashing."""

import pytest

from hackathon_starter.auth.passwords import hash_password, verify_password
from hackathon_starter.database.encryption import (
    _create_fernet,
    decrypt_token,
    encrypt_token,
)


class TestTokenEncryption:
    def test_encrypts_and_decrypts(self):
        encrypted = encrypt_token("gho_abc123")
        assert encrypted != "gho_abc123"
        assert decrypt_token(encrypted) == "gho_abc123"

    def test_empty_values_stored_as_none(self):
        assert encrypt_token(None) is None
        assert encrypt_token("") is None
        assert decrypt_token(None) is None

    def test_ciphertexts_differ(self):
        assert encrypt_token("same") != encrypt_token("same")

    def test_invalid_ciphertext(self):
        with pytest.raises(ValueError):
            decrypt_token("not-a-fernet-token")

    def test_other_key_cannot_decrypt(self):
        foreign = _create_fernet("another-secret-of-sufficient-length!", "salt").encrypt(b"x")
        with pytest.raises(ValueError):
            decrypt_token(foreign.decode())


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_hash_never_matches(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")

    def test_malformed_hash(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")
