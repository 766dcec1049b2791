"""Encryption of exchange API credentials at rest."""

from __future__ import annotations

import base64

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import settings


def _get_encryption_key() -> bytes:
    """
    Derive encryption key from auth_secret.

    Uses PBKDF2 so the Fernet key never appears in configuration directly.
    """
    # Salt derived from the app name, stable across restarts
    salt = settings.app_name.encode()[:16].ljust(16, b"\0")

    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100_000,
    )

    return base64.urlsafe_b64encode(kdf.derive(settings.auth_secret.encode()))


def _get_fernet() -> Fernet:
    return Fernet(_get_encryption_key())


def encrypt_secret(plaintext: str) -> str:
    """Encrypt an exchange credential for storage."""
    return _get_fernet().encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str) -> str | None:
    """
    Decrypt an exchange credential from storage.

    Returns None when the value was encrypted under a different secret.
    """
    try:
        return _get_fernet().decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        return None


def mask_secret(value: str | None) -> str | None:
    """Mask a credential for display ("abcd...wxyz")."""
    if not value:
        return None
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}...{value[-4:]}"
