"""
Credential hashing.

Passwords use Argon2 (adaptive, salted). API key secrets are random URL-safe
strings looked up by an unsalted SHA-256 hex digest, so the same secret always
maps to the same stored value.
"""
import hashlib
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# 32 random bytes = 256 bits of entropy
API_KEY_SECRET_BYTES = 32

_password_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    """Hash a password using Argon2."""
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against stored hash."""
    try:
        return _password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def generate_api_key_secret() -> str:
    """Generate a new API key secret (URL-safe base64, no padding)."""
    return secrets.token_urlsafe(API_KEY_SECRET_BYTES).rstrip("=")


def hash_api_key_secret(secret: str) -> str:
    """Lowercase hex SHA-256 digest of an API key secret."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()
