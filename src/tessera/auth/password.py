"""Password hashing and client-secret generation.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks. The work
factor comes from settings (12 in production, lower in tests).

Application client secrets go through the same hash: the raw secret
is shown to the caller exactly once and only the digest is stored.
"""

import secrets
import string
from typing import Optional

import bcrypt

from tessera.config import settings

CLIENT_SECRET_LENGTH = 32
_ALPHANUMERIC = string.ascii_letters + string.digits


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Malformed hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_client_secret(length: int = CLIENT_SECRET_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHANUMERIC) for _ in range(length))
