"""Module: security."""

import hashlib
import hmac
import os
from secrets import token_urlsafe
from typing import Dict

# Shared password hashing format/version marker.
PASSWORD_SCHEME = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 390000

# Bearer tokens issued at login, mapped to the user id (as string).
# Sessions live in process memory; a restart signs everybody out.
TOKENS: Dict[str, str] = {}


def hash_password(password: str) -> str:
    """
    Create a PBKDF2-SHA256 password hash string.

    Stored format:
      pbkdf2_sha256$<iterations>$<salt_hex>$<hash_hex>
    """
    salt = os.urandom(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        PASSWORD_ITERATIONS,
    )
    return f"{PASSWORD_SCHEME}${PASSWORD_ITERATIONS}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """Verify a password against a stored PBKDF2 hash string."""
    if not stored or not stored.startswith(f"{PASSWORD_SCHEME}$"):
        return False

    try:
        _, iterations_raw, salt_hex, hash_hex = stored.split("$", 3)
        iterations = int(iterations_raw)
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(hash_hex)
    except ValueError:
        return False

    computed = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        salt,
        iterations,
    )
    return hmac.compare_digest(computed, expected)


def issue_token(user_id: str) -> str:
    token = token_urlsafe(32)
    TOKENS[token] = user_id
    return token


def resolve_token(token: str) -> str | None:
    return TOKENS.get(token)


def revoke_tokens_for(user_id: str) -> None:
    for token in [t for t, uid in TOKENS.items() if uid == user_id]:
        TOKENS.pop(token, None)
