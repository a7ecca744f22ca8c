from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from gardengear.core.config import get_settings


_SCHEME = "pbkdf2:sha256"


def hash_password(password: str, *, iterations: int | None = None) -> str:
    """Return ``pbkdf2:sha256:<iterations>$<salt>$<digest>`` for storage."""

    rounds = iterations or get_settings().password_hash_iterations
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    salt_b64 = base64.b64encode(salt).decode("ascii")
    return f"{_SCHEME}:{rounds}${salt_b64}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    try:
        header, salt_b64, expected_hex = stored.split("$")
        scheme, rounds_raw = header.rsplit(":", 1)
        rounds = int(rounds_raw)
        salt = base64.b64decode(salt_b64)
    except ValueError:
        return False
    if scheme != _SCHEME or rounds <= 0:
        return False

    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(digest.hex(), expected_hex)


def burn_password_check(password: str) -> None:
    """Spend the same work as a real check when no account matched."""

    hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), b"\x00" * 16, get_settings().password_hash_iterations)
