"""Password hashing utilities using bcrypt.

Uses the ``bcrypt`` library directly (>=4.0); passlib is unmaintained and
incompatible with bcrypt >=4.
"""

import secrets

import bcrypt


def hash_password(plain: str) -> str:
    """Hash a plain-text password with bcrypt. Returns a utf-8 hash string."""
    hashed_bytes: bytes = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt())
    return hashed_bytes.decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def random_password() -> str:
    """Unguessable password for auto-provisioned guest accounts.

    Guests claim the account later through the password-reset flow.
    """
    return secrets.token_urlsafe(24)
