"""Authentication utilities for password hashing and opaque token generation."""

import secrets
from datetime import datetime, timedelta

import bcrypt

from .config import settings
from .utils import utcnow

# bcrypt only reads the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


# ==================== Password Hashing ====================

def hash_password(password: str) -> str:
    """Hash a plain text password using bcrypt for secure storage."""
    password_bytes = password.encode('utf-8')[:_BCRYPT_MAX_BYTES]
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password_bytes, salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain text password against a hashed password."""
    password_bytes = plain_password.encode('utf-8')[:_BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


# ==================== Opaque Tokens ====================

def generate_token() -> str:
    """Return 256 random bits as 64 hex characters."""
    return secrets.token_hex(32)


def session_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(days=settings.SESSION_TTL_DAYS)


def email_token_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(hours=settings.EMAIL_TOKEN_TTL_HOURS)
