"""Utility functions for common operations across the application."""

from datetime import datetime, timezone


def normalize_email(email: str) -> str:
    """Convert email to lowercase and strip whitespace."""
    return email.strip().lower()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards (%, _, \\) so user input only matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
