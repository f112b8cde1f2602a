"""Password generation and master-password checks."""

import re
import secrets

CHARSET = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
    "!@#$%^&*()_+-=[]{}|;:,.<>?"
)
MIN_MASTER_PASSWORD_LENGTH = 8


def generate_password(length: int = 16) -> str:
    """Return a random password drawn uniformly from :data:`CHARSET`."""
    if length < 1:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(CHARSET) for _ in range(length))


def password_strength(password: str) -> str:
    """Classify a master password as ``weak``, ``medium`` or ``strong``."""
    if len(password) < 8:
        return "weak"
    if len(password) < 12:
        return "medium"
    if (
        len(password) >= 16
        and re.search(r"[A-Z]", password)
        and re.search(r"[0-9]", password)
        and re.search(r"[^A-Za-z0-9]", password)
    ):
        return "strong"
    return "medium"


def validate_new_password(password: str, confirmation: str) -> None:
    """Raise ValueError if a new master password is unacceptable."""
    if password != confirmation:
        raise ValueError("Passwords do not match")
    if len(password) < MIN_MASTER_PASSWORD_LENGTH:
        raise ValueError(
            f"Password must be at least {MIN_MASTER_PASSWORD_LENGTH} characters long"
        )
