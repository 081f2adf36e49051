"""Password hashing and the strength rule shared by registration and the admin CLI."""

from __future__ import annotations

from typing import Optional

from bookkeeper.extensions import bcrypt

MIN_PASSWORD_LENGTH = 8


def password_problem(plain_password: str) -> Optional[str]:
    """Return why ``plain_password`` is too weak, or None when it is acceptable."""
    if len(plain_password or "") < MIN_PASSWORD_LENGTH:
        return f"password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not any(ch.isalpha() for ch in plain_password) or not any(ch.isdigit() for ch in plain_password):
        return "password must include letters and numbers"
    return None


def hash_password(plain_password: str) -> str:
    return bcrypt.generate_password_hash(plain_password).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    # Accounts created without a usable hash can never log in.
    if not hashed_password:
        return False
    return bcrypt.check_password_hash(hashed_password, plain_password)
