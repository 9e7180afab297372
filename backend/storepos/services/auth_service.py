# Overview: Password policy and bcrypt hashing for cashier accounts.

"""
Cashier credentials.

Managers authenticate with the external identity provider; only cashiers
carry a local password, set at signup. Login and sessions live outside
this backend.

SECURITY NOTES:
- bcrypt, cost factor from BCRYPT_ROUNDS (default 12)
- the plaintext never leaves this module; callers store password_hash only
"""

import re

import bcrypt
from flask import current_app

DEFAULT_BCRYPT_ROUNDS = 12
PASSWORD_MIN_LENGTH = 8

# (pattern that must match, message when it does not)
PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
    (re.compile(r"[!@#$%^&*(),.'\":{}|<>]"), "Password must contain at least one special character"),
)


class PasswordValidationError(Exception):
    """Raised when a cashier password does not meet the policy."""


def _rounds() -> int:
    try:
        return int(current_app.config.get("BCRYPT_ROUNDS", DEFAULT_BCRYPT_ROUNDS))
    except RuntimeError:
        return DEFAULT_BCRYPT_ROUNDS


def validate_password_strength(password) -> None:
    if not isinstance(password, str):
        raise PasswordValidationError("Password must be a string")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise PasswordValidationError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    for pattern, message in PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(message)


def hash_password(password: str) -> str:
    """Validate against the policy, then hash. Returns the hash as text for the DB column."""
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=_rounds()))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Not a bcrypt hash (e.g. a placeholder on a seeded account)
        return False
