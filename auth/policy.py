"""
auth/policy.py -- Credential shape rules for registration and password changes.

Pure functions, no I/O. The Pydantic request models in api/models.py call
these from field validators so a rejected email or weak password never
reaches the roster.

Layer rule: stdlib only.
"""

import re

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 8
# bcrypt only reads the first 72 bytes
PASSWORD_MAX_BYTES = 72


def is_valid_email(email: str) -> bool:
    return EMAIL_PATTERN.match(email) is not None


def password_problems(password: str) -> list[str]:
    """Return the strength rules the password breaks. Empty list means it passes."""
    problems: list[str] = []
    if len(password) < PASSWORD_MIN_LENGTH:
        problems.append(f"at least {PASSWORD_MIN_LENGTH} characters")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        problems.append(f"at most {PASSWORD_MAX_BYTES} bytes")
    if not any(c.isupper() for c in password):
        problems.append("an uppercase letter")
    if not any(c.islower() for c in password):
        problems.append("a lowercase letter")
    if not any(c.isdigit() for c in password):
        problems.append("a digit")
    return problems


def is_strong_password(password: str) -> bool:
    return not password_problems(password)
