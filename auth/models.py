"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of roles a user can hold."""

    admin = "admin"
    manager = "manager"
    user = "user"


@dataclass
class User:
    """A roster entry.

    username and email are unique case-insensitively; the store enforces
    that on insert. hashed_password is a bcrypt hash, never the plaintext.
    """

    username: str
    email: str
    hashed_password: str
    role: str = Role.user.value
    id: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Identity asserted by a verified session token.

    Built from the JWT payload by the auth dependency and attached to
    request.state.user. Verification is stateless: these values come from the
    token, not from a roster lookup.
    """

    id: str
    username: str
    email: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> TokenClaims:
        return cls(id=user.id or "", username=user.username, email=user.email, role=user.role)

    def as_dict(self) -> dict[str, str]:
        return {"id": self.id, "username": self.username, "email": self.email, "role": self.role}
