"""
auth/store.py -- In-memory user roster.

Pattern: Repository. UserStore is a stand-in for a real identity backend: the
route and token code only use get_by_id / get_by_identifier / create_user /
update_user, so replacing the list with a database is confined to this file.

Records live in process memory. They are seeded at startup and anything
registered afterwards is lost on restart.

Concurrency: FastAPI runs sync handlers in a thread pool. Writes take a
single lock so the uniqueness check and the append happen atomically.
Reads do not lock.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone

from auth.models import Role, User

logger = logging.getLogger("catalog.auth")

# Fixed accounts present on every start. Passwords are hashed at seed time.
DEFAULT_USERS: tuple[tuple[str, str, str, Role], ...] = (
    ("admin", "admin@example.com", "admin123", Role.admin),
    ("manager", "manager@example.com", "manager123", Role.manager),
)


class UserExistsError(Exception):
    """Raised by create_user() when the username or email is already taken."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        store.create_user(User(username="alice", email="a@x.io", hashed_password=hash_password("Secr3tPw")))
        user = store.get_by_identifier("ALICE")
    """

    # Mutable through update_user(). Identity fields stay fixed.
    _UPDATABLE_FIELDS: frozenset = frozenset({"hashed_password", "role"})

    def __init__(self) -> None:
        self._users: list[User] = []
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by id. Returns None if not found."""
        return next((u for u in self._users if u.id == user_id), None)

    def get_by_identifier(self, identifier: str) -> User | None:
        """Look up a user whose username OR email matches, case-insensitively."""
        needle = identifier.casefold()
        return next(
            (u for u in self._users if u.username.casefold() == needle or u.email.casefold() == needle),
            None,
        )

    def count(self) -> int:
        return len(self._users)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> str:
        """Append a new user and return its assigned id.

        Raises UserExistsError if the username or email is already taken by
        any user (case-insensitive on both).
        """
        with self._write_lock:
            username, email = user.username.casefold(), user.email.casefold()
            for existing in self._users:
                if existing.username.casefold() == username or existing.email.casefold() == email:
                    raise UserExistsError(user.username)
            user.id = user.id or uuid.uuid4().hex
            user.created_at = user.created_at or _now_iso()
            self._users.append(user)
        return user.id

    def update_user(self, user_id: str, **fields) -> bool:
        """Overwrite mutable fields on an existing user.

        Accepted fields: hashed_password, role. Returns True if the user was
        found and updated, False otherwise.
        """
        unknown = set(fields) - self._UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        with self._write_lock:
            user = self.get_by_id(user_id)
            if user is None:
                return False
            for key, value in fields.items():
                setattr(user, key, value)
        return True


def seed_default_users(store: UserStore, hasher: Callable[[str], str]) -> int:
    """Create the fixed startup accounts that are not present yet.

    hasher is the password hashing callable (auth.tokens.hash_password);
    passed in so this module stays free of crypto imports. Returns the number
    of users created.
    """
    created = 0
    for index, (username, email, password, role) in enumerate(DEFAULT_USERS, start=1):
        try:
            store.create_user(
                User(
                    id=str(index),
                    username=username,
                    email=email,
                    hashed_password=hasher(password),
                    role=role.value,
                )
            )
        except UserExistsError:
            continue
        created += 1
    logger.info("Seeded %d default user(s)", created)
    return created
