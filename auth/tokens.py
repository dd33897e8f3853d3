"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       id, username, email, role, issuer, audience and expiry. Verification
       checks signature, expiry, issuer and audience, and returns None on any
       failure -- the auth dependency turns that into a 401.

  Passwords: bcrypt with a configurable work factor (BCRYPT_ROUNDS). The
       _DUMMY_HASH constant enables timing equalization in
       authenticate_user() so response time does not reveal whether a
       username exists.

  SECRET_KEY: sourced from core.config.get_settings(). The Settings class
       validates the key at startup: dev mode (DEBUG=true) auto-generates a
       random key with a warning; production mode refuses to start without
       one. Short keys (<32 chars) are rejected with ValueError.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import TokenClaims
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("catalog.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ("id", "username", "email", "role")

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only reads 72 bytes of input; auth.policy rejects longer passwords
    before they get here.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones. Always call verify_password() even when the
# user does not exist.
_DUMMY_HASH: str = hash_password("catalog_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(claims: TokenClaims, expire_seconds: int = 0) -> str:
    """Encode a signed JWT carrying the caller's identity.

    Args:
        claims:         Identity to embed (id, username, email, role).
        expire_seconds: Token lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    now = datetime.now(timezone.utc)
    payload = {
        "sub": claims.username,
        **claims.as_dict(),
        "iss": _settings.jwt_issuer,
        "aud": _settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(seconds=duration),
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str) -> TokenClaims | None:
    """Verify a JWT and return its identity claims, or None on any failure.

    Returning None (rather than raising) keeps the caller simple: any invalid
    token is treated as unauthenticated.
    """
    try:
        payload = jwt.decode(
            token,
            _settings.secret_key,
            algorithms=[_ALGORITHM],
            audience=_settings.jwt_audience,
            issuer=_settings.jwt_issuer,
        )
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        return None
    if any(not isinstance(payload.get(name), str) for name in _REQUIRED_CLAIMS):
        return None
    return TokenClaims(
        id=payload["id"],
        username=payload["username"],
        email=payload["email"],
        role=payload["role"],
    )


def token_lifetime_seconds() -> int:
    """Lifetime of tokens issued by create_access_token() with the default expiry."""
    return _settings.token_expire_seconds


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, identifier: str, password: str) -> User | None:
    """Authenticate a username-or-email / password pair with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown identifier: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure. Callers must report
    both failures with the same message.
    """
    user = store.get_by_identifier(identifier)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
