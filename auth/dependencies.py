"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The only accepted credential is an `Authorization: Bearer <jwt>` header.
Verification is stateless: the decoded claims are trusted once signature,
expiry, issuer and audience check out. The claims are also attached to
request.state.user so middleware and handlers can read them.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated, before
the route handler body runs.

Layer rule: no imports from api/ or catalog/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import TokenClaims
from auth.tokens import decode_access_token

# One message for missing, malformed, expired and forged tokens.
AUTH_FAILURE_MESSAGE = "Authentication required. Provide a valid Bearer token."


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def try_get_current_user(request: Request) -> TokenClaims | None:
    """Return the verified token claims for this request, or None.

    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    token = _bearer_token(request)
    if token is None:
        return None
    claims = decode_access_token(token)
    if claims is not None:
        request.state.user = claims
    return claims


def get_current_user(request: Request) -> TokenClaims:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: TokenClaims = Depends(get_current_user)): ...
    """
    claims = try_get_current_user(request)
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": AUTH_FAILURE_MESSAGE},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims
