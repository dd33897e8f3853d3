"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST /login            -- username-or-email + password; returns a JWT
  POST /register         -- create a "user" account; returns a JWT
  GET  /profile          -- claims of the current token (requires auth)
  POST /refresh-token    -- re-sign the current claims with a fresh expiry (requires auth)
  POST /change-password  -- verify current password, store a new hash (requires auth)

Security:
  authenticate_user() provides timing equalization -- use it, never inline.
  Unknown user and wrong password produce byte-identical 401 responses.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.models import (
    ChangePasswordRequest,
    ErrorDetail,
    LoginRequest,
    MessageResponse,
    ProfileOut,
    ProfileResponse,
    RegisterRequest,
    SessionOut,
    SessionResponse,
    TokenOut,
    TokenResponse,
    UserOut,
)
from auth.dependencies import get_current_user
from auth.models import Role, TokenClaims, User
from auth.store import UserExistsError, UserStore
from auth.tokens import (
    authenticate_user,
    create_access_token,
    hash_password,
    token_lifetime_seconds,
    verify_password,
)

logger = logging.getLogger("catalog.auth")

INVALID_CREDENTIALS = "Invalid credentials."

# Auth policy:
# - POST /login, POST /register:  public
# - GET  /profile, POST /refresh-token, POST /change-password: requires auth (get_current_user)
router = APIRouter()


def _session(user: User) -> SessionOut:
    token = create_access_token(TokenClaims.from_user(user))
    return SessionOut(user=UserOut.from_user(user), token=token, expires_in=token_lifetime_seconds())


def _conflict() -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=ErrorDetail(code="conflict", message="Username or email already exists.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=SessionResponse)
def login(request: Request, response: Response, body: LoginRequest) -> SessionResponse:
    """Authenticate and issue a session token.

    Returns the same generic error for an unknown user and a wrong password
    so the response does not reveal which accounts exist.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.username, body.password)
    if user is None:
        logger.info("Failed login attempt")
        raise HTTPException(
            status_code=401,
            detail=ErrorDetail(code="invalid_credentials", message=INVALID_CREDENTIALS).model_dump(),
            headers={"Cache-Control": "no-store"},
        )
    logger.info("User %s logged in", user.username)
    response.headers["Cache-Control"] = "no-store"
    return SessionResponse(message="Login successful.", data=_session(user))


@router.post("/register", response_model=SessionResponse, status_code=201)
def register(request: Request, response: Response, body: RegisterRequest) -> SessionResponse:
    """Create a new account with the default role and log it in.

    Order: RegisterRequest validates email shape and password strength, then
    the roster is checked for uniqueness, then the password is hashed.
    create_user() repeats the uniqueness check under its lock for concurrent
    registrations of the same name.
    """
    user_store: UserStore = request.app.state.user_store
    if user_store.get_by_identifier(body.username) or user_store.get_by_identifier(body.email):
        raise _conflict()
    new_user = User(
        username=body.username,
        email=body.email,
        hashed_password=hash_password(body.password),
        role=Role.user.value,
    )
    try:
        user_store.create_user(new_user)
    except UserExistsError as exc:
        raise _conflict() from exc
    logger.info("Registered user %s", new_user.username)
    response.headers["Cache-Control"] = "no-store"
    return SessionResponse(message="User registered successfully.", data=_session(new_user))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/profile", response_model=ProfileResponse)
def profile(current_user: TokenClaims = Depends(get_current_user)) -> ProfileResponse:
    """Return the identity carried by the caller's token."""
    return ProfileResponse(data=ProfileOut(user=UserOut.from_claims(current_user)))


@router.post("/refresh-token", response_model=TokenResponse)
def refresh_token(response: Response, current_user: TokenClaims = Depends(get_current_user)) -> TokenResponse:
    """Issue a new token with the same claims and a fresh expiry."""
    token = create_access_token(current_user)
    response.headers["Cache-Control"] = "no-store"
    return TokenResponse(
        message="Token refreshed successfully.",
        data=TokenOut(token=token, expires_in=token_lifetime_seconds()),
    )


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    current_user: TokenClaims = Depends(get_current_user),
) -> MessageResponse:
    """Replace the caller's password after verifying the current one.

    The new password's strength is validated by ChangePasswordRequest.
    """
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(current_user.id)
    if user is None or not verify_password(body.current_password, user.hashed_password):
        raise HTTPException(
            status_code=401,
            detail=ErrorDetail(code="invalid_credentials", message="Current password is incorrect.").model_dump(),
        )
    user_store.update_user(user.id, hashed_password=hash_password(body.new_password))
    logger.info("User %s changed their password", user.username)
    return MessageResponse(message="Password changed successfully.")
