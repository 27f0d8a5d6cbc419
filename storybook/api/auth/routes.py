"""Authentication routes for email/password accounts."""

import logging

from fastapi import APIRouter, Response, status

from .. import config
from ..dependencies import CurrentUser, Users
from ..errors import AuthenticationError, ConflictError
from ..models.requests import LoginRequest, SignupRequest
from ..models.responses import AuthResponse, UserResponse
from .passwords import hash_password, verify_password
from .tokens import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=config.IS_PRODUCTION,
        samesite="lax",
        path="/",
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def signup(request: SignupRequest, response: Response, users: Users) -> AuthResponse:
    """Create an account on the free plan and start a session."""
    if await users.email_exists(request.email):
        raise ConflictError("An account with this email already exists", {"field": "email"})

    user = await users.create_user(request.email, hash_password(request.password), request.name)
    token = create_access_token(subject=user.id)
    _set_session_cookie(response, token)
    logger.info("User signed up", extra={"user_id": user.id, "event": "signup"})
    return AuthResponse(access_token=token, user=user)


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, response: Response, users: Users) -> AuthResponse:
    """Authenticate with email and password and receive an access token.

    The token is valid for 30 days. It is also set as an http-only
    `session` cookie, so browsers need not send the Authorization header.
    """
    credentials = await users.get_credentials(request.email)
    if credentials is None or not verify_password(request.password, credentials[1]):
        raise AuthenticationError("Invalid email or password")

    user = credentials[0]
    await users.update_last_login(user.id)
    token = create_access_token(subject=user.id)
    _set_session_cookie(response, token)
    return AuthResponse(access_token=token, user=user)


@router.post("/logout")
async def logout(response: Response) -> dict:
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def me(user: CurrentUser) -> UserResponse:
    return user
