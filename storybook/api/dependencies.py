"""FastAPI dependency injection for services, repositories and the current user."""

from typing import Annotated, Optional

from dotenv import find_dotenv, load_dotenv
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

# Load .env from project root (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

from . import config  # noqa: E402
from .auth.tokens import verify_token  # noqa: E402
from .database.db import get_session  # noqa: E402
from .database.repository import (  # noqa: E402
    OrderRepository,
    PaymentRepository,
    StoryRepository,
    UserRepository,
)
from .errors import AuthenticationError, GenerationAuthRequired  # noqa: E402
from .models.responses import UserResponse  # noqa: E402
from .services.payment_service import PaymentService  # noqa: E402
from .services.story_service import StoryService  # noqa: E402
from .services.subscription_service import SubscriptionService  # noqa: E402

# Bearer token is optional; the session cookie is the fallback
security = HTTPBearer(auto_error=False)


# Repositories - require session
def get_user_repository(session: Annotated[AsyncSession, Depends(get_session)]) -> UserRepository:
    return UserRepository(session)


def get_story_repository(session: Annotated[AsyncSession, Depends(get_session)]) -> StoryRepository:
    return StoryRepository(session)


def get_order_repository(session: Annotated[AsyncSession, Depends(get_session)]) -> OrderRepository:
    return OrderRepository(session)


def get_payment_repository(session: Annotated[AsyncSession, Depends(get_session)]) -> PaymentRepository:
    return PaymentRepository(session)


# Services - depend on repositories
def get_subscription_service(
    users: Annotated[UserRepository, Depends(get_user_repository)],
    payments: Annotated[PaymentRepository, Depends(get_payment_repository)],
) -> SubscriptionService:
    """Get a SubscriptionService with injected repositories."""
    return SubscriptionService(users, payments)


def get_story_service(
    stories: Annotated[StoryRepository, Depends(get_story_repository)],
    subscriptions: Annotated[SubscriptionService, Depends(get_subscription_service)],
) -> StoryService:
    """Get a StoryService with injected repository and subscription service."""
    return StoryService(stories, subscriptions)


def get_payment_service(
    orders: Annotated[OrderRepository, Depends(get_order_repository)],
    stories: Annotated[StoryRepository, Depends(get_story_repository)],
) -> PaymentService:
    return PaymentService(orders, stories)


# Type aliases for cleaner route signatures
Session = Annotated[AsyncSession, Depends(get_session)]
Users = Annotated[UserRepository, Depends(get_user_repository)]
Stories = Annotated[StoryRepository, Depends(get_story_repository)]
Orders = Annotated[OrderRepository, Depends(get_order_repository)]
Payments = Annotated[PaymentRepository, Depends(get_payment_repository)]
Subscriptions = Annotated[SubscriptionService, Depends(get_subscription_service)]
StoryGen = Annotated[StoryService, Depends(get_story_service)]
Checkout = Annotated[PaymentService, Depends(get_payment_service)]


def _request_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(config.SESSION_COOKIE_NAME)


# Authentication dependencies
async def get_optional_user(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    users: Users,
) -> Optional[UserResponse]:
    """The signed-in user, or None when there is no valid token or cookie."""
    token = _request_token(request, credentials)
    if not token:
        return None
    payload = verify_token(token)
    if payload is None or not payload.get("sub"):
        return None
    return await users.get_user(payload["sub"])


async def get_current_user(user: Annotated[Optional[UserResponse], Depends(get_optional_user)]) -> UserResponse:
    """Require a signed-in user.

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or expired
    """
    if user is None:
        raise AuthenticationError("Invalid or expired token")
    return user


async def get_generation_user(user: Annotated[Optional[UserResponse], Depends(get_optional_user)]) -> UserResponse:
    """Require a signed-in user for AI generation, with the `requiresAuth` body."""
    if user is None:
        raise GenerationAuthRequired()
    return user


OptionalUser = Annotated[Optional[UserResponse], Depends(get_optional_user)]
CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
GenerationUser = Annotated[UserResponse, Depends(get_generation_user)]
