"""Pytest fixtures for unit and API tests."""

import os
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from dotenv import find_dotenv, load_dotenv
from fastapi.testclient import TestClient

# Load environment variables (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

# No real database, plain-text logs and no limit bypass unless a test asks for it
os.environ["DATABASE_URL"] = ""
os.environ["LOG_JSON"] = "false"
os.environ["TEST_MODE"] = "false"

from storybook.api import config  # noqa: E402
from storybook.api.database.db import Base, create_engine, create_session_factory  # noqa: E402
from storybook.api.database.repository import (  # noqa: E402
    OrderRepository,
    PaymentRepository,
    StoryRepository,
    UserRepository,
)
from storybook.api.dependencies import (  # noqa: E402
    get_optional_user,
    get_order_repository,
    get_payment_repository,
    get_payment_service,
    get_story_repository,
    get_story_service,
    get_subscription_service,
    get_user_repository,
)
from storybook.api.main import app  # noqa: E402
from storybook.api.models.responses import StoryPageResponse, StoryResponse, UserResponse  # noqa: E402
from storybook.api.services.payment_service import PaymentService  # noqa: E402
from storybook.api.services.story_service import StoryService  # noqa: E402
from storybook.api.services.subscription_service import SubscriptionService  # noqa: E402
from storybook.core.ai_cache import ai_cache  # noqa: E402


@pytest.fixture(autouse=True)
def clean_cache():
    """The AI cache is process-global; start every test empty."""
    ai_cache.clear("all")
    yield
    ai_cache.clear("all")


@pytest.fixture(autouse=True)
def no_test_mode(monkeypatch):
    monkeypatch.setattr(config, "TEST_MODE", False)


def make_user(**overrides) -> UserResponse:
    fields = {
        "id": "user-1",
        "email": "parent@example.com",
        "name": "Parent",
        "subscription_plan": "free",
        "subscription_status": "active",
        "monthly_stories_used": 0,
        "monthly_stories_limit": 1,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
        "usage_reset_date": datetime.now(timezone.utc),
    }
    fields.update(overrides)
    return UserResponse(**fields)


def make_story(**overrides) -> StoryResponse:
    fields = {
        "id": "story-1",
        "user_id": "user-1",
        "title": "Maya's Brave Day",
        "child_name": "Maya",
        "child_age": "5",
        "pages": [
            StoryPageResponse(page_number=1, text="Maya woke up.", image_prompt="A girl waking up"),
            StoryPageResponse(page_number=2, text="Maya went outside.", image_prompt="A girl in a garden"),
        ],
        "status": "generated",
    }
    fields.update(overrides)
    return StoryResponse(**fields)


@pytest.fixture
def user() -> UserResponse:
    return make_user()


@pytest.fixture
def mocks(user):
    """Mocked repositories and services behind the API."""
    return SimpleNamespace(
        user=user,
        users=AsyncMock(spec=UserRepository),
        stories=AsyncMock(spec=StoryRepository),
        orders=AsyncMock(spec=OrderRepository),
        payments=AsyncMock(spec=PaymentRepository),
        story_service=AsyncMock(spec=StoryService),
        subscriptions=MagicMock(spec=SubscriptionService),
        checkout=AsyncMock(spec=PaymentService),
    )


def _override(mocks, current_user):
    app.dependency_overrides[get_optional_user] = lambda: current_user
    app.dependency_overrides[get_user_repository] = lambda: mocks.users
    app.dependency_overrides[get_story_repository] = lambda: mocks.stories
    app.dependency_overrides[get_order_repository] = lambda: mocks.orders
    app.dependency_overrides[get_payment_repository] = lambda: mocks.payments
    app.dependency_overrides[get_story_service] = lambda: mocks.story_service
    app.dependency_overrides[get_subscription_service] = lambda: mocks.subscriptions
    app.dependency_overrides[get_payment_service] = lambda: mocks.checkout


@pytest.fixture
def client_with_mocks(mocks):
    """TestClient signed in as `mocks.user` with mocked dependencies."""
    _override(mocks, mocks.user)

    with TestClient(app) as client:
        yield client, mocks

    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(mocks):
    """TestClient without a signed-in user."""
    _override(mocks, None)

    with TestClient(app) as client:
        yield client, mocks

    app.dependency_overrides.clear()


@pytest.fixture
async def db_session(tmp_path):
    """AsyncSession on a throwaway SQLite database with all tables created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session

    await engine.dispose()
