"""Tests for StoryService generation, caching and ownership."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from storybook.api.database.repository import StoryRepository
from storybook.api.errors import AuthorizationError, ExternalServiceError, NotFoundError, StoryLimitReached
from storybook.api.models.requests import GenerateStoryRequest
from storybook.api.services.story_service import StoryService, brief_from_request
from storybook.api.services.subscription_service import SubscriptionService
from storybook.core.ai_cache import AICache, InMemoryCache
from storybook.core.modules.story_writer import StoryWriter
from storybook.core.types import GeneratedStory, StoryPage

from tests.unit.conftest import make_story, make_user


def _request(**overrides) -> GenerateStoryRequest:
    fields = {
        "childName": "Maya",
        "childAge": 5,
        "theme": {"id": "ocean", "name": "Ocean", "category": "adventure"},
        "childPhotoAnalysis": {"appearance": "curly black hair"},
    }
    fields.update(overrides)
    return GenerateStoryRequest.model_validate(fields)


def _story(is_fallback: bool = False) -> GeneratedStory:
    return GeneratedStory(
        title="Maya Under the Sea",
        pages=[StoryPage(page_number=1, text="Maya dove in.", image_prompt="Maya underwater")],
        model="gpt-4",
        input_tokens=1000,
        output_tokens=500,
        is_fallback=is_fallback,
    )


@pytest.fixture
def writer():
    return MagicMock(spec=StoryWriter, return_value=_story())


@pytest.fixture
def service(writer):
    stories = AsyncMock(spec=StoryRepository)
    stories.create_story.return_value = make_story(id="story-9", title="Maya Under the Sea")
    return StoryService(
        stories,
        MagicMock(spec=SubscriptionService),
        writer=writer,
        cache=AICache(InMemoryCache()),
    )


def test_brief_from_request():
    brief = brief_from_request(_request(childInterests=["fish"]))

    assert brief.child_age == "5"
    assert brief.theme["name"] == "Ocean"
    assert brief.appearance == "curly black hair"
    assert brief.child_interests == ["fish"]


class TestGenerateStory:
    async def test_generates_saves_and_counts(self, service, writer):
        user = make_user()

        result = await service.generate_story(_request(), user)

        service.subscriptions.ensure_can_generate.assert_called_once_with(user)
        service.subscriptions.record_story_created.assert_called_once_with(user)
        saved = service.stories.create_story.call_args.kwargs
        assert saved["status"] == "generated"
        assert saved["pages"][0]["imagePrompt"] == "Maya underwater"
        assert result.story.id == "story-9"
        assert result.metadata.tokens_used == 1500
        assert result.metadata.estimated_cost > 0
        assert result.metadata.cached is False

    async def test_same_brief_uses_cache(self, service, writer):
        """The second identical request skips the LLM and costs nothing."""
        await service.generate_story(_request(), make_user())
        result = await service.generate_story(_request(), make_user())

        assert writer.call_count == 1
        assert result.metadata.cached is True
        assert result.metadata.estimated_cost == 0.0
        assert service.subscriptions.record_story_created.call_count == 2

    async def test_fallback_story_is_not_cached(self, service, writer):
        writer.return_value = _story(is_fallback=True)

        first = await service.generate_story(_request(), make_user())
        await service.generate_story(_request(), make_user())

        assert first.metadata.fallback is True
        assert writer.call_count == 2

    async def test_limit_reached_stops_before_llm(self, service, writer):
        service.subscriptions.ensure_can_generate.side_effect = StoryLimitReached("free", 1, 1)

        with pytest.raises(StoryLimitReached):
            await service.generate_story(_request(), make_user())

        writer.assert_not_called()
        service.stories.create_story.assert_not_called()

    async def test_over_limit_at_count_saves_nothing(self, service, writer):
        service.subscriptions.record_story_created.side_effect = StoryLimitReached("free", 1, 1)

        with pytest.raises(StoryLimitReached):
            await service.generate_story(_request(), make_user())

        service.stories.create_story.assert_not_called()

    async def test_llm_failure(self, service, writer):
        """Vendor errors become ExternalServiceError and nothing is counted."""
        writer.side_effect = RuntimeError("rate limited")

        with pytest.raises(ExternalServiceError):
            await service.generate_story(_request(), make_user())

        service.subscriptions.record_story_created.assert_not_called()


class TestGetOwnedStory:
    async def test_owner(self, service):
        service.stories.get_story.return_value = make_story()

        story = await service.get_owned_story("story-1", make_user())

        assert story.id == "story-1"

    async def test_missing(self, service):
        service.stories.get_story.return_value = None

        with pytest.raises(NotFoundError):
            await service.get_owned_story("story-1", make_user())

    async def test_other_user(self, service):
        service.stories.get_story.return_value = make_story(user_id="user-2")

        with pytest.raises(AuthorizationError):
            await service.get_owned_story("story-1", make_user())
