"""Story service for generation and persistence."""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from ...config.llm import get_story_lm
from ...core.ai_cache import AICache, ai_cache
from ...core.cost_calculator import calculate_llm_cost
from ...core.modules.story_writer import StoryWriter
from ...core.types import GeneratedStory, StoryBrief
from ..database.repository import StoryRepository
from ..errors import AuthorizationError, ExternalServiceError, NotFoundError
from ..logging import generation_logger
from ..models.requests import GenerateStoryRequest
from ..models.responses import (
    GeneratedStoryBody,
    GenerateStoryResponse,
    GenerationMetadata,
    StoryPageResponse,
    StoryResponse,
    UserResponse,
)
from .subscription_service import SubscriptionService

logger = logging.getLogger(__name__)


def brief_from_request(request: GenerateStoryRequest) -> StoryBrief:
    analysis = request.child_photo_analysis
    return StoryBrief(
        child_name=request.child_name,
        child_age=request.child_age,
        theme=request.theme.model_dump(by_alias=True) if request.theme else None,
        customization=request.customization.model_dump(by_alias=True, exclude_none=True) if request.customization else {},
        child_interests=list(request.child_interests),
        appearance=analysis.appearance if analysis else None,
        learning_objectives=list(request.learning_objectives),
        cultural_background=request.cultural_background,
        special_considerations=list(request.special_considerations),
    )


class StoryService:
    """Writes stories with the LLM and keeps them per user."""

    def __init__(
        self,
        stories: StoryRepository,
        subscriptions: SubscriptionService,
        writer: Optional[StoryWriter] = None,
        cache: Optional[AICache] = None,
    ):
        self.stories = stories
        self.subscriptions = subscriptions
        self._writer = writer
        self.cache = cache or ai_cache

    @property
    def writer(self) -> StoryWriter:
        if self._writer is None:
            try:
                self._writer = StoryWriter(lm=get_story_lm())
            except ValueError as e:
                raise ExternalServiceError("Story generation", str(e)) from e
        return self._writer

    async def _write(self, brief: StoryBrief) -> tuple[GeneratedStory, bool]:
        """The story for `brief` and whether it came from the cache."""
        cache_inputs = brief.cache_inputs()
        cached = self.cache.get_story_content(cache_inputs)
        if cached is not None:
            return GeneratedStory.from_dict(cached), True

        writer = self.writer
        try:
            story = await asyncio.to_thread(writer, brief)
        except Exception as e:
            raise ExternalServiceError("Story generation", f"Failed to generate story: {e}") from e

        if not story.is_fallback:
            self.cache.set_story_content(cache_inputs, story.to_dict())
        return story, False

    async def generate_story(self, request: GenerateStoryRequest, user: UserResponse) -> GenerateStoryResponse:
        """Check the allowance, write the story, save it and count it."""
        await self.subscriptions.ensure_can_generate(user)

        brief = brief_from_request(request)
        start = time.monotonic()
        generation_logger.generation_started(user.id, "story")

        try:
            story, was_cached = await self._write(brief)
        except Exception as e:
            generation_logger.generation_failed("story", e, user.id)
            raise

        if story.is_fallback:
            generation_logger.vendor_fallback(story.model or "llm", "unparseable story JSON")

        cost = 0.0 if was_cached else float(calculate_llm_cost(story.model, story.input_tokens, story.output_tokens))
        generated_at = datetime.now(timezone.utc).isoformat()
        metadata = GenerationMetadata(
            theme=brief.theme,
            customization=brief.customization or None,
            child_name=brief.child_name,
            generated_at=generated_at,
            tokens_used=story.tokens_used,
            estimated_cost=cost,
            model=story.model,
            cached=was_cached,
            fallback=story.is_fallback,
        )

        await self.subscriptions.record_story_created(user)
        saved = await self.stories.create_story(
            user_id=user.id,
            title=story.title,
            child_name=brief.child_name,
            child_age=brief.child_age,
            pages=[page.to_dict() for page in story.pages],
            theme=brief.theme,
            customization=brief.customization or None,
            metadata=metadata.model_dump(by_alias=True),
            status="generated",
        )
        generation_logger.stage_completed(saved.id, "writing", time.monotonic() - start)

        generation_logger.generation_completed(
            saved.id, "story", time.monotonic() - start, cost=cost, provider=story.model
        )

        return GenerateStoryResponse(
            story=GeneratedStoryBody(
                id=saved.id,
                title=saved.title,
                pages=[StoryPageResponse.model_validate(page.to_dict()) for page in story.pages],
            ),
            metadata=metadata,
        )

    async def get_owned_story(self, story_id: str, user: UserResponse) -> StoryResponse:
        """The story if it belongs to `user`: 404 when missing, 403 otherwise."""
        story = await self.stories.get_story(story_id)
        if story is None:
            raise NotFoundError("Story")
        if story.user_id != user.id:
            raise AuthorizationError("You do not have access to this story")
        return story
