"""Illustration endpoints: whole-story batches and single magical images."""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter

from ...config.image import get_image_config
from ...core.modules.art_styles import list_style_names
from ...core.modules.image_generator import ImageGenerator, resolve_child_description, summarize, svg_placeholder
from ...core.types import StoryPage
from .. import config
from ..dependencies import CurrentUser, GenerationUser, Subscriptions
from ..logging import generation_logger
from ..models.requests import GenerateImageRequest, GenerateImagesRequest
from ..models.responses import (
    GenerateImageResponse,
    GenerateImagesResponse,
    ImageBatchMetadata,
    ImageResult,
)
from .photos import analyze_cached

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Images"])


def get_image_generator() -> ImageGenerator:
    return ImageGenerator()


async def _describe_from_photo(photo_url: str, child_name: str) -> str:
    analysis, _ = await analyze_cached("openai", photo_url, child_name)
    return analysis.description


@router.post(
    "/api/ai/generate-images",
    response_model=GenerateImagesResponse,
    summary="Illustrate a story",
    description="Generate one DALL-E 3 image per page. Testing mode only illustrates the first two pages.",
)
async def generate_images(request: GenerateImagesRequest, user: GenerationUser, subscriptions: Subscriptions):
    await subscriptions.ensure_can_generate(user)

    start = time.monotonic()
    generation_logger.generation_started(user.id, "illustration")

    child_description = await resolve_child_description(
        request.child_name,
        request.child_description,
        request.child_photo_url,
        _describe_from_photo,
    )
    pages = [
        StoryPage(page_number=page.page_number, text=page.text, image_prompt=page.image_prompt)
        for page in request.pages
    ]

    images = await get_image_generator().illustrate_book(
        pages,
        child_description,
        request.child_age,
        art_style=request.art_style.value,
        testing_mode=request.testing_mode,
    )
    totals = summarize(images)

    generation_logger.generation_completed(
        request.story_id, "illustration", time.monotonic() - start, cost=totals["totalCost"], provider="dall-e-3"
    )

    return GenerateImagesResponse(
        story_id=request.story_id,
        images=[ImageResult.model_validate(image.to_dict()) for image in images],
        metadata=ImageBatchMetadata(
            total_images=totals["totalImages"],
            successful_images=totals["successfulImages"],
            failed_images=totals["failedImages"],
            placeholder_images=totals["placeholderImages"],
            total_cost=totals["totalCost"],
            testing_mode=request.testing_mode,
            art_style=request.art_style.value,
            child_description=child_description,
            generated_at=datetime.now(timezone.utc).isoformat(),
        ),
    )


@router.get("/api/ai/generate-images", summary="Image generation configuration")
async def image_config():
    return {
        "success": True,
        "config": {
            **get_image_config(),
            "artStyles": list_style_names(),
            "features": [
                "GPT-4 Vision photo analysis",
                "Consistent character generation",
                "Multiple art styles",
                "Child-safe content filtering",
                "Cost optimization modes",
            ],
        },
    }


@router.post(
    "/api/generate-image",
    response_model=GenerateImageResponse,
    summary="Generate a single illustration",
    description="HD DALL-E 3 image with the magical prompt. Falls back to an SVG placeholder without an API key or on failure.",
)
async def generate_image(request: GenerateImageRequest, user: CurrentUser):
    if not config.OPENAI_API_KEY:
        return GenerateImageResponse(
            image_url=svg_placeholder(demo_mode=True),
            prompt=request.prompt,
            fallback=True,
            message="Demo mode: add OPENAI_API_KEY to generate real illustrations",
        )

    try:
        image_url = await get_image_generator().illustrate_single(
            request.prompt, request.child_description, request.style
        )
    except Exception as e:
        generation_logger.vendor_fallback("dall-e-3", str(e))
        return GenerateImageResponse(
            image_url=svg_placeholder(demo_mode=False),
            prompt=request.prompt,
            fallback=True,
            message="Image generation failed; showing a placeholder",
        )

    return GenerateImageResponse(image_url=image_url, prompt=request.prompt)
