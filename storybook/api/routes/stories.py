"""Story generation, CRUD and PDF export endpoints."""

import asyncio
import logging
import re
import unicodedata
from typing import Optional
from urllib.parse import quote

import httpx
from fastapi import APIRouter, Query, Response, status

from ...config.image import get_image_model
from ...config.llm import get_story_model_name
from ...core.catalog import THEME_CATEGORIES
from ...core.modules.pdf_builder import build_storybook_pdf
from .. import config
from ..dependencies import CurrentUser, GenerationUser, Stories, StoryGen
from ..errors import NotFoundError
from ..models.requests import GenerateStoryRequest, UpdateStoryImagesRequest
from ..models.responses import GenerateStoryResponse, StoryListResponse, StoryResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Stories"])


@router.post(
    "/api/ai/generate-story",
    response_model=GenerateStoryResponse,
    summary="Generate a personalized story",
    description="Write a story with the configured LLM, save it for the user and count it against the monthly allowance.",
)
async def generate_story(request: GenerateStoryRequest, user: GenerationUser, service: StoryGen):
    return await service.generate_story(request, user)


@router.get("/api/ai/generate-story", summary="Story generation capabilities")
async def story_capabilities():
    return {
        "success": True,
        "capabilities": {
            "dynamicStoryGeneration": True,
            "themeBased": True,
            "customizationSupported": True,
            "supportedThemeCategories": THEME_CATEGORIES,
            "customizationOptions": [
                "setting",
                "characters",
                "learningGoals",
                "tone",
                "additionalInstructions",
            ],
            "aiModels": {
                "story": get_story_model_name(),
                "images": get_image_model(),
                "analysis": "gpt-4o",
            },
        },
    }


@router.get(
    "/api/stories",
    response_model=StoryListResponse,
    summary="List stories",
    description="Get a paginated list of the current user's stories, newest first.",
)
async def list_stories(
    user: CurrentUser,
    repo: Stories,
    limit: int = Query(default=20, ge=1, le=100, description="Maximum number of stories to return"),
    offset: int = Query(default=0, ge=0, description="Number of stories to skip"),
):
    stories, total = await repo.list_stories(user.id, limit=limit, offset=offset)
    return StoryListResponse(stories=stories, total=total, limit=limit, offset=offset)


@router.get("/api/stories/{story_id}", response_model=StoryResponse, summary="Get a story")
async def get_story(story_id: str, user: CurrentUser, service: StoryGen):
    return await service.get_owned_story(story_id, user)


@router.patch(
    "/api/stories/{story_id}/images",
    response_model=StoryResponse,
    summary="Attach illustrations",
    description="Store generated image URLs on the story's pages, in page order.",
)
async def update_story_images(
    story_id: str, request: UpdateStoryImagesRequest, user: CurrentUser, service: StoryGen, repo: Stories
):
    await service.get_owned_story(story_id, user)
    story = await repo.update_images(story_id, request.image_urls)
    if story is None:
        raise NotFoundError("Story")
    return story


@router.delete("/api/stories/{story_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a story")
async def delete_story(story_id: str, user: CurrentUser, service: StoryGen, repo: Stories):
    await service.get_owned_story(story_id, user)
    await repo.delete_story(story_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


async def _fetch_image(client: httpx.AsyncClient, url: Optional[str]) -> Optional[bytes]:
    """Image bytes, or None so the PDF shows a placeholder instead."""
    if not url or not url.startswith(("http://", "https://")):
        return None
    try:
        response = await client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning(f"Could not fetch page image {url}: {e}")
        return None
    return response.content


async def fetch_page_images(story: StoryResponse) -> dict[int, Optional[bytes]]:
    """Download every page image concurrently, keyed by page number."""
    async with httpx.AsyncClient(timeout=config.IMAGE_FETCH_TIMEOUT, follow_redirects=True) as client:
        contents = await asyncio.gather(*(_fetch_image(client, page.image_url) for page in story.pages))
    return {page.page_number: content for page, content in zip(story.pages, contents)}


_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9 ._()-]")


def content_disposition(filename: str) -> str:
    """
    Attachment header that survives latin-1 header encoding.

    Names outside plain ASCII get a transliterated `filename` plus the
    RFC 5987 `filename*` carrying the original in UTF-8.
    """
    fallback = _UNSAFE_FILENAME_CHARS.sub("", unicodedata.normalize("NFKD", filename)).lstrip("_ ")
    if fallback == filename:
        return f'attachment; filename="{filename}"'
    fallback = fallback or "storybook.pdf"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get(
    "/api/stories/{story_id}/pdf",
    summary="Download the storybook as PDF",
    responses={200: {"content": {"application/pdf": {}}}},
)
async def export_story_pdf(story_id: str, user: CurrentUser, service: StoryGen):
    story = await service.get_owned_story(story_id, user)
    images = await fetch_page_images(story)

    storybook = {
        "title": story.title,
        "childName": story.child_name,
        "pages": [page.model_dump(by_alias=True) for page in story.pages],
    }
    pdf = await asyncio.to_thread(build_storybook_pdf, storybook, images)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(f"{story.child_name}_storybook.pdf")},
    )
