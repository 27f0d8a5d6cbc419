"""
DALL-E 3 illustration of storybook pages.

Every page prompt repeats the same character reference and art style so
the child looks identical across the book. Pages are illustrated one at a
time with a pause between calls to stay under the vendor rate limit. A page
that fails gets an error entry instead of failing the whole book.
"""

import asyncio
import base64
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from ...config.image import IMAGE_CONSTANTS, get_image_client, image_retry
from ..ai_cache import AICache, ai_cache
from ..cost_calculator import calculate_image_cost
from ..types import GeneratedImage, SceneElements, StoryPage
from .art_styles import DEFAULT_ART_STYLE, get_art_style, get_style_by_name
from .magical_prompts import create_magical_prompt, enhance_scene_with_magic, select_prompt_strategy
from .prompt_validator import generate_fix_suggestions, validate_prompt_matches_story
from .scene_extractor import extract_enhanced_scene_elements

logger = logging.getLogger(__name__)

# Bump when the page prompt layout changes so cached prompts are not reused
PROMPT_VERSION = "v1"

TESTING_MODE_NOTE = "Image generation skipped in testing mode to save costs"


def default_child_description(child_name: str) -> str:
    return f"a bright and curious child named {child_name}"


def photo_fallback_description(child_name: str) -> str:
    return f"a cheerful child named {child_name}"


def build_page_prompt(image_prompt: str, child_description: str, art_style_prompt: str, child_age: str) -> str:
    """Full DALL-E prompt for one page."""
    return f"""High-quality children's book illustration: {image_prompt}

CHARACTER CONSISTENCY (CRITICAL):
Main character: {child_description}
- EXACTLY the same facial features, skin tone, hair style in every image
- Consistent character design throughout all illustrations
- Same proportions and build

ART STYLE REQUIREMENTS:
- Professional children's book illustration quality
- {art_style_prompt}
- Clean, polished artwork suitable for publication
- Bright, engaging colors with good contrast
- Simple, clear composition focused on the main scene
- NO text, words, letters, or speech bubbles in the image
- NO multiple versions of the same character in one image
- Single clear scene showing one moment in the story

TECHNICAL REQUIREMENTS:
- High resolution, publication-quality artwork
- Professional illustration standards
- Age-appropriate for {child_age} year old children
- Educational and inspiring content
- Clean background without clutter

STRICTLY AVOID:
- Any text, words, or writing in the image
- Multiple character copies or versions
- Confusing or cluttered compositions
- Dark, scary, or inappropriate themes
- Poor quality or amateur-looking artwork
- Speech bubbles, thought bubbles, or text overlays"""


def build_single_image_prompt(
    prompt: str,
    child_description: Optional[str] = None,
    style: Optional[str] = None,
) -> str:
    """
    Prompt for the one-off illustration endpoint.

    No style (or "studio_ghibli") gets the full magical Ghibli prompt. A
    named art style keeps the character description up front and appends
    that style's prompt to a lightly enhanced scene.
    """
    description = child_description or "a happy, cheerful child with bright eyes and a warm smile"
    art_style = style or "studio_ghibli"
    strategy = select_prompt_strategy(requires_magic=art_style == "studio_ghibli", art_style=art_style)
    if strategy == "magical_ghibli":
        return create_magical_prompt(description, prompt)

    definition = get_style_by_name(art_style) or get_art_style(DEFAULT_ART_STYLE)
    return (
        f"Children's book illustration: {enhance_scene_with_magic(prompt)}. "
        f"Main character: {description}. {definition.prompt}. No text or speech bubbles in the image."
    )


def check_page_prompt(page: StoryPage, previous: Optional[SceneElements] = None) -> SceneElements:
    """
    Log when a page's image prompt misses what its text describes.

    Returns the page's scene elements so the next page can inherit its
    setting and characters.
    """
    elements = extract_enhanced_scene_elements(page.text, previous)
    if not page.text:
        return elements

    result = validate_prompt_matches_story(page.text, page.image_prompt, elements)
    if not result.valid:
        logger.warning(
            f"Page {page.page_number} prompt may not match its text (score {result.score}): "
            f"{'; '.join(result.errors)}. Fixes: {'; '.join(generate_fix_suggestions(result.errors, elements))}",
            extra={"stage": "illustration"},
        )
    return elements


def svg_placeholder(demo_mode: bool) -> str:
    """Gradient SVG data URI shown when no illustration could be generated."""
    caption = "Demo Mode - Add API Keys" if demo_mode else "Generated for StoryTime"
    svg = f"""<svg width="800" height="600" xmlns="http://www.w3.org/2000/svg">
  <defs>
    <linearGradient id="grad" x1="0%" y1="0%" x2="100%" y2="100%">
      <stop offset="0%" style="stop-color:#87CEEB"/>
      <stop offset="100%" style="stop-color:#FAE8FF"/>
    </linearGradient>
  </defs>
  <rect width="100%" height="100%" fill="url(#grad)"/>
  <text x="50%" y="45%" font-family="Arial, sans-serif" font-size="28" fill="#333333" text-anchor="middle" dy=".3em">✨ Magical Illustration ✨</text>
  <text x="50%" y="65%" font-family="Arial, sans-serif" font-size="18" fill="#555555" text-anchor="middle" dy=".3em">{caption}</text>
</svg>"""
    encoded = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


async def resolve_child_description(
    child_name: str,
    child_description: Optional[str],
    child_photo_url: Optional[str],
    analyze: Callable[[str, str], Awaitable[str]],
) -> str:
    """
    Character reference for the book.

    An explicit description wins; otherwise the photo is analyzed, and a
    failed analysis degrades to a generic description.
    """
    if child_description:
        return child_description
    if child_photo_url:
        try:
            return await analyze(child_photo_url, child_name)
        except Exception as e:
            logger.warning(
                f"Photo analysis failed, using generic description: {e}",
                extra={"error_type": type(e).__name__},
            )
            return photo_fallback_description(child_name)
    return default_child_description(child_name)


def summarize(images: list[GeneratedImage]) -> dict:
    """Counts and total cost for a batch of page images."""
    return {
        "totalImages": len(images),
        "successfulImages": sum(1 for img in images if img.succeeded),
        "failedImages": sum(1 for img in images if img.error),
        "placeholderImages": sum(1 for img in images if img.placeholder),
        "totalCost": round(sum(img.cost for img in images), 4),
    }


class ImageGenerator:
    """
    Generate page illustrations with DALL-E 3.

    Args:
        client: Optional AsyncOpenAI client; created from the environment
            on first use when omitted.
        sleep: Awaitable used for the pause between calls.
        cache: Prompt cache.
    """

    def __init__(
        self,
        client=None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        cache: Optional[AICache] = None,
    ):
        self._client = client
        self._sleep = sleep
        self._cache = cache or ai_cache

    @property
    def client(self):
        if self._client is None:
            self._client = get_image_client()
        return self._client

    @image_retry
    async def _generate(self, prompt: str, quality: str, style: str):
        return await self.client.images.generate(
            model=IMAGE_CONSTANTS["model"],
            prompt=prompt,
            n=1,
            size=IMAGE_CONSTANTS["size"],
            quality=quality,
            style=style,
        )

    def page_prompt(self, page: StoryPage, child_description: str, art_style: str, child_age: str) -> str:
        cached = self._cache.get_image_prompt(child_description, page.image_prompt, art_style, PROMPT_VERSION)
        if cached is not None:
            return cached["prompt"]

        style = get_style_by_name(art_style) or get_style_by_name(DEFAULT_ART_STYLE.value)
        prompt = build_page_prompt(page.image_prompt, child_description, style.prompt, child_age)
        self._cache.set_image_prompt(
            child_description, page.image_prompt, art_style, PROMPT_VERSION, {"prompt": prompt}
        )
        return prompt

    async def illustrate_page(self, page: StoryPage, prompt: str) -> GeneratedImage:
        """Illustrate one page. Vendor failures become an error entry."""
        try:
            response = await self._generate(prompt, IMAGE_CONSTANTS["quality"], IMAGE_CONSTANTS["style"])
            data = response.data[0] if response.data else None
            if data is None or not data.url:
                raise ValueError(f"Failed to generate image for page {page.page_number}")
        except Exception as e:
            logger.error(
                f"Failed to generate image for page {page.page_number}: {e}",
                extra={"stage": "illustration", "error_type": type(e).__name__},
            )
            return GeneratedImage(page_number=page.page_number, error=str(e) or type(e).__name__)

        return GeneratedImage(
            page_number=page.page_number,
            image_url=data.url,
            prompt=prompt,
            revised_prompt=data.revised_prompt,
            cost=float(calculate_image_cost(IMAGE_CONSTANTS["model"], 1, IMAGE_CONSTANTS["quality"])),
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

    async def illustrate_book(
        self,
        pages: list[StoryPage],
        child_description: str,
        child_age: str,
        art_style: str = DEFAULT_ART_STYLE.value,
        testing_mode: bool = True,
    ) -> list[GeneratedImage]:
        """
        Illustrate pages in order.

        Testing mode only illustrates the first pages up to the cap; the rest
        are returned as placeholders.
        """
        max_images = IMAGE_CONSTANTS["testing_mode_max_images"] if testing_mode else len(pages)
        to_generate = pages[:max_images]
        images: list[GeneratedImage] = []

        logger.info(
            f"Generating {len(to_generate)}/{len(pages)} images "
            f"({'testing mode' if testing_mode else 'full mode'})"
        )

        scene: Optional[SceneElements] = None
        for i, page in enumerate(to_generate):
            scene = check_page_prompt(page, scene)
            prompt = self.page_prompt(page, child_description, art_style, child_age)
            images.append(await self.illustrate_page(page, prompt))
            if i < len(to_generate) - 1:
                await self._sleep(IMAGE_CONSTANTS["delay_between_requests"])

        if testing_mode:
            for page in pages[max_images:]:
                images.append(GeneratedImage(page_number=page.page_number, placeholder=True, note=TESTING_MODE_NOTE))

        return images

    async def illustrate_single(
        self, prompt: str, child_description: Optional[str] = None, style: Optional[str] = None
    ) -> str:
        """One HD illustration URL. Vendor errors propagate."""
        response = await self._generate(
            build_single_image_prompt(prompt, child_description, style),
            IMAGE_CONSTANTS["single_quality"],
            IMAGE_CONSTANTS["single_style"],
        )
        data = response.data[0] if response.data else None
        if data is None or not data.url:
            raise ValueError("DALL-E returned no image")
        return data.url
