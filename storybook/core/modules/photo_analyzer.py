"""
Describe a child's appearance from a photo with a vision model.

Each provider returns a character reference ("Character Maya should
always have...") that is repeated in every illustration prompt so the
child looks the same on every page.
"""

import base64
import logging
from typing import Any, Optional

import httpx
from google.genai import types as genai_types

from ...config.vision import (
    PHOTO_FETCH_TIMEOUT,
    VISION_CONSTANTS,
    get_anthropic_client,
    get_gemini_client,
    get_openai_client,
    get_replicate_client,
)
from ..cost_calculator import calculate_llm_cost
from ..types import PhotoAnalysis

logger = logging.getLogger(__name__)

PROVIDERS = ("openai", "anthropic", "gemini", "replicate")

DEFAULT_MIME_TYPE = "image/jpeg"
MAX_PHOTO_BYTES = 5 * 1024 * 1024


def openai_prompt(child_name: str) -> str:
    return (
        "I need to create a CONSISTENT fictional character description for children's storybook "
        "illustrations. Please describe the visual appearance in this photo with SPECIFIC details that "
        "will ensure the same character appears in every illustration. Focus on:\n\n"
        "1. HAIR: Exact color, texture (curly/straight/wavy), length, and style\n"
        "2. FACIAL FEATURES: Eye color, eye shape, eyebrow style, nose shape, face shape\n"
        "3. SKIN TONE: Specific description for consistent coloring\n"
        "4. BUILD: Height/build appropriate for age, any distinctive proportions\n"
        "5. DISTINCTIVE FEATURES: Any unique characteristics that make this character recognizable\n\n"
        "IMPORTANT: Provide a detailed character sheet description that an illustrator could use to draw "
        f"the EXACT SAME character in multiple scenes. The character will be named {child_name}. Be specific "
        "enough that the character would be immediately recognizable across different illustrations and "
        "clothing changes.\n\n"
        f'Format as a character reference that emphasizes consistency: "Character {child_name} should always have..."'
    )


def anthropic_prompt(child_name: str) -> str:
    return (
        f"I need to create a detailed character reference for a children's storybook character named {child_name}. "
        "Please analyze this photo and provide specific visual details that will ensure the same character "
        "appears consistently across multiple illustrations.\n\n"
        "Please describe:\n"
        "1. Hair color, texture, length, and style\n"
        "2. Facial features (eyes, eyebrows, nose, face shape)\n"
        "3. Skin tone\n"
        "4. Build and proportions for their age\n"
        "5. Any distinctive features\n\n"
        f'Format as: "Character {child_name} should consistently have..."\n\n'
        "This will be used as a character sheet for illustrators to maintain visual consistency."
    )


def gemini_prompt(child_name: str) -> str:
    return (
        "Create a detailed character description for a children's storybook illustration based on this photo. "
        f"The character will be named {child_name}.\n\n"
        "Please provide specific visual details that will ensure consistent character representation across "
        "multiple illustrations:\n\n"
        "1. HAIR: Exact color, texture (curly/straight/wavy), length, and style\n"
        "2. FACIAL FEATURES: Eye color and shape, eyebrow style, nose shape, face shape\n"
        "3. SKIN TONE: Specific description for consistent coloring\n"
        "4. BUILD: Age-appropriate height and build\n"
        "5. DISTINCTIVE FEATURES: Any unique characteristics\n\n"
        f'Format your response as: "Character {child_name} should always be depicted with..."\n\n'
        "Focus on creating a character reference that an illustrator could use to maintain consistency "
        "across all story illustrations."
    )


def replicate_prompt(child_name: str) -> str:
    return (
        "Create a detailed character description for a children's storybook illustration based on this photo. "
        f"The character will be named {child_name}.\n\n"
        "Please provide specific visual details that will ensure consistent character representation across "
        "multiple illustrations:\n\n"
        "1. HAIR: Exact color, texture (curly/straight/wavy), length, and style\n"
        "2. FACIAL FEATURES: Eye color and shape, eyebrow style, nose shape, face shape\n"
        "3. SKIN TONE: Specific description for consistent coloring\n"
        "4. BUILD: Age-appropriate height and build\n"
        "5. DISTINCTIVE FEATURES: Any unique characteristics that make them recognizable\n\n"
        f'Format your response as: "Character {child_name} should consistently be depicted with..."\n\n'
        "Focus on creating a character reference that an illustrator could use to maintain consistency across "
        "all story illustrations. Be specific and detailed about physical appearance."
    )


def replicate_fallback_prompt(child_name: str) -> str:
    return (
        "Describe this child's appearance in detail for creating a consistent character in children's book "
        "illustrations. Focus on hair, facial features, skin tone, and distinctive characteristics. "
        f"The character's name is {child_name}."
    )


class PhotoTooLarge(ValueError):
    def __init__(self, max_bytes: int):
        super().__init__(f"Photo is larger than {max_bytes // (1024 * 1024)}MB")
        self.max_bytes = max_bytes


async def fetch_photo(
    photo_url: str,
    client: Optional[httpx.AsyncClient] = None,
    max_bytes: int = MAX_PHOTO_BYTES,
) -> tuple[bytes, str]:
    """
    Download a photo, returning (bytes, content type).

    The body is streamed and abandoned as soon as it passes `max_bytes`,
    whatever Content-Length claims.

    Raises:
        PhotoTooLarge: the photo exceeds `max_bytes`
        httpx.HTTPStatusError: the photo host answered with an error
    """
    if client is None:
        async with httpx.AsyncClient(timeout=PHOTO_FETCH_TIMEOUT, follow_redirects=True) as owned:
            return await fetch_photo(photo_url, owned, max_bytes)

    async with client.stream("GET", photo_url) as response:
        response.raise_for_status()
        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise PhotoTooLarge(max_bytes)

        data = bytearray()
        async for chunk in response.aiter_bytes():
            data.extend(chunk)
            if len(data) > max_bytes:
                raise PhotoTooLarge(max_bytes)

        mime_type = response.headers.get("content-type", DEFAULT_MIME_TYPE).split(";")[0].strip()
    return bytes(data), mime_type or DEFAULT_MIME_TYPE


async def analyze_with_openai(photo_url: str, child_name: str, client=None) -> PhotoAnalysis:
    """GPT-4o reads the photo straight from its URL."""
    cfg = VISION_CONSTANTS["openai"]
    client = client or get_openai_client()

    response = await client.chat.completions.create(
        model=cfg["model"],
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": openai_prompt(child_name)},
                    {"type": "image_url", "image_url": {"url": photo_url}},
                ],
            }
        ],
        max_tokens=cfg["max_tokens"],
    )

    description = response.choices[0].message.content or ""
    usage = response.usage
    prompt_tokens = usage.prompt_tokens if usage else 0
    completion_tokens = usage.completion_tokens if usage else 0

    return PhotoAnalysis(
        description=description,
        model=cfg["model"],
        provider="openai",
        tokens_used=prompt_tokens + completion_tokens,
        estimated_cost=float(calculate_llm_cost(cfg["model"], prompt_tokens, completion_tokens)),
    )


async def analyze_with_anthropic(
    photo_url: str,
    child_name: str,
    client=None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PhotoAnalysis:
    """Claude needs the image inline, so the photo is downloaded first."""
    cfg = VISION_CONSTANTS["anthropic"]
    client = client or get_anthropic_client()
    image_bytes, mime_type = await fetch_photo(photo_url, http_client, cfg["max_image_bytes"])

    response = await client.messages.create(
        model=cfg["model"],
        max_tokens=cfg["max_tokens"],
        messages=[
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": anthropic_prompt(child_name)},
                    {
                        "type": "image",
                        "source": {
                            "type": "base64",
                            "media_type": mime_type,
                            "data": base64.b64encode(image_bytes).decode("ascii"),
                        },
                    },
                ],
            }
        ],
    )

    first = response.content[0] if response.content else None
    description = first.text if first is not None and first.type == "text" else ""
    input_tokens = response.usage.input_tokens or 0
    output_tokens = response.usage.output_tokens or 0

    return PhotoAnalysis(
        description=description,
        model=cfg["model"],
        provider="anthropic",
        tokens_used=input_tokens + output_tokens,
        estimated_cost=float(calculate_llm_cost(cfg["model"], input_tokens, output_tokens)),
    )


async def analyze_with_gemini(
    photo_url: str,
    child_name: str,
    client=None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> PhotoAnalysis:
    """Gemini takes the photo as inline bytes; billed at a flat estimate."""
    cfg = VISION_CONSTANTS["gemini"]
    client = client or get_gemini_client()
    image_bytes, mime_type = await fetch_photo(photo_url, http_client, cfg["max_image_bytes"])

    response = await client.aio.models.generate_content(
        model=cfg["model"],
        contents=[
            gemini_prompt(child_name),
            genai_types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ],
    )

    return PhotoAnalysis(
        description=response.text or "",
        model=cfg["model"],
        provider="google-gemini",
        estimated_cost=float(calculate_llm_cost(cfg["model"], 0, 0)),
    )


async def _collect_output(output: Any) -> str:
    """Replicate returns a string, a list of chunks or an async stream of chunks."""
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    if hasattr(output, "__aiter__"):
        return "".join([str(chunk) async for chunk in output])
    if isinstance(output, (list, tuple)) or hasattr(output, "__iter__"):
        return "".join(str(chunk) for chunk in output)
    return str(output)


async def analyze_with_replicate(photo_url: str, child_name: str, client=None) -> PhotoAnalysis:
    """
    LLaVA on Replicate, falling back once to MiniGPT-4.

    Errors from the fallback model propagate.
    """
    cfg = VISION_CONSTANTS["replicate"]
    client = client or get_replicate_client()

    try:
        output = await client.async_run(
            cfg["model"],
            input={
                "image": photo_url,
                "prompt": replicate_prompt(child_name),
                "max_tokens": cfg["max_tokens"],
                "temperature": cfg["temperature"],
            },
        )
        return PhotoAnalysis(
            description=await _collect_output(output),
            model=cfg["model_name"],
            provider="replicate",
            estimated_cost=float(calculate_llm_cost(cfg["model_name"], 0, 0)),
        )
    except Exception as e:
        logger.warning(
            f"Replicate LLaVA analysis failed, trying fallback model: {e}",
            extra={"provider": "replicate", "error_type": type(e).__name__},
        )

    output = await client.async_run(
        cfg["fallback_model"],
        input={
            "image": photo_url,
            "prompt": replicate_fallback_prompt(child_name),
            "num_beams": cfg["fallback_num_beams"],
            "temperature": cfg["temperature"],
            "max_length": cfg["fallback_max_length"],
        },
    )
    description = await _collect_output(output)
    return PhotoAnalysis(
        description=f"Character {child_name} should consistently be depicted with: {description}",
        model=cfg["fallback_model_name"],
        provider="replicate-fallback",
        estimated_cost=float(calculate_llm_cost(cfg["fallback_model_name"], 0, 0)),
    )


ANALYZERS = {
    "openai": analyze_with_openai,
    "anthropic": analyze_with_anthropic,
    "gemini": analyze_with_gemini,
    "replicate": analyze_with_replicate,
}


async def analyze_photo(provider: str, photo_url: str, child_name: str) -> PhotoAnalysis:
    """Dispatch to one provider. Raises KeyError for an unknown provider."""
    return await ANALYZERS[provider](photo_url, child_name)
