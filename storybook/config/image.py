"""
Image generation configuration for storybook illustrations.

Uses DALL-E 3 through the OpenAI SDK.
"""

import logging
import os

import openai
from dotenv import load_dotenv
from openai import AsyncOpenAI
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Image generation constants
IMAGE_CONSTANTS = {
    "model": "dall-e-3",
    "size": "1024x1024",
    "supported_sizes": ["1024x1024", "1024x1792", "1792x1024"],
    "quality": "standard",  # standard keeps batch cost down
    "supported_qualities": ["standard", "hd"],
    "style": "natural",
    "supported_styles": ["natural", "vivid"],
    "pricing": {"standard": 0.040, "hd": 0.080},
    "testing_mode_max_images": 2,
    "delay_between_requests": 1.0,  # seconds, vendor rate limit
    # Single-image endpoint renders one showcase illustration
    "single_quality": "hd",
    "single_style": "vivid",
}

# Transient vendor errors worth another attempt
RETRYABLE_IMAGE_EXCEPTIONS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def get_image_client() -> AsyncOpenAI:
    """
    Get the OpenAI client for DALL-E.

    Uses OPENAI_API_KEY from environment.
    """
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY not found in environment. Set it in .env file.")

    return AsyncOpenAI(api_key=api_key)


def get_image_model() -> str:
    """Get the image model ID."""
    return IMAGE_CONSTANTS["model"]


def get_image_config() -> dict:
    """Public description of the batch image settings."""
    return {
        "model": IMAGE_CONSTANTS["model"],
        "supportedSizes": IMAGE_CONSTANTS["supported_sizes"],
        "supportedQualities": IMAGE_CONSTANTS["supported_qualities"],
        "supportedStyles": IMAGE_CONSTANTS["supported_styles"],
        "pricing": IMAGE_CONSTANTS["pricing"],
        "testingMode": {
            "enabled": True,
            "maxImages": IMAGE_CONSTANTS["testing_mode_max_images"],
            "description": "Testing mode limits image generation to reduce costs during development",
        },
    }


# Retry decorator for DALL-E calls
image_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_IMAGE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
