"""
Vision model configuration for child photo analysis.

Four interchangeable providers describe the child's appearance so
illustrations keep the same character on every page.
"""

import os

import replicate
from anthropic import AsyncAnthropic
from dotenv import load_dotenv
from google import genai
from openai import AsyncOpenAI

# Load environment variables from .env file
load_dotenv()

SUPPORTED_FORMATS = ["JPEG", "PNG", "GIF", "WebP"]

VISION_CONSTANTS = {
    "openai": {
        "model": "gpt-4o",
        "max_tokens": 300,
        "max_image_size": "20MB",
    },
    "anthropic": {
        "model": "claude-3-5-sonnet-20241022",
        "max_tokens": 500,
        "max_image_size": "5MB",
        "max_image_bytes": 5 * 1024 * 1024,
    },
    "gemini": {
        "model": "gemini-1.5-pro",
        "max_image_size": "4MB",
        "max_image_bytes": 4 * 1024 * 1024,
    },
    "replicate": {
        "model": "yorickvp/llava-13b:b5f6212d032508382d61ff00469ddda3e32fd8a0e75dc39d8a4191bb742157fb",
        "model_name": "llava-13b",
        "max_tokens": 500,
        "temperature": 0.1,
        "fallback_model": "daanelson/minigpt-4:b96a2f33cc8e4b0aa23eacfce731b9c41a7d9466d9ed4e167375587b54db9423",
        "fallback_model_name": "minigpt-4",
        "fallback_num_beams": 5,
        "fallback_max_length": 300,
        "max_image_size": "10MB",
    },
}

# Photo download timeout for providers that need raw bytes (seconds)
PHOTO_FETCH_TIMEOUT = 30


def get_openai_client() -> AsyncOpenAI:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise ValueError("OPENAI_API_KEY not found in environment. Set it in .env file.")
    return AsyncOpenAI(api_key=api_key)


def get_anthropic_client() -> AsyncAnthropic:
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise ValueError("ANTHROPIC_API_KEY not found in environment. Set it in .env file.")
    return AsyncAnthropic(api_key=api_key)


def get_gemini_client() -> genai.Client:
    """
    Get the Gemini client.

    Accepts GOOGLE_API_KEY or the older GOOGLE_AI_API_KEY name.
    """
    api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GOOGLE_AI_API_KEY")
    if not api_key:
        raise ValueError("GOOGLE_API_KEY not found in environment. Set it in .env file.")
    return genai.Client(api_key=api_key)


def get_replicate_client() -> replicate.Client:
    api_token = os.getenv("REPLICATE_API_TOKEN")
    if not api_token:
        raise ValueError("REPLICATE_API_TOKEN not found in environment. Set it in .env file.")
    return replicate.Client(api_token=api_token)


def get_provider_config(provider: str) -> dict:
    """Public description of a provider, served by the analyze-photo GET routes."""
    if provider == "openai":
        return {
            "model": "gpt-4o",
            "maxTokens": 300,
            "supportedFormats": SUPPORTED_FORMATS,
            "maxImageSize": "20MB",
            "pricing": {"prompt": 0.005, "completion": 0.015},
            "features": [
                "Child appearance analysis",
                "Character consistency descriptions",
                "Age-appropriate language",
                "Positive and inclusive descriptions",
            ],
        }
    if provider == "anthropic":
        return {
            "model": "claude-3-5-sonnet-20241022",
            "provider": "anthropic",
            "supportedFormats": SUPPORTED_FORMATS,
            "maxImageSize": "5MB",
            "pricing": {"input": 3, "output": 15},
            "features": [
                "Advanced visual analysis",
                "Detailed character descriptions",
                "High-quality reasoning",
                "Flexible content policies",
            ],
        }
    if provider == "gemini":
        return {
            "model": "gemini-1.5-pro",
            "provider": "google-gemini",
            "supportedFormats": SUPPORTED_FORMATS,
            "maxImageSize": "4MB",
            "pricing": {"perImage": 0.001},
            "features": [
                "Character appearance analysis",
                "Detailed visual descriptions",
                "Consistent character references",
                "Less restrictive content policies",
            ],
        }
    if provider == "replicate":
        return {
            "models": [
                {"name": "llava-13b", "provider": "replicate", "description": "Primary vision model for detailed analysis"},
                {"name": "minigpt-4", "provider": "replicate", "description": "Fallback vision model"},
            ],
            "supportedFormats": SUPPORTED_FORMATS,
            "maxImageSize": "10MB",
            "pricing": {"perRequest": 0.0023},
            "features": [
                "Open source vision models",
                "Less restrictive content policies",
                "Good image understanding",
                "Multiple model fallbacks",
            ],
        }
    raise KeyError(provider)
