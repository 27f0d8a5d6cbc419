"""
Configuration module for the AI Storybook.

Re-exports vendor configuration for convenient access.
"""

from .llm import get_story_lm, get_story_model_name, llm_retry
from .image import IMAGE_CONSTANTS, get_image_client, get_image_config, get_image_model, image_retry
from .vision import VISION_CONSTANTS, get_provider_config

__all__ = [
    # LLM
    "get_story_lm",
    "get_story_model_name",
    "llm_retry",
    # Image
    "IMAGE_CONSTANTS",
    "get_image_client",
    "get_image_config",
    "get_image_model",
    "image_retry",
    # Vision
    "VISION_CONSTANTS",
    "get_provider_config",
]
