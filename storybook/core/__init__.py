# AI Storybook - Core Domain

# Re-export types for convenient access
from .types import (
    StoryPage,
    StoryBrief,
    GeneratedStory,
    SceneElements,
    PhotoAnalysis,
    GeneratedImage,
    ArtStyleDefinition,
)

__all__ = [
    "StoryPage",
    "StoryBrief",
    "GeneratedStory",
    "SceneElements",
    "PhotoAnalysis",
    "GeneratedImage",
    "ArtStyleDefinition",
]
