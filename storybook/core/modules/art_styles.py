"""
Art style definitions for storybook illustrations.

The style a parent picks is appended to every DALL-E prompt of the book so
the pages read as one consistent set of illustrations.
"""

from enum import Enum
from typing import Optional

from ..types import ArtStyleDefinition


class ArtStyleType(Enum):
    """Available illustration styles."""

    CARTOON = "cartoon"
    WATERCOLOR = "watercolor"
    DIGITAL_ART = "digital_art"
    ILLUSTRATION = "illustration"


DEFAULT_ART_STYLE = ArtStyleType.ILLUSTRATION


ART_STYLES: dict[ArtStyleType, ArtStyleDefinition] = {
    ArtStyleType.CARTOON: ArtStyleDefinition(
        name="Cartoon",
        prompt="cute cartoon style, vibrant colors, child-friendly, Disney-Pixar inspired",
        description="Bright, rounded characters with big expressions.",
        best_for=["humor", "adventure", "younger readers"],
    ),
    ArtStyleType.WATERCOLOR: ArtStyleDefinition(
        name="Watercolor",
        prompt="soft watercolor painting style, gentle brushstrokes, pastel colors",
        description="Soft washes and gentle color gradations.",
        best_for=["bedtime", "nature", "gentle emotions"],
    ),
    ArtStyleType.DIGITAL_ART: ArtStyleDefinition(
        name="Digital Art",
        prompt="digital illustration, clean lines, bright colors, modern children's book style",
        description="Clean modern lines with bright flat color.",
        best_for=["stem", "modern settings", "action"],
    ),
    ArtStyleType.ILLUSTRATION: ArtStyleDefinition(
        name="Classic Illustration",
        prompt="children's book illustration style, warm colors, friendly and inviting",
        description="Warm traditional picture-book illustration.",
        best_for=["any story", "family", "friendship"],
    ),
}


def get_art_style(style: ArtStyleType) -> ArtStyleDefinition:
    return ART_STYLES[style]


def get_style_by_name(name: str) -> Optional[ArtStyleDefinition]:
    """Look up a style by its enum value (e.g. "watercolor"). None if unknown."""
    try:
        return ART_STYLES[ArtStyleType(name)]
    except ValueError:
        return None


def list_style_names() -> list[str]:
    return [style.value for style in ArtStyleType]
