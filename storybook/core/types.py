"""
Centralized domain types for the AI Storybook.

All dataclasses that are used across multiple modules are defined here
to make data flow explicit and avoid circular imports.
"""

from dataclasses import asdict, dataclass, field
from typing import Optional


# =============================================================================
# Story Types
# =============================================================================


@dataclass
class StoryPage:
    """A single page of a generated story."""

    page_number: int
    text: str
    image_prompt: str
    learning_focus: Optional[str] = None
    image_url: Optional[str] = None

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys the web client reads."""
        data = {
            "pageNumber": self.page_number,
            "text": self.text,
            "imagePrompt": self.image_prompt,
        }
        if self.learning_focus is not None:
            data["learningFocus"] = self.learning_focus
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "StoryPage":
        return cls(
            page_number=int(data.get("pageNumber", data.get("page_number", 0))),
            text=data.get("text", ""),
            image_prompt=data.get("imagePrompt", data.get("image_prompt", "")),
            learning_focus=data.get("learningFocus", data.get("learning_focus")),
            image_url=data.get("imageUrl", data.get("image_url")),
        )


@dataclass
class StoryBrief:
    """Everything the story writer needs to know about the requested book."""

    child_name: str
    child_age: str
    theme: Optional[dict] = None  # {id, name, category, imageStyle}
    customization: dict = field(default_factory=dict)
    child_interests: list[str] = field(default_factory=list)
    appearance: Optional[str] = None
    learning_objectives: list[str] = field(default_factory=list)
    cultural_background: Optional[str] = None
    special_considerations: list[str] = field(default_factory=list)

    def cache_inputs(self) -> dict:
        """Inputs that identify an equivalent story request."""
        return asdict(self)


@dataclass
class GeneratedStory:
    """Output of one story-writing call."""

    title: str
    pages: list[StoryPage]
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    is_fallback: bool = False

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "pages": [page.to_dict() for page in self.pages],
            "model": self.model,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "isFallback": self.is_fallback,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "GeneratedStory":
        return cls(
            title=data["title"],
            pages=[StoryPage.from_dict(p) for p in data.get("pages", [])],
            model=data.get("model", ""),
            input_tokens=data.get("inputTokens", 0),
            output_tokens=data.get("outputTokens", 0),
            is_fallback=data.get("isFallback", False),
        )


# =============================================================================
# Scene Types
# =============================================================================


@dataclass
class SceneElements:
    """Visual elements pulled out of a page of story text."""

    setting: str = "unknown"  # WHERE: water, forest, home...
    action: str = "exploring"  # WHAT
    characters: list[str] = field(default_factory=list)  # WHO
    mood: str = "peaceful"
    key_objects: list[str] = field(default_factory=list)
    specific_location: Optional[str] = None  # underwater, beach...
    time_of_day: Optional[str] = None
    weather: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# Vendor Result Types
# =============================================================================


@dataclass
class PhotoAnalysis:
    """Character description produced by a vision model."""

    description: str
    model: str
    provider: str
    tokens_used: int = 0
    estimated_cost: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "PhotoAnalysis":
        return cls(**data)


@dataclass
class GeneratedImage:
    """Result of illustrating one page (success, failure or placeholder)."""

    page_number: int
    image_url: Optional[str] = None
    prompt: Optional[str] = None
    revised_prompt: Optional[str] = None
    cost: float = 0.0
    error: Optional[str] = None
    placeholder: bool = False
    note: Optional[str] = None
    generated_at: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.image_url is not None

    def to_dict(self) -> dict:
        data = {
            "pageNumber": self.page_number,
            "imageUrl": self.image_url,
            "cost": self.cost,
        }
        if self.prompt is not None:
            data["prompt"] = self.prompt
        if self.revised_prompt is not None:
            data["revisedPrompt"] = self.revised_prompt
        if self.error is not None:
            data["error"] = self.error
        if self.placeholder:
            data["placeholder"] = True
            data["note"] = self.note
        if self.generated_at is not None:
            data["generatedAt"] = self.generated_at
        return data


# =============================================================================
# Style Types
# =============================================================================


@dataclass
class ArtStyleDefinition:
    """Definition of an illustration style offered to parents."""

    name: str
    prompt: str  # Appended to DALL-E prompts
    description: str
    best_for: list[str] = field(default_factory=list)
