# Story writing
from .story_writer import StoryWriterSignature
from .template_designer import TemplateDesignerSignature

# Quality scoring
from .prompt_quality import PromptQualitySignature

__all__ = [
    "StoryWriterSignature",
    "TemplateDesignerSignature",
    "PromptQualitySignature",
]
