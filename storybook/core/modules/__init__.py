# Story text
from .story_writer import StoryWriter
from .template_designer import ChildProfile, TemplateDesigner

# Photos and illustration
from .photo_analyzer import analyze_photo
from .image_generator import ImageGenerator
from .pdf_builder import StorybookPDFBuilder, build_storybook_pdf

# Prompt quality
from .quality_scorer import PromptQualityScore, QualityScorer
from .prompt_optimizer import PromptOptimizer, prompt_optimizer

__all__ = [
    # Story text
    "StoryWriter",
    "ChildProfile",
    "TemplateDesigner",
    # Photos and illustration
    "analyze_photo",
    "ImageGenerator",
    "StorybookPDFBuilder",
    "build_storybook_pdf",
    # Prompt quality
    "PromptQualityScore",
    "QualityScorer",
    "PromptOptimizer",
    "prompt_optimizer",
]
