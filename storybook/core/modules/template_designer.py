"""
DSPy Module for designing a custom story template for one child.
"""

import time
from dataclasses import dataclass, field
from typing import Optional

import dspy

from ...config.llm import llm_retry
from ..signatures.template_designer import TemplateDesignerSignature

DEFAULT_PAGE_COUNT = 10
DEFAULT_READING_TIME = 8


@dataclass
class ChildProfile:
    child_name: str
    child_age: str
    interests: list[str] = field(default_factory=list)
    learning_goals: list[str] = field(default_factory=list)
    parent_concerns: list[str] = field(default_factory=list)
    cultural_background: str = "diverse"

    def to_prompt(self) -> str:
        def listed(values: list[str]) -> str:
            return ", ".join(values) if values else "None specified"

        return "\n".join(
            [
                f"- Name: {self.child_name}",
                f"- Age: {self.child_age}",
                f"- Interests: {listed(self.interests)}",
                f"- Learning Goals: {listed(self.learning_goals)}",
                f"- Parent Concerns: {listed(self.parent_concerns)}",
                f"- Cultural Background: {self.cultural_background}",
            ]
        )

    def cache_inputs(self) -> dict:
        return {
            "childName": self.child_name,
            "childAge": self.child_age,
            "interests": self.interests,
            "learningGoals": self.learning_goals,
            "parentConcerns": self.parent_concerns,
            "culturalBackground": self.cultural_background,
        }


class TemplateDesigner(dspy.Module):
    """Design a premium story template personalized for a child profile."""

    def __init__(self, lm: Optional[dspy.LM] = None):
        super().__init__()
        self._lm = lm
        self.design = dspy.ChainOfThought(TemplateDesignerSignature)

    def _call_model(self, profile: ChildProfile):
        if self._lm is not None:
            with dspy.context(lm=self._lm):
                return llm_retry(self.design)(child_profile=profile.to_prompt())
        return llm_retry(self.design)(child_profile=profile.to_prompt())

    def forward(self, profile: ChildProfile) -> dict:
        """Return the template in the catalogue's camelCase shape."""
        result = self._call_model(profile)
        outline = list(result.story_outline or [])

        return {
            "id": f"custom_{int(time.time() * 1000)}",
            "title": result.title,
            "description": result.description,
            "category": "custom",
            "ageGroups": list(result.age_groups or []),
            "educationalFocus": list(result.educational_focus or []),
            "difficulty": result.difficulty,
            "pages": len(outline) or DEFAULT_PAGE_COUNT,
            "estimatedReadingTime": DEFAULT_READING_TIME,
            "subscriptionTier": "premium",
            "themes": list(result.themes or []),
            "learningObjectives": list(result.learning_objectives or []),
            "preview": {"coverText": result.cover_text, "samplePage": result.sample_page},
            "storyOutline": [
                {"pageNumber": i + 1, "summary": summary} for i, summary in enumerate(outline)
            ],
            "parentGuide": result.parent_guide,
            "culturalElements": list(result.cultural_elements or []),
            "aiGenerated": True,
            "personalizedFor": profile.child_name,
        }
