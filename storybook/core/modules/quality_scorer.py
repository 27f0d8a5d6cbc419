"""
DSPy Module for scoring an illustration prompt.

The five criterion scores are clamped to 0-10 and averaged into the
overall score. The result feeds the prompt optimizer as a quality sample.
"""

from dataclasses import asdict, dataclass
from typing import Optional

import dspy

from ...config.llm import llm_retry
from ..signatures.prompt_quality import PromptQualitySignature

CRITERIA = (
    "character_consistency",
    "scene_accuracy",
    "art_quality",
    "child_appropriateness",
    "story_alignment",
)

# Overall score at or above which a prompt counts as a success
SUCCESS_THRESHOLD = 7.0


@dataclass
class PromptQualityScore:
    character_consistency: float
    scene_accuracy: float
    art_quality: float
    child_appropriateness: float
    story_alignment: float
    feedback: str = ""

    @property
    def overall(self) -> float:
        return round(sum(getattr(self, name) for name in CRITERIA) / len(CRITERIA), 2)

    @property
    def success(self) -> bool:
        return self.overall >= SUCCESS_THRESHOLD

    def to_dict(self) -> dict:
        data = asdict(self)
        data["overall"] = self.overall
        data["success"] = self.success
        return data


def parse_score(val, default: float = 5.0) -> float:
    try:
        return max(0.0, min(10.0, float(str(val).strip())))
    except (ValueError, TypeError):
        return default


class QualityScorer(dspy.Module):
    """Judge how well an image prompt illustrates its page."""

    def __init__(self, lm: Optional[dspy.LM] = None):
        super().__init__()
        self._lm = lm
        self.judge = dspy.ChainOfThought(PromptQualitySignature)

    def forward(self, page_text: str, image_prompt: str, character_reference: str = "") -> PromptQualityScore:
        kwargs = {
            "page_text": page_text,
            "image_prompt": image_prompt,
            "character_reference": character_reference or "Not provided",
        }
        if self._lm is not None:
            with dspy.context(lm=self._lm):
                result = llm_retry(self.judge)(**kwargs)
        else:
            result = llm_retry(self.judge)(**kwargs)

        return PromptQualityScore(
            **{name: parse_score(getattr(result, name, None)) for name in CRITERIA},
            feedback=str(getattr(result, "feedback", "") or ""),
        )
