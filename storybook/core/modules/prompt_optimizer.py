"""
Versioned prompt templates with performance tracking and A/B tests.

Every template keeps running averages of how its images fared (success
rate, quality and consistency scores out of 10). The best template for a
category is the active one with the highest weighted score, discounted
until it has been used 100 times.
"""

import random
import re
import threading
import time
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field

TemplateCategory = Literal["character", "scene", "style", "technical"]

SUCCESS_WEIGHT = 0.3
QUALITY_WEIGHT = 0.4
CONSISTENCY_WEIGHT = 0.3
FULL_CONFIDENCE_USES = 100

PLACEHOLDER = re.compile(r"\{(\w+)\}")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TemplateResults(BaseModel):
    """Aggregated outcomes of images produced with a template."""

    total_uses: int = 0
    success_rate: float = 0.0
    avg_quality_score: float = 0.0
    avg_consistency_score: float = 0.0
    last_updated: Optional[datetime] = None

    def record(self, success: bool, quality: float, consistency: float) -> None:
        """Fold one sample into the running averages."""
        n = self.total_uses
        self.success_rate = (self.success_rate * n + (1.0 if success else 0.0)) / (n + 1)
        self.avg_quality_score = (self.avg_quality_score * n + quality) / (n + 1)
        self.avg_consistency_score = (self.avg_consistency_score * n + consistency) / (n + 1)
        self.total_uses = n + 1
        self.last_updated = _now()


class PromptTemplate(BaseModel):
    id: str
    name: str
    version: str
    category: TemplateCategory
    template: str
    variables: list[str] = Field(default_factory=list)
    test_results: TemplateResults = Field(default_factory=TemplateResults)
    active: bool = True
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class ABTest(BaseModel):
    id: str
    name: str
    template_a: str
    template_b: str
    start_date: datetime = Field(default_factory=_now)
    end_date: Optional[datetime] = None
    results_a: TemplateResults = Field(default_factory=TemplateResults)
    results_b: TemplateResults = Field(default_factory=TemplateResults)
    winner: Optional[str] = None

    def is_running(self, now: Optional[datetime] = None) -> bool:
        return self.end_date is None or self.end_date >= (now or _now())


def weighted_score(results: TemplateResults) -> float:
    """Weighted quality of a result set, ignoring sample size."""
    return (
        results.success_rate * SUCCESS_WEIGHT
        + (results.avg_quality_score / 10) * QUALITY_WEIGHT
        + (results.avg_consistency_score / 10) * CONSISTENCY_WEIGHT
    )


def template_score(template: PromptTemplate) -> float:
    """Weighted score scaled by confidence min(1, uses/100)."""
    confidence = min(1.0, template.test_results.total_uses / FULL_CONFIDENCE_USES)
    return weighted_score(template.test_results) * confidence


def _seed(
    id: str,
    name: str,
    version: str,
    category: str,
    template: str,
    results: tuple[int, float, float, float],
    active: bool,
    created: str,
    updated: str,
) -> PromptTemplate:
    uses, success, quality, consistency = results
    return PromptTemplate(
        id=id,
        name=name,
        version=version,
        category=category,
        template=template,
        variables=list(dict.fromkeys(PLACEHOLDER.findall(template))),
        test_results=TemplateResults(
            total_uses=uses,
            success_rate=success,
            avg_quality_score=quality,
            avg_consistency_score=consistency,
        ),
        active=active,
        created_at=datetime.fromisoformat(created).replace(tzinfo=timezone.utc),
        updated_at=datetime.fromisoformat(updated).replace(tzinfo=timezone.utc),
    )


def default_templates() -> list[PromptTemplate]:
    """The built-in character and scene templates with their historical results."""
    return [
        _seed(
            "char_basic_v1",
            "Basic Character Description",
            "1.0",
            "character",
            "Character: {name}, {age} years old, with {hairColor} hair and {eyeColor} eyes",
            (0, 0.7, 6, 5),
            False,
            "2024-01-01",
            "2024-01-01",
        ),
        _seed(
            "char_detailed_v2",
            "Detailed Character Sheet",
            "2.0",
            "character",
            "CHARACTER REFERENCE SHEET:\n"
            "Name: {name}\n"
            "Age: {age}\n"
            "Physical Appearance:\n"
            "- Face: {faceShape} shaped face with {complexion} complexion\n"
            "- Eyes: {eyeColor} colored, {eyeShape} shaped eyes with {eyeExpression}\n"
            "- Hair: {hairTexture} {hairColor} hair, {hairLength} length in {hairStyle} style\n"
            "- Build: {height} height, {bodyType} build\n"
            "- Distinctive features: {distinctiveFeatures}\n"
            "CRITICAL: Maintain these EXACT features in every illustration",
            (150, 0.85, 8, 7.5),
            True,
            "2024-02-01",
            "2024-06-01",
        ),
        _seed(
            "char_ultra_v3",
            "Ultra-Detailed Character DNA",
            "3.0",
            "character",
            "[CHARACTER DNA - ABSOLUTE CONSISTENCY REQUIRED]\n"
            "IDENTITY: {name}, {age} years old\n"
            "FACE: {faceShape} with {jawlineShape} jawline and {chinShape} chin\n"
            "EYES: {eyeColorDetailed}, {eyeShape}, {eyeSize}, {eyeSpacing} apart; "
            "{eyebrowShape} {eyebrowColor} eyebrows\n"
            "NOSE: {noseBridge} bridge, {noseTipShape} tip\n"
            "MOUTH: {lipFullness} lips, natural expression {naturalMouthExpression}\n"
            "HAIR: {hairColorFormula} with {hairHighlights} highlights, {hairTexturePattern}, "
            "{hairLengthExact}, {hairStylingDetails}\n"
            "SKIN: {skinToneBase} with {skinUndertone} undertone; marks: {skinMarks}\n"
            "PROPORTIONS: head to body 1:{headBodyRatio}, {postureDescription}\n"
            "RENDERING INSTRUCTIONS:\n"
            "- Lock these features across ALL illustrations\n"
            "- Clothing and expressions can change, physical features CANNOT",
            (50, 0.95, 9.5, 9.2),
            True,
            "2024-06-01",
            "2024-06-26",
        ),
        _seed(
            "ultra_quality_v3",
            "Ultra Quality Master Prompts",
            "3.0",
            "character",
            "Uses the ultra quality prompt builder for maximum quality",
            (10, 0.98, 9.8, 9.7),
            True,
            "2024-06-26",
            "2024-06-26",
        ),
        _seed(
            "scene_standard_v1",
            "Standard Scene Description",
            "1.0",
            "scene",
            "Scene: {sceneDescription} featuring {characterName}",
            (200, 0.75, 7, 6),
            False,
            "2024-01-01",
            "2024-01-01",
        ),
        _seed(
            "scene_cinematic_v2",
            "Cinematic Scene Composition",
            "2.0",
            "scene",
            "CINEMATIC SCENE COMPOSITION:\n"
            "ACTION: {mainAction}\n"
            "SETTING: {detailedSetting}\n"
            "TIME: {timeOfDay} with {lightingCondition}\n"
            "MOOD: {emotionalTone}\n"
            "CAMERA ANGLE: {cameraAngle}\n"
            "FOCAL POINT: {focalPoint}\n"
            "DEPTH: {foreground} / {midground} / {background}\n"
            "CHARACTER PLACEMENT: {characterName} is {characterPosition} while {characterAction}\n"
            "CHARACTER EXPRESSION: {characterExpression} conveying {emotionalState}\n"
            "ENVIRONMENTAL DETAILS:\n"
            "- Weather: {weather}\n"
            "- Atmosphere: {atmosphere}\n"
            "- Key Props: {props}\n"
            "ARTISTIC NOTES:\n"
            "- Color Palette: {colorPalette}\n"
            "- Visual Style: {visualStyle}\n"
            "- Special Effects: {specialEffects}",
            (120, 0.88, 8.5, 8),
            True,
            "2024-03-01",
            "2024-06-15",
        ),
    ]


class PromptOptimizer:
    """In-memory registry of prompt templates and A/B tests."""

    def __init__(self, templates: Optional[list[PromptTemplate]] = None, rng: Optional[random.Random] = None):
        self._templates: dict[str, PromptTemplate] = {}
        self._ab_tests: dict[str, ABTest] = {}
        self._lock = threading.Lock()
        self._rng = rng or random.Random()
        for template in templates if templates is not None else default_templates():
            self._templates[template.id] = template

    def get_template(self, template_id: str) -> Optional[PromptTemplate]:
        return self._templates.get(template_id)

    def list_templates(self, category: Optional[str] = None) -> list[PromptTemplate]:
        templates = list(self._templates.values())
        if category:
            templates = [t for t in templates if t.category == category]
        return templates

    def get_best_template(self, category: str) -> Optional[PromptTemplate]:
        """Highest scoring active template of a category, or None if nothing scores above 0."""
        best: Optional[PromptTemplate] = None
        best_score = 0.0
        for template in self._templates.values():
            if template.category != category or not template.active:
                continue
            score = template_score(template)
            if score > best_score:
                best, best_score = template, score
        return best

    def apply_template(self, template_id: str, variables: dict[str, str]) -> str:
        """Fill `{name}` placeholders; unknown placeholders are left as-is."""
        template = self._templates.get(template_id)
        if template is None:
            raise KeyError(template_id)
        return PLACEHOLDER.sub(lambda m: str(variables.get(m.group(1), m.group(0))), template.template)

    def record_test_result(
        self,
        template_id: str,
        success: bool,
        quality_score: float,
        consistency_score: float,
    ) -> bool:
        """Fold an outcome into a template's averages. False if the template is unknown."""
        with self._lock:
            template = self._templates.get(template_id)
            if template is None:
                return False
            template.test_results.record(success, quality_score, consistency_score)
            template.updated_at = _now()
            return True

    # A/B testing

    def start_ab_test(self, name: str, template_a: str, template_b: str) -> str:
        test_id = f"test_{int(time.time() * 1000)}"
        with self._lock:
            # Two tests started in the same millisecond get distinct ids
            while test_id in self._ab_tests:
                test_id += "_"
            self._ab_tests[test_id] = ABTest(
                id=test_id, name=name, template_a=template_a, template_b=template_b
            )
        return test_id

    def get_ab_test(self, test_id: str) -> Optional[ABTest]:
        return self._ab_tests.get(test_id)

    def get_ab_test_template(self, test_id: str) -> Optional[str]:
        """Template id to use for this request, or None if the test is unknown or over."""
        test = self._ab_tests.get(test_id)
        if test is None or not test.is_running():
            return None
        return test.template_a if self._rng.random() < 0.5 else test.template_b

    def record_ab_test_result(
        self,
        test_id: str,
        template_id: str,
        success: bool,
        quality_score: float,
        consistency_score: float,
    ) -> bool:
        with self._lock:
            test = self._ab_tests.get(test_id)
            if test is None:
                return False
            if template_id == test.template_a:
                test.results_a.record(success, quality_score, consistency_score)
            elif template_id == test.template_b:
                test.results_b.record(success, quality_score, consistency_score)
            else:
                return False
        return self.record_test_result(template_id, success, quality_score, consistency_score)

    def end_ab_test(self, test_id: str) -> Optional[ABTest]:
        """Stop a test and pick the arm with the better weighted score."""
        with self._lock:
            test = self._ab_tests.get(test_id)
            if test is None:
                return None
            test.end_date = _now()
            if weighted_score(test.results_b) > weighted_score(test.results_a):
                test.winner = test.template_b
            else:
                test.winner = test.template_a
            return test

    # Reporting and persistence

    def get_performance_report(self) -> list[dict]:
        report = [
            {
                "id": t.id,
                "name": t.name,
                "category": t.category,
                "version": t.version,
                "active": t.active,
                "score": round(template_score(t), 4),
                "testResults": t.test_results.model_dump(mode="json"),
            }
            for t in self._templates.values()
        ]
        report.sort(key=lambda entry: entry["score"], reverse=True)
        return report

    def export_templates(self) -> list[dict]:
        return [t.model_dump(mode="json") for t in self._templates.values()]

    def import_templates(self, templates: list[dict]) -> int:
        """Validate and upsert exported templates. Returns how many were imported."""
        parsed = [PromptTemplate.model_validate(data) for data in templates]
        with self._lock:
            for template in parsed:
                self._templates[template.id] = template
        return len(parsed)


# Global optimizer instance
prompt_optimizer = PromptOptimizer()
