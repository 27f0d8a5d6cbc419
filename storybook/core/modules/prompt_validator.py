"""
Check that an image prompt actually depicts the page it illustrates.

Each rule compares the prompt with elements extracted from the story
text. Failed error rules make the prompt invalid; warnings only lower the
score. Score is the weighted share of passed rules (errors weigh 2,
warnings 1) on a 0-100 scale.
"""

import math
import re
from dataclasses import asdict, dataclass, field
from typing import Callable, Optional

from ..types import SceneElements
from .scene_extractor import extract_scene_elements


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    score: int = 100

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ValidationRule:
    name: str
    check: Callable[[str, str, SceneElements], bool]  # (story, prompt, elements)
    error_message: str
    suggestion: str
    severity: str  # "error" or "warning"


ANIMAL_INTERACTION = re.compile(
    r"\b(met|meet|meets|with|saw|found)\s+(?:a|an|the)?\s*(turtle|fish|bird|lion|dog|cat|monkey|butterfly)\b",
    re.I,
)


def _setting_match(story: str, prompt: str, elements: SceneElements) -> bool:
    location = elements.specific_location or elements.setting
    return location.lower() in prompt.lower()


def _main_character_present(story: str, prompt: str, elements: SceneElements) -> bool:
    if not elements.characters:
        return True
    lowered = prompt.lower()
    return any(char.lower() in lowered for char in elements.characters)


def _action_represented(story: str, prompt: str, elements: SceneElements) -> bool:
    lowered = prompt.lower()
    return any(word.lower() in lowered for word in elements.action.split())


def _underwater_specificity(story: str, prompt: str, elements: SceneElements) -> bool:
    story_lower = story.lower()
    if not any(term in story_lower for term in ("underwater", "ocean depths", "beneath")):
        return True
    lowered = prompt.lower()
    return any(term in lowered for term in ("underwater", "submerged", "beneath the water"))


def _character_with_animal(story: str, prompt: str, elements: SceneElements) -> bool:
    match = ANIMAL_INTERACTION.search(story)
    if not match:
        return True
    return match.group(2).lower() in prompt.lower()


def _key_objects_included(story: str, prompt: str, elements: SceneElements) -> bool:
    if not elements.key_objects:
        return True
    lowered = prompt.lower()
    mentioned = [obj for obj in elements.key_objects if obj.lower() in lowered]
    return len(mentioned) >= math.ceil(len(elements.key_objects) / 2)


def _no_contradictions(story: str, prompt: str, elements: SceneElements) -> bool:
    lowered = prompt.lower()
    if elements.specific_location == "underwater" and any(
        term in lowered for term in ("standing", "walking", "on the ground")
    ):
        return False
    if "night" in story and "sunny" in lowered:
        return False
    return True


VALIDATION_RULES: list[ValidationRule] = [
    ValidationRule(
        name="setting_match",
        check=_setting_match,
        error_message="Prompt missing required setting/location",
        suggestion="Add the specific location mentioned in the story",
        severity="error",
    ),
    ValidationRule(
        name="main_character_present",
        check=_main_character_present,
        error_message="Main character not mentioned in prompt",
        suggestion="Include the character name explicitly",
        severity="error",
    ),
    ValidationRule(
        name="action_represented",
        check=_action_represented,
        error_message="Action from story not represented in prompt",
        suggestion="Describe what the character is doing",
        severity="warning",
    ),
    ValidationRule(
        name="underwater_specificity",
        check=_underwater_specificity,
        error_message="Underwater scene not clearly specified",
        suggestion='Explicitly state "underwater" or "submerged" for ocean depth scenes',
        severity="error",
    ),
    ValidationRule(
        name="character_with_animal",
        check=_character_with_animal,
        error_message="Animal character mentioned in story missing from prompt",
        suggestion="Include all characters mentioned in the story text",
        severity="error",
    ),
    ValidationRule(
        name="key_objects_included",
        check=_key_objects_included,
        error_message="Important objects from story not included",
        suggestion="Include key objects mentioned in the story",
        severity="warning",
    ),
    ValidationRule(
        name="no_contradictions",
        check=_no_contradictions,
        error_message="Prompt contains contradictions with story",
        suggestion="Ensure prompt elements match story context",
        severity="error",
    ),
]


def validate_prompt_matches_story(
    story_text: str,
    image_prompt: str,
    elements: Optional[SceneElements] = None,
) -> ValidationResult:
    """Run every rule and score the prompt against the story text."""
    if elements is None:
        elements = extract_scene_elements(story_text)

    errors: list[str] = []
    warnings: list[str] = []
    suggestions: list[str] = []
    passed_weight = 0
    total_weight = 0

    for rule in VALIDATION_RULES:
        weight = 2 if rule.severity == "error" else 1
        total_weight += weight

        if rule.check(story_text, image_prompt, elements):
            passed_weight += weight
            continue

        if rule.severity == "error":
            errors.append(rule.error_message)
        else:
            warnings.append(rule.error_message)
        if rule.suggestion not in suggestions:
            suggestions.append(rule.suggestion)

    return ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        suggestions=suggestions,
        score=round(passed_weight / total_weight * 100),
    )


UNDERWATER_ELEMENTS = ["water", "ocean", "sea", "underwater", "fish", "coral", "swimming"]
LAND_ELEMENTS = ["standing on ground", "walking", "grass", "trees", "street"]
FOREST_ELEMENTS = ["trees", "forest", "woods", "leaves", "nature"]


def validate_specific_story_type(story_text: str, image_prompt: str, story_type: str) -> ValidationResult:
    """Base validation plus extra checks for underwater and forest scenes."""
    result = validate_prompt_matches_story(story_text, image_prompt)
    lowered = image_prompt.lower()

    if story_type == "underwater":
        if not any(term in lowered for term in UNDERWATER_ELEMENTS):
            result.errors.append("Underwater scene lacks water-related elements")
            result.suggestions.append("Add underwater elements: water, fish, coral, etc.")
            result.valid = False
            result.score = max(0, result.score - 20)
        if any(term in lowered for term in LAND_ELEMENTS):
            result.errors.append("Underwater scene contains land elements")
            result.suggestions.append("Remove land-based elements from underwater scene")
            result.valid = False
            result.score = max(0, result.score - 30)

    elif story_type == "forest":
        if not any(term in lowered for term in FOREST_ELEMENTS):
            result.warnings.append("Forest scene could be more specific")
            result.suggestions.append("Add forest elements: trees, leaves, woodland creatures")
            result.score = max(0, result.score - 10)

    return result


def quick_validate_prompt(
    prompt: str,
    setting: Optional[str] = None,
    characters: Optional[list[str]] = None,
    action: Optional[str] = None,
    objects: Optional[list[str]] = None,
) -> tuple[bool, list[str]]:
    """Return (valid, missing) for a prompt against explicitly required elements."""
    lowered = prompt.lower()
    missing = []

    if setting and setting.lower() not in lowered:
        missing.append(f"Setting: {setting}")
    for char in characters or []:
        if char.lower() not in lowered:
            missing.append(f"Character: {char}")
    if action and action.lower() not in lowered:
        missing.append(f"Action: {action}")
    for obj in objects or []:
        if obj.lower() not in lowered:
            missing.append(f"Object: {obj}")

    return (not missing, missing)


def generate_fix_suggestions(errors: list[str], elements: SceneElements) -> list[str]:
    """Concrete text to add to a prompt for each validation error."""
    suggestions = []
    for error in errors:
        lowered = error.lower()
        if "setting" in lowered:
            location = elements.specific_location or elements.setting
            suggestions.append(f'Add to prompt: "The scene takes place {location}"')
        if "character" in lowered:
            suggestions.append(f'Add to prompt: "{" and ".join(elements.characters)} appear in this scene"')
        if "underwater" in lowered:
            suggestions.append('Specify: "completely underwater scene with visible water, fish, and ocean elements"')
        if "action" in lowered:
            suggestions.append(f'Describe the action: "{elements.action}"')
    return suggestions
