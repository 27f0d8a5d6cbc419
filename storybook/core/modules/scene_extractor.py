"""
Extract the visual elements of a story page from its text.

Regex heuristics find the setting, the main action, who is present, the
mood, notable objects, time of day and weather. The result feeds image
prompts and the prompt validator.
"""

import re
from typing import Optional

from ..types import SceneElements

# Ordered: the first matching setting wins
SETTING_PATTERNS: dict[str, re.Pattern] = {
    "water": re.compile(r"\b(ocean|sea|underwater|lake|river|pond|beach|waves|depths|aquatic|marine)\b", re.I),
    "forest": re.compile(r"\b(forest|woods|trees|jungle|grove|woodland)\b", re.I),
    "home": re.compile(r"\b(home|house|room|bedroom|kitchen|living room|yard|garden)\b", re.I),
    "sky": re.compile(r"\b(sky|clouds|flying|air|heaven|atmosphere)\b", re.I),
    "mountain": re.compile(r"\b(mountain|hill|peak|cliff|valley)\b", re.I),
    "city": re.compile(r"\b(city|town|street|building|neighborhood|urban)\b", re.I),
    "school": re.compile(r"\b(school|classroom|playground|library)\b", re.I),
    "fantasy": re.compile(r"\b(castle|kingdom|magical|enchanted|fairyland)\b", re.I),
}

ACTION_PATTERNS: dict[str, re.Pattern] = {
    "movement": re.compile(
        r"\b(swim|swam|swimming|dive|dove|diving|fly|flew|flying|run|ran|running|"
        r"walk|walked|walking|jump|jumped|jumping|climb|climbed|climbing)\b",
        re.I,
    ),
    "interaction": re.compile(
        r"\b(meet|met|meeting|talk|talked|talking|play|played|playing|help|helped|helping|"
        r"share|shared|sharing|teach|taught|teaching)\b",
        re.I,
    ),
    "discovery": re.compile(
        r"\b(find|found|finding|discover|discovered|discovering|explore|explored|exploring|"
        r"search|searched|searching|learn|learned|learning)\b",
        re.I,
    ),
    "emotion": re.compile(
        r"\b(smile|smiled|smiling|laugh|laughed|laughing|cry|cried|crying|hug|hugged|hugging)\b",
        re.I,
    ),
}

MOOD_PATTERNS: dict[str, re.Pattern] = {
    "positive": re.compile(r"\b(happy|excited|joyful|cheerful|peaceful|calm|content|proud|brave|confident)\b", re.I),
    "adventurous": re.compile(r"\b(adventure|adventurous|curious|explore|discover|journey|quest)\b", re.I),
    "magical": re.compile(r"\b(magical|wonder|amazing|enchanted|mystical|fantastic|extraordinary)\b", re.I),
    "cozy": re.compile(r"\b(cozy|warm|comfortable|safe|gentle|quiet|serene)\b", re.I),
}

CHARACTER_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b([A-Z][a-z]+)(?:\s+(?:the|a|an))?\s+(?:and|met|saw|found|with)\b"),  # "Emma met"
    re.compile(r"\b(?:named|called)\s+([A-Z][a-z]+)\b"),  # "named Tito"
    re.compile(r"\b([A-Z][a-z]+)(?:'s|,)\b"),  # "Emma's"
    re.compile(r"\b(turtle|fish|bird|lion|monkey|ant|butterfly|dog|cat|rabbit|bear|elephant|dragon)\b", re.I),
]

OBJECT_PATTERNS: list[re.Pattern] = [
    re.compile(r"\b(crown|toothbrush|brush|book|toy|ball|flower|treasure|chest|key|door|window|boat|ship)\b", re.I),
    re.compile(r"\b(magical|glowing|sparkling|shiny|golden|silver)\s+(\w+)\b", re.I),
]

ARTICLES = {"The", "A", "An"}

UNDERWATER_PATTERN = re.compile(r"\b(underwater|beneath|depths|deep|submerged)\b", re.I)
BEACH_PATTERN = re.compile(r"\b(beach|shore|sand|coast)\b", re.I)
OCEAN_PATTERN = re.compile(r"\b(ocean)\b", re.I)
FIRST_NAME_PATTERN = re.compile(r"\b[A-Z][a-z]+\b")
TIME_PATTERN = re.compile(r"\b(morning|afternoon|evening|night|sunset|sunrise|dawn|dusk|noon|midnight)\b", re.I)
WEATHER_PATTERN = re.compile(r"\b(sunny|rainy|stormy|cloudy|foggy|misty|clear|windy|snowy)\b", re.I)


def _extract_characters(text: str) -> list[str]:
    # dict keeps first-seen order
    found: dict[str, None] = {}

    first_name = FIRST_NAME_PATTERN.search(text)
    if first_name and first_name.group(0) not in ARTICLES:
        found[first_name.group(0)] = None

    for pattern in CHARACTER_PATTERNS:
        for match in pattern.finditer(text):
            name = match.group(1)
            if name and name not in ARTICLES:
                found[name] = None

    return list(found)


def _extract_objects(text: str) -> list[str]:
    found: dict[str, None] = {}
    for pattern in OBJECT_PATTERNS:
        for match in pattern.finditer(text):
            found[match.group(0).lower()] = None
    return list(found)


def extract_scene_elements(text: str) -> SceneElements:
    """Pull setting, action, characters, mood and details out of page text."""
    elements = SceneElements()

    for setting, pattern in SETTING_PATTERNS.items():
        match = pattern.search(text)
        if match:
            elements.setting = setting
            elements.specific_location = match.group(0).lower()
            break

    if elements.setting == "water":
        if UNDERWATER_PATTERN.search(text):
            elements.specific_location = "underwater"
        elif BEACH_PATTERN.search(text):
            elements.specific_location = "beach"
        elif OCEAN_PATTERN.search(text):
            elements.specific_location = "ocean"

    for pattern in ACTION_PATTERNS.values():
        match = pattern.search(text)
        if match:
            elements.action = match.group(0).lower()
            break

    elements.characters = _extract_characters(text)

    for pattern in MOOD_PATTERNS.values():
        match = pattern.search(text)
        if match:
            elements.mood = match.group(0).lower()
            break

    elements.key_objects = _extract_objects(text)

    time_match = TIME_PATTERN.search(text)
    if time_match:
        elements.time_of_day = time_match.group(0).lower()

    weather_match = WEATHER_PATTERN.search(text)
    if weather_match:
        elements.weather = weather_match.group(0).lower()

    return elements


def extract_enhanced_scene_elements(
    text: str,
    previous: Optional[SceneElements] = None,
) -> SceneElements:
    """
    Extract elements using the previous page as context.

    Characters from the previous page that are mentioned again are kept,
    and an undetermined setting inherits the previous page's setting.
    """
    elements = extract_scene_elements(text)
    lowered = text.lower()

    if previous is not None:
        for character in previous.characters:
            if character.lower() in lowered and character not in elements.characters:
                elements.characters.append(character)

        if elements.setting == "unknown" and previous.setting:
            elements.setting = previous.setting
            elements.specific_location = previous.specific_location

    if ("plunged into" in lowered or "dove into" in lowered) and elements.setting == "water":
        elements.specific_location = "underwater"
        elements.action = "diving"

    return elements


def validate_scene_elements(elements: SceneElements) -> tuple[bool, list[str]]:
    """Return (valid, issues) for an extracted scene."""
    issues = []

    if elements.setting == "unknown":
        issues.append("Could not determine setting/location")

    if not elements.characters:
        issues.append("No characters identified")

    if (
        elements.setting == "water"
        and elements.specific_location == "underwater"
        and elements.action == "flying"
    ):
        issues.append('Action "flying" inconsistent with underwater setting')

    return (not issues, issues)


def scene_elements_to_description(elements: SceneElements) -> str:
    """Render extracted elements as a sentence-per-element description."""
    parts = []

    if elements.specific_location:
        parts.append(f"The scene takes place {elements.specific_location}.")
    else:
        parts.append(f"The scene takes place in a {elements.setting}.")

    if elements.characters:
        parts.append(f"Characters present: {', '.join(elements.characters)}.")

    parts.append(f"The main action is {elements.action}.")
    parts.append(f"The mood is {elements.mood}.")

    if elements.key_objects:
        parts.append(f"Important objects: {', '.join(elements.key_objects)}.")
    if elements.time_of_day:
        parts.append(f"Time: {elements.time_of_day}.")
    if elements.weather:
        parts.append(f"Weather: {elements.weather}.")

    return " ".join(parts)
