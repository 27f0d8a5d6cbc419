"""
DSPy Module for writing a personalized story.

The brief is assembled from the theme, the parent's customization and the
child's details. The model answers with a JSON object; anything that does
not parse into pages with text and image prompts is replaced by a short
fallback story so the parent always gets a book.
"""

import json
import logging
import re
from typing import Optional

import dspy

from ...config.llm import llm_retry
from ..types import GeneratedStory, StoryBrief, StoryPage
from ..signatures.story_writer import StoryWriterSignature

logger = logging.getLogger(__name__)

MIN_PAGES = 8
MAX_PAGES = 10

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class StoryParseError(ValueError):
    """The model's answer is not a usable story."""


def build_story_brief(brief: StoryBrief) -> str:
    """Render the prompt sections the story writer answers to."""
    name = brief.child_name
    lines = [f"Create a personalized story for {name}, age {brief.child_age}.", ""]

    if brief.theme:
        lines += [
            "THEME REQUIREMENTS:",
            f"- Theme: {brief.theme.get('name')} ({brief.theme.get('category')})",
            f"- Art Style Vision: {brief.theme.get('imageStyle')}",
            "",
        ]

    custom = brief.customization or {}
    if custom.get("setting") or custom.get("characters") is not None or custom.get("learningGoals") is not None:
        lines.append("STORY CUSTOMIZATION:")
        if custom.get("setting"):
            lines.append(f"- Setting: {custom['setting']}")
        if custom.get("characters"):
            lines.append(f"- Characters to include: {', '.join(custom['characters'])}")
        if custom.get("learningGoals"):
            lines.append(f"- Learning goals to incorporate: {', '.join(custom['learningGoals'])}")
        if custom.get("tone"):
            lines.append(f"- Story tone: {custom['tone']}")
        if custom.get("additionalInstructions"):
            lines.append(f"- Additional instructions: {custom['additionalInstructions']}")
        lines.append("")

    lines += ["CHILD DETAILS:", f"- Name: {name}", f"- Age: {brief.child_age}"]
    if brief.child_interests:
        lines.append(f"- Interests: {', '.join(brief.child_interests)}")
    if brief.appearance:
        lines.append(f"- Appearance for illustrations: {brief.appearance}")
    if brief.learning_objectives:
        lines.append(f"- Learning objectives: {', '.join(brief.learning_objectives)}")
    if brief.cultural_background:
        lines.append(f"- Cultural background: {brief.cultural_background}")
    if brief.special_considerations:
        lines.append(f"- Special considerations: {', '.join(brief.special_considerations)}")

    appearance = brief.appearance or "child with specific appearance"
    lines += [
        "",
        "STORY REQUIREMENTS:",
        f"- Create a {MIN_PAGES}-{MAX_PAGES} page story",
        "- Each page should have 2-3 sentences",
        f"- Make {name} the main character",
        "- Incorporate the theme, setting, characters, and learning goals naturally",
        "- End with a positive message that reinforces the learning objectives",
        "",
        "CRITICAL: You MUST respond with EXACTLY this JSON structure:",
        "",
        "{",
        '  "title": "[Create an engaging title that reflects the theme and child\'s name]",',
        '  "pages": [',
        "    {",
        '      "pageNumber": 1,',
        '      "text": "Story text for this page...",',
        '      "imagePrompt": "DETAILED scene that EXACTLY matches the story text - include WHERE (setting), '
        'WHO (characters), WHAT (action), and any objects mentioned",',
        '      "learningFocus": "What this page teaches or its purpose in the story"',
        "    }",
        "  ]",
        "}",
        "",
        "CRITICAL IMAGE PROMPT RULES:",
        '- If text mentions "ocean" or "underwater", imagePrompt MUST include "underwater in the ocean"',
        '- If text mentions meeting a character (like "turtle named Tito"), that character MUST be in imagePrompt',
        "- Include EXACT setting from text (ocean/forest/home/etc), not generic locations",
        f'- {name} must appear in EVERY imagePrompt with this EXACT description: "{appearance}"',
        "- NEVER change the child's appearance between pages",
        '- Be specific: "underwater with sea turtle" not just "adventure scene"',
        f'- For each imagePrompt, start with: "{name} (EXACT SAME child from all pages) ..."',
        "",
        "IMPORTANT:",
        '- Use ONLY "pageNumber", "text", "imagePrompt", "learningFocus" as field names',
        "- imagePrompt must describe EXACTLY what happens in the text",
        '- Never use generic descriptions like "child on adventure"',
        "- Focus on the specific customization settings provided",
    ]
    return "\n".join(lines)


def parse_story_json(raw: str) -> tuple[str, list[StoryPage]]:
    """
    Extract (title, pages) from the model's answer.

    Raises:
        StoryParseError: No JSON object, no pages list, or a page missing
            its number, text or image prompt
    """
    match = JSON_OBJECT.search(raw or "")
    candidate = match.group(0) if match else (raw or "")
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise StoryParseError(f"Response is not JSON: {e}") from e

    if not isinstance(data, dict) or not isinstance(data.get("pages"), list):
        raise StoryParseError("Invalid structure: missing pages array")

    pages = []
    for page in data["pages"]:
        if not isinstance(page, dict) or not (page.get("pageNumber") and page.get("text") and page.get("imagePrompt")):
            raise StoryParseError("Invalid page structure: missing required fields")
        pages.append(StoryPage.from_dict(page))

    return str(data.get("title") or ""), pages


def fallback_story(child_name: str) -> tuple[str, list[StoryPage]]:
    """Four-page story used when the model's answer cannot be parsed."""
    return f"{child_name}'s Adventure", [
        StoryPage(
            page_number=1,
            text=f"Once upon a time, there was a wonderful child named {child_name}. "
            "Today was going to be a very special day filled with amazing discoveries!",
            image_prompt=f"A cheerful child named {child_name} starting an adventure, children's book illustration style",
            learning_focus="Beginning an adventure",
        ),
        StoryPage(
            page_number=2,
            text=f"{child_name} learned that being brave doesn't mean not being scared - "
            "it means doing the right thing even when you feel afraid.",
            image_prompt=f"{child_name} showing courage in a challenging situation, warm and encouraging children's book style",
            learning_focus="Courage and bravery",
        ),
        StoryPage(
            page_number=3,
            text=f"Through kindness and perseverance, {child_name} discovered that even small actions "
            "can make a big difference in the world.",
            image_prompt=f"{child_name} helping others and making a positive impact, heartwarming children's book illustration",
            learning_focus="Kindness and impact",
        ),
        StoryPage(
            page_number=4,
            text=f"And so {child_name} returned home, wiser and happier, knowing that tomorrow "
            "would bring new adventures and opportunities to grow.",
            image_prompt=f"{child_name} at home reflecting on their adventure, peaceful and content children's book illustration",
            learning_focus="Growth and reflection",
        ),
    ]


def _usage_value(usage, *names: str) -> int:
    for name in names:
        value = getattr(usage, name, None)
        if value is None and isinstance(usage, dict):
            value = usage.get(name)
        if value:
            return int(value)
    return 0


def usage_from_history(lm, start: int = 0) -> tuple[int, int]:
    """
    Sum (input_tokens, output_tokens) over LM history entries from `start`.

    Handles LiteLLM/OpenAI (prompt_tokens, completion_tokens) and
    Anthropic/Gemini (input_tokens, output_tokens) usage shapes.
    """
    history = getattr(lm, "history", None) or []
    input_tokens = output_tokens = 0
    for entry in history[start:]:
        usage = entry.get("usage")
        if not usage:
            response = entry.get("response")
            usage = getattr(response, "usage", None)
            if usage is None and isinstance(response, dict):
                usage = response.get("usage")
        if not usage:
            continue
        input_tokens += _usage_value(usage, "prompt_tokens", "input_tokens")
        output_tokens += _usage_value(usage, "completion_tokens", "output_tokens")
    return input_tokens, output_tokens


class StoryWriter(dspy.Module):
    """
    Write a personalized storybook from a StoryBrief.

    Args:
        lm: Optional explicit LM. If omitted the globally configured LM
            is used.
    """

    def __init__(self, lm: Optional[dspy.LM] = None):
        super().__init__()
        self._lm = lm
        self.write = dspy.Predict(StoryWriterSignature)

    def _call_model(self, prompt: str) -> str:
        if self._lm is not None:
            with dspy.context(lm=self._lm):
                result = llm_retry(self.write)(story_brief=prompt)
        else:
            result = llm_retry(self.write)(story_brief=prompt)
        return result.story_json or ""

    def forward(self, brief: StoryBrief) -> GeneratedStory:
        lm = self._lm or dspy.settings.lm
        history_start = len(getattr(lm, "history", None) or [])

        raw = self._call_model(build_story_brief(brief))

        is_fallback = False
        try:
            title, pages = parse_story_json(raw)
        except StoryParseError as e:
            logger.warning(f"Falling back to default story: {e}")
            title, pages = fallback_story(brief.child_name)
            is_fallback = True

        input_tokens, output_tokens = usage_from_history(lm, history_start)
        model = getattr(lm, "model", "") or ""

        return GeneratedStory(
            title=title or f"{brief.child_name}'s Adventure",
            pages=pages,
            model=model.split("/")[-1],
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            is_fallback=is_fallback,
        )
