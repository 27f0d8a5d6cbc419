"""Tests for story prompt assembly, JSON parsing and the fallback story."""

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from storybook.core.modules.story_writer import (
    StoryParseError,
    StoryWriter,
    build_story_brief,
    fallback_story,
    parse_story_json,
    usage_from_history,
)
from storybook.core.types import StoryBrief

STORY_JSON = json.dumps(
    {
        "title": "Maya Under the Sea",
        "pages": [
            {"pageNumber": 1, "text": "Maya dove in.", "imagePrompt": "Maya underwater in the ocean", "learningFocus": "Courage"},
            {"pageNumber": 2, "text": "She met Tito.", "imagePrompt": "Maya with a turtle named Tito"},
        ],
    }
)


def _brief(**overrides) -> StoryBrief:
    fields = {"child_name": "Maya", "child_age": "5"}
    fields.update(overrides)
    return StoryBrief(**fields)


class TestBuildStoryBrief:
    def test_minimal(self):
        prompt = build_story_brief(_brief())

        assert prompt.startswith("Create a personalized story for Maya, age 5.")
        assert "THEME REQUIREMENTS" not in prompt
        assert "STORY CUSTOMIZATION" not in prompt
        assert "- Create a 8-10 page story" in prompt
        assert '"child with specific appearance"' in prompt

    def test_full_brief(self):
        prompt = build_story_brief(
            _brief(
                theme={"name": "Ocean", "category": "adventure", "imageStyle": "watercolor"},
                customization={"setting": "coral reef", "characters": ["Tito"], "tone": "gentle"},
                child_interests=["fish", "boats"],
                appearance="curly black hair",
                cultural_background="Indian",
            )
        )

        assert "- Theme: Ocean (adventure)" in prompt
        assert "- Setting: coral reef" in prompt
        assert "- Characters to include: Tito" in prompt
        assert "- Story tone: gentle" in prompt
        assert "- Interests: fish, boats" in prompt
        assert '"curly black hair"' in prompt
        assert "- Cultural background: Indian" in prompt


class TestParseStoryJson:
    def test_parses_pages(self):
        title, pages = parse_story_json(STORY_JSON)

        assert title == "Maya Under the Sea"
        assert [p.page_number for p in pages] == [1, 2]
        assert pages[0].learning_focus == "Courage"

    def test_extracts_json_from_prose(self):
        """Text around the JSON object is ignored."""
        title, _ = parse_story_json(f"Here is your story:\n```json\n{STORY_JSON}\n```\nEnjoy!")

        assert title == "Maya Under the Sea"

    @pytest.mark.parametrize(
        "raw",
        [
            "no json here",
            '{"title": "x"}',
            '{"title": "x", "pages": [{"pageNumber": 1, "text": "t"}]}',
            "",
        ],
    )
    def test_rejects(self, raw):
        with pytest.raises(StoryParseError):
            parse_story_json(raw)


def test_fallback_story():
    title, pages = fallback_story("Arjun")

    assert title == "Arjun's Adventure"
    assert len(pages) == 4
    assert all("Arjun" in page.text for page in pages)


def test_usage_from_history_mixed_shapes():
    """OpenAI and Anthropic usage shapes both count."""
    lm = SimpleNamespace(
        history=[
            {"usage": {"prompt_tokens": 999, "completion_tokens": 999}},
            {"usage": {"prompt_tokens": 100, "completion_tokens": 50}},
            {"response": SimpleNamespace(usage=SimpleNamespace(input_tokens=20, output_tokens=10))},
            {"usage": None},
        ]
    )

    assert usage_from_history(lm, start=1) == (120, 60)


class TestStoryWriter:
    def _lm(self):
        return SimpleNamespace(model="openai/gpt-4", history=[])

    def test_forward(self):
        writer = StoryWriter(lm=self._lm())
        with patch.object(StoryWriter, "_call_model", return_value=STORY_JSON) as call:
            story = writer(_brief())

        assert story.title == "Maya Under the Sea"
        assert story.model == "gpt-4"
        assert not story.is_fallback
        assert "Maya" in call.call_args.args[0]

    def test_unparseable_answer_falls_back(self):
        writer = StoryWriter(lm=self._lm())
        with patch.object(StoryWriter, "_call_model", return_value="Sorry, I can't do that"):
            story = writer(_brief())

        assert story.is_fallback
        assert story.title == "Maya's Adventure"
        assert len(story.pages) == 4
