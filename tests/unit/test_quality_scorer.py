"""Tests for prompt quality scoring and custom template design."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from storybook.core.modules.quality_scorer import PromptQualityScore, QualityScorer, parse_score
from storybook.core.modules.template_designer import ChildProfile, TemplateDesigner


class TestParseScore:
    @pytest.mark.parametrize(
        "value,expected",
        [(8, 8.0), (" 7.5 ", 7.5), (14, 10.0), (-2, 0.0), ("great", 5.0), (None, 5.0)],
    )
    def test_parse(self, value, expected):
        assert parse_score(value) == expected


class TestPromptQualityScore:
    def test_overall_and_success(self):
        score = PromptQualityScore(
            character_consistency=9, scene_accuracy=8, art_quality=8, child_appropriateness=10, story_alignment=9
        )

        assert score.overall == 8.8
        assert score.success is True
        assert score.to_dict()["overall"] == 8.8

    def test_below_threshold(self):
        score = PromptQualityScore(
            character_consistency=5, scene_accuracy=6, art_quality=7, child_appropriateness=9, story_alignment=6
        )

        assert score.success is False


class TestQualityScorer:
    def test_scores_are_clamped(self):
        scorer = QualityScorer()
        calls = []

        def judge(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(
                character_consistency="11",
                scene_accuracy="8",
                art_quality="n/a",
                child_appropriateness=10,
                story_alignment=9,
                feedback="Mention the turtle",
            )

        scorer.judge = judge

        score = scorer("Maya met a turtle.", "A girl at the beach")

        assert score.character_consistency == 10.0
        assert score.art_quality == 5.0
        assert score.feedback == "Mention the turtle"
        assert calls[0]["character_reference"] == "Not provided"


class TestTemplateDesigner:
    def test_profile_prompt(self):
        profile = ChildProfile(child_name="Maya", child_age="6", interests=["space"])

        prompt = profile.to_prompt()

        assert "- Interests: space" in prompt
        assert "- Learning Goals: None specified" in prompt
        assert "- Cultural Background: diverse" in prompt

    def test_template_shape(self):
        result = SimpleNamespace(
            title="Maya's Star Map",
            description="A trip across the night sky",
            age_groups=["6-8"],
            educational_focus=["astronomy"],
            difficulty="beginner",
            themes=["curiosity"],
            learning_objectives=["Name three planets"],
            cover_text="Maya looks up",
            sample_page="The stars winked at Maya...",
            story_outline=["Maya finds a telescope", "Maya visits the moon"],
            parent_guide="Look at the sky together.",
            cultural_elements=[],
        )

        with patch.object(TemplateDesigner, "_call_model", return_value=result):
            template = TemplateDesigner()(ChildProfile(child_name="Maya", child_age="6"))

        assert template["id"].startswith("custom_")
        assert template["pages"] == 2
        assert template["subscriptionTier"] == "premium"
        assert template["storyOutline"][1] == {"pageNumber": 2, "summary": "Maya visits the moon"}
        assert template["preview"] == {"coverText": "Maya looks up", "samplePage": "The stars winked at Maya..."}
        assert template["personalizedFor"] == "Maya"

    def test_empty_outline_uses_default_page_count(self):
        result = SimpleNamespace(
            title="T",
            description="D",
            age_groups=None,
            educational_focus=None,
            difficulty="beginner",
            themes=None,
            learning_objectives=None,
            cover_text="",
            sample_page="",
            story_outline=None,
            parent_guide="",
            cultural_elements=None,
        )

        with patch.object(TemplateDesigner, "_call_model", return_value=result):
            template = TemplateDesigner()(ChildProfile(child_name="Leo", child_age="4"))

        assert template["pages"] == 10
        assert template["ageGroups"] == []
