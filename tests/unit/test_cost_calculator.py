"""Tests for cost calculator module."""

from decimal import Decimal

from storybook.core.cost_calculator import (
    PRICING,
    calculate_image_cost,
    calculate_llm_cost,
    get_model_pricing,
)


class TestPricing:
    """Tests for pricing data."""

    def test_story_model_pricing_exists(self):
        pricing = get_model_pricing("gpt-4")
        assert isinstance(pricing["input"], Decimal)
        assert isinstance(pricing["output"], Decimal)

    def test_provider_prefix_ignored(self):
        """LiteLLM ids like openai/gpt-4 resolve to the bare model."""
        assert get_model_pricing("openai/gpt-4") == PRICING["gpt-4"]

    def test_image_model_pricing_exists(self):
        pricing = get_model_pricing("dall-e-3")
        assert pricing["per_image"] == Decimal("0.040")
        assert pricing["per_image_hd"] == Decimal("0.080")

    def test_unknown_model_returns_empty(self):
        assert get_model_pricing("unknown-model") == {}


class TestLlmCost:
    def test_token_pricing(self):
        """1000 input and 500 output tokens of gpt-4: 0.03 + 0.03."""
        assert calculate_llm_cost("gpt-4", 1000, 500) == Decimal("0.06")

    def test_flat_per_request(self):
        """Replicate and Gemini vision are billed per request whatever the tokens."""
        assert calculate_llm_cost("llava-13b", 50_000, 50_000) == Decimal("0.0023")
        assert calculate_llm_cost("gemini-1.5-pro", 0, 0) == Decimal("0.001")

    def test_unknown_model_is_free(self):
        assert calculate_llm_cost("mystery", 1000, 1000) == Decimal("0")


class TestImageCost:
    def test_quality(self):
        assert calculate_image_cost("dall-e-3", 2) == Decimal("0.080")
        assert calculate_image_cost("dall-e-3", 1, "hd") == Decimal("0.080")

    def test_non_image_model(self):
        assert calculate_image_cost("gpt-4", 3) == Decimal("0")

