"""
Cost calculation for vendor calls.

Pure functions for computing costs from usage data.
Pricing is the single source of truth for model rates.
"""

from decimal import Decimal


# Pricing per 1K tokens for LLM models, per image for image models,
# and per request for vision endpoints billed flat.
# Update these when pricing changes
PRICING: dict[str, dict[str, Decimal]] = {
    # Story text
    "gpt-4": {
        "input": Decimal("0.03"),      # $30 per 1M input tokens
        "output": Decimal("0.06"),     # $60 per 1M output tokens
    },
    # Vision models
    "gpt-4o": {
        "input": Decimal("0.005"),
        "output": Decimal("0.015"),
    },
    "claude-3-5-sonnet-20241022": {
        "input": Decimal("0.003"),     # $3 per 1M input tokens
        "output": Decimal("0.015"),    # $15 per 1M output tokens
    },
    "gemini-1.5-pro": {
        "per_request": Decimal("0.001"),
    },
    "llava-13b": {
        "per_request": Decimal("0.0023"),
    },
    "minigpt-4": {
        "per_request": Decimal("0.0023"),
    },
    # Image models (per image, by quality)
    "dall-e-3": {
        "per_image": Decimal("0.040"),
        "per_image_hd": Decimal("0.080"),
    },
}


def get_model_pricing(model: str) -> dict[str, Decimal]:
    """
    Get pricing for a model.

    Args:
        model: Model identifier (e.g., "gpt-4o"). A LiteLLM provider
            prefix such as "openai/" is ignored.

    Returns:
        Dict with pricing info, or empty dict if unknown model
    """
    return PRICING.get(model.split("/")[-1], {})


def calculate_llm_cost(model: str, input_tokens: int, output_tokens: int) -> Decimal:
    """Cost of a chat/completion call priced per 1K tokens."""
    pricing = get_model_pricing(model)
    if "per_request" in pricing:
        return pricing["per_request"]
    if "input" not in pricing or "output" not in pricing:
        return Decimal("0")

    total = (Decimal(input_tokens) * pricing["input"]) / 1000
    total += (Decimal(output_tokens) * pricing["output"]) / 1000
    return total


def calculate_image_cost(model: str, count: int = 1, quality: str = "standard") -> Decimal:
    """Cost of generating `count` images at the given quality."""
    pricing = get_model_pricing(model)
    key = "per_image_hd" if quality == "hd" else "per_image"
    if key not in pricing:
        return Decimal("0")
    return Decimal(count) * pricing[key]

