"""
LLM configuration for story writing.

The story LM is picked by provider priority:
1. GPT-4 (OPENAI_API_KEY)
2. Claude 3.5 Sonnet (ANTHROPIC_API_KEY)
3. Gemini 1.5 Pro (GOOGLE_API_KEY)

Includes:
- 120s timeout per LLM call to fail fast on hanging connections
- Retry with exponential backoff for transient network errors
"""

import logging
import os

import dspy
from dotenv import load_dotenv
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

# Timeout for LLM calls (seconds)
LLM_TIMEOUT = 120

STORY_TEMPERATURE = 0.8
STORY_MAX_TOKENS = 4000

# (env var, LiteLLM model id) in priority order
STORY_MODELS = [
    ("OPENAI_API_KEY", "openai/gpt-4"),
    ("ANTHROPIC_API_KEY", "anthropic/claude-3-5-sonnet-20241022"),
    ("GOOGLE_API_KEY", "gemini/gemini-1.5-pro"),
]

# Network errors that should trigger retry
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    BrokenPipeError,
    OSError,
)


def get_story_lm() -> dspy.LM:
    """
    Get the LM used to write stories and custom templates.

    Raises:
        ValueError: If no provider key is configured
    """
    for env_var, model in STORY_MODELS:
        api_key = os.getenv(env_var)
        if api_key:
            return dspy.LM(
                model,
                api_key=api_key,
                max_tokens=STORY_MAX_TOKENS,
                temperature=STORY_TEMPERATURE,
                timeout=LLM_TIMEOUT,
            )
    raise ValueError(
        "No API key found. Set OPENAI_API_KEY, ANTHROPIC_API_KEY, or GOOGLE_API_KEY in .env"
    )


def get_story_model_name() -> str:
    """Name of the model get_story_lm() would use, without the provider prefix."""
    for env_var, model in STORY_MODELS:
        if os.getenv(env_var):
            return model.split("/", 1)[1]
    return "unknown"


# Retry decorator for LLM calls with network errors
llm_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
