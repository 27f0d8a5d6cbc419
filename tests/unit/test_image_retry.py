"""Unit tests for image generation retry logic."""

import httpx
import openai
import pytest
from tenacity import wait_none

from storybook.config.image import RETRYABLE_IMAGE_EXCEPTIONS, image_retry
from storybook.config.llm import RETRYABLE_EXCEPTIONS, llm_retry

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/images/generations")


def _status_error(cls, code: int, message: str = "Error"):
    """Create an OpenAI status error for testing."""
    return cls(message, response=httpx.Response(code, request=REQUEST), body=None)


def _counting(side_effects):
    """An async function that raises each exception in turn, then succeeds."""
    calls = {"count": 0}

    @image_retry
    async def call():
        calls["count"] += 1
        if side_effects:
            raise side_effects.pop(0)
        return "success"

    return call.retry_with(wait=wait_none()), calls


class TestImageRetryDecorator:
    """Tests for the @image_retry decorator behavior."""

    async def test_retries_on_rate_limit(self):
        call, calls = _counting([_status_error(openai.RateLimitError, 429, "Rate limit exceeded")])

        assert await call() == "success"
        assert calls["count"] == 2

    async def test_retries_on_server_error(self):
        call, calls = _counting(
            [
                _status_error(openai.InternalServerError, 500, "Overloaded"),
                openai.APIConnectionError(request=REQUEST),
            ]
        )

        assert await call() == "success"
        assert calls["count"] == 3  # Failed twice, succeeded on third

    async def test_does_not_retry_bad_request(self):
        """A rejected prompt is not going to pass on a second attempt."""
        call, calls = _counting([_status_error(openai.BadRequestError, 400, "content_policy_violation")])

        with pytest.raises(openai.BadRequestError):
            await call()
        assert calls["count"] == 1

    async def test_does_not_retry_auth_error(self):
        call, calls = _counting([_status_error(openai.AuthenticationError, 401, "Invalid API key")])

        with pytest.raises(openai.AuthenticationError):
            await call()
        assert calls["count"] == 1

    async def test_gives_up_after_max_attempts(self):
        call, calls = _counting([openai.APITimeoutError(request=REQUEST) for _ in range(5)])

        with pytest.raises(openai.APITimeoutError):
            await call()
        assert calls["count"] == 3  # Initial + 2 retries = 3 attempts


class TestLlmRetry:
    def test_retries_network_errors(self):
        calls = {"count": 0}

        @llm_retry
        def write():
            calls["count"] += 1
            if calls["count"] < 2:
                raise ConnectionError("Network unreachable")
            return "story"

        assert write.retry_with(wait=wait_none())() == "story"
        assert calls["count"] == 2

    def test_value_errors_propagate(self):
        calls = {"count": 0}

        @llm_retry
        def write():
            calls["count"] += 1
            raise ValueError("bad output")

        with pytest.raises(ValueError):
            write.retry_with(wait=wait_none())()
        assert calls["count"] == 1


class TestRetryableExceptions:
    def test_image_exceptions(self):
        assert openai.RateLimitError in RETRYABLE_IMAGE_EXCEPTIONS
        assert openai.BadRequestError not in RETRYABLE_IMAGE_EXCEPTIONS

    def test_network_errors(self):
        assert ConnectionError in RETRYABLE_EXCEPTIONS
        assert TimeoutError in RETRYABLE_EXCEPTIONS
        assert BrokenPipeError in RETRYABLE_EXCEPTIONS
        assert OSError in RETRYABLE_EXCEPTIONS
