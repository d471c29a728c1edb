"""
Tests for Groq LLM Client
==========================

Tests for:
- LLMConfig validation and LLMResponse token accounting
- GroqLLMClient initialization and message building
- Completion (success, empty content, usage)
- Rate-limit handling (retry, backoff, exhaustion)
- Timeout, connection and status errors
- Retry delay extraction
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from phone_agent.llm.groq_client import (
    _BACKOFF_MULTIPLIER,
    _DEFAULT_RETRY_DELAY,
    _MAX_RETRY_DELAY,
    GroqLLMClient,
    LLMError,
    RateLimitError,
    _extract_retry_delay,
    _is_rate_limit_error,
)
from phone_agent.llm.models import DEFAULT_GROQ_MODEL, LLMConfig, LLMResponse


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_config(**overrides) -> LLMConfig:
    """Create a valid LLMConfig for tests."""
    values = {"api_key": "gsk_test_key_123"}
    values.update(overrides)
    return LLMConfig(**values)


def _mock_groq_response(content="{\"action\":\"wait\"}", prompt_tokens=10,
                        completion_tokens=5, finish_reason="stop"):
    """Create a mock Groq chat completion response."""
    usage = MagicMock()
    usage.prompt_tokens = prompt_tokens
    usage.completion_tokens = completion_tokens
    usage.total_tokens = prompt_tokens + completion_tokens

    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason

    response = MagicMock()
    response.choices = [choice]
    response.usage = usage
    return response


def _rate_limit_error(message="Rate limit reached. Please try again in 2s"):
    from groq import RateLimitError as GroqRateLimit

    return GroqRateLimit(message=message, response=MagicMock(status_code=429), body=None)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class TestLLMConfig:
    def test_defaults(self):
        config = _make_config()
        assert config.model == DEFAULT_GROQ_MODEL
        assert config.max_output_tokens == 256
        assert config.temperature == 0.1
        assert config.rate_limit_retries == 2

    def test_api_key_required(self):
        with pytest.raises(ValueError, match="API key"):
            LLMConfig(api_key="")

    @pytest.mark.parametrize(
        "overrides",
        [
            {"temperature": -0.1},
            {"temperature": 2.5},
            {"max_output_tokens": 0},
            {"top_p": 1.5},
            {"rate_limit_retries": -1},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            _make_config(**overrides)


class TestLLMResponse:
    def test_token_counts(self):
        response = LLMResponse(
            content="x",
            model=DEFAULT_GROQ_MODEL,
            usage={"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
        )
        assert (response.prompt_tokens, response.completion_tokens, response.total_tokens) == (12, 3, 15)

    def test_missing_usage(self):
        response = LLMResponse(content="x", model=DEFAULT_GROQ_MODEL)
        assert response.total_tokens == 0


# ---------------------------------------------------------------------------
# Error helpers
# ---------------------------------------------------------------------------


class TestErrorHelpers:
    """Tests for _extract_retry_delay and _is_rate_limit_error."""

    def test_extract_retry_delay_seconds(self):
        assert _extract_retry_delay(Exception("Please try again in 7.5s")) == 7.5

    def test_extract_retry_delay_capped(self):
        err = Exception("Rate limit reached. Please try again in 1m30.5s")
        assert _extract_retry_delay(err) == _MAX_RETRY_DELAY

    def test_extract_retry_delay_fallback_attempt_1(self):
        assert _extract_retry_delay(Exception("Unknown"), attempt=1) == _DEFAULT_RETRY_DELAY

    def test_extract_retry_delay_fallback_attempt_2(self):
        expected = _DEFAULT_RETRY_DELAY * _BACKOFF_MULTIPLIER
        assert _extract_retry_delay(Exception("Unknown"), attempt=2) == pytest.approx(expected)

    def test_extract_retry_delay_fallback_capped(self):
        assert _extract_retry_delay(Exception("Unknown"), attempt=10) == _MAX_RETRY_DELAY

    def test_is_rate_limit_error_429(self):
        assert _is_rate_limit_error(Exception("Error 429: Too many requests"))

    def test_is_rate_limit_error_case_insensitive(self):
        assert _is_rate_limit_error(Exception("Rate Limit Exceeded"))

    def test_is_rate_limit_error_false(self):
        assert not _is_rate_limit_error(Exception("Internal server error 500"))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class TestGroqLLMClientInit:
    @patch("phone_agent.llm.groq_client.Groq")
    def test_init(self, mock_groq_cls):
        config = _make_config(timeout=12.0)
        client = GroqLLMClient(config)

        assert client.config == config
        assert client.api_call_count == 0
        mock_groq_cls.assert_called_once_with(api_key="gsk_test_key_123", timeout=12.0, max_retries=0)

    @patch("phone_agent.llm.groq_client.Groq")
    def test_build_messages(self, mock_groq_cls):
        client = GroqLLMClient(_make_config())

        assert client._build_messages("Hello") == [{"role": "user", "content": "Hello"}]
        assert client._build_messages("Hello", system_prompt="Rules") == [
            {"role": "system", "content": "Rules"},
            {"role": "user", "content": "Hello"},
        ]

    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_close(self, mock_groq_cls):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client

        await GroqLLMClient(_make_config()).close()

        mock_client.close.assert_called_once()


class TestCompletion:
    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_success(self, mock_groq_cls):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = _mock_groq_response()

        client = GroqLLMClient(_make_config())
        response = await client.complete("GOAL: x", system_prompt="Rules")

        assert response.content == '{"action":"wait"}'
        assert response.model == DEFAULT_GROQ_MODEL
        assert response.total_tokens == 15
        assert response.finish_reason == "stop"
        assert client.get_api_call_count() == 1

        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == DEFAULT_GROQ_MODEL
        assert kwargs["max_tokens"] == 256
        assert kwargs["temperature"] == 0.1
        assert kwargs["messages"][0] == {"role": "system", "content": "Rules"}

    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_empty_content(self, mock_groq_cls):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.return_value = _mock_groq_response(content=None)

        response = await GroqLLMClient(_make_config()).complete("x")

        assert response.content == ""


class TestRateLimitHandling:
    @pytest.mark.asyncio
    @patch("asyncio.sleep", new_callable=AsyncMock)
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_retry_then_success(self, mock_groq_cls, mock_sleep):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = [
            _rate_limit_error(),
            _mock_groq_response("OK"),
        ]

        client = GroqLLMClient(_make_config())
        response = await client.complete("x")

        assert response.content == "OK"
        assert client.api_call_count == 2
        mock_sleep.assert_awaited_once_with(2.0)

    @pytest.mark.asyncio
    @patch("asyncio.sleep", new_callable=AsyncMock)
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_exhausts_retries(self, mock_groq_cls, mock_sleep):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = _rate_limit_error("Rate limit")

        client = GroqLLMClient(_make_config(rate_limit_retries=2))

        with pytest.raises(RateLimitError) as exc_info:
            await client.complete("x")

        assert client.api_call_count == 3
        assert mock_sleep.await_count == 2
        assert exc_info.value.retry_after == _DEFAULT_RETRY_DELAY * _BACKOFF_MULTIPLIER ** 2

    @pytest.mark.asyncio
    @patch("asyncio.sleep", new_callable=AsyncMock)
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_no_retries_configured(self, mock_groq_cls, mock_sleep):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = _rate_limit_error()

        client = GroqLLMClient(_make_config(rate_limit_retries=0))

        with pytest.raises(RateLimitError):
            await client.complete("x")

        assert client.api_call_count == 1
        mock_sleep.assert_not_awaited()

    def test_rate_limit_is_llm_error(self):
        assert issubclass(RateLimitError, LLMError)


class TestAPIErrorHandling:
    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_api_status_error(self, mock_groq_cls):
        from groq import APIStatusError

        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = APIStatusError(
            message="Bad request",
            response=MagicMock(status_code=400),
            body=None,
        )

        client = GroqLLMClient(_make_config())

        with pytest.raises(LLMError, match="API error"):
            await client.complete("x")
        assert client.api_call_count == 1

    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_timeout(self, mock_groq_cls):
        from groq import APITimeoutError

        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = APITimeoutError(request=MagicMock())

        with pytest.raises(LLMError, match="timed out after 30s"):
            await GroqLLMClient(_make_config()).complete("x")

    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_connection_error(self, mock_groq_cls):
        from groq import APIConnectionError

        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = APIConnectionError(request=MagicMock())

        with pytest.raises(LLMError, match="Connection error"):
            await GroqLLMClient(_make_config()).complete("x")

    @pytest.mark.asyncio
    @patch("phone_agent.llm.groq_client.Groq")
    async def test_unexpected_error(self, mock_groq_cls):
        mock_client = MagicMock()
        mock_groq_cls.return_value = mock_client
        mock_client.chat.completions.create.side_effect = RuntimeError("Boom")

        with pytest.raises(LLMError, match="Unexpected error"):
            await GroqLLMClient(_make_config()).complete("x")
