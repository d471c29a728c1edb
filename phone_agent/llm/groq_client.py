"""
Groq LLM Client
================

Chat completions client used by the decision oracle.

The ``groq`` SDK is synchronous, so each request runs in a worker thread
to keep the automation loop responsive. The SDK's own retries are
disabled; this client retries only on 429 responses, a bounded number
of times, and turns every other failure into LLMError.

Usage:
    from phone_agent.llm.groq_client import GroqLLMClient
    from phone_agent.llm.models import LLMConfig

    client = GroqLLMClient(LLMConfig(api_key="gsk_..."))
    response = await client.complete(user_prompt, system_prompt=SYSTEM_PROMPT)
"""

import asyncio
import re
from typing import Any, Optional

from groq import APIConnectionError as GroqAPIConnectionError
from groq import APIStatusError as GroqAPIStatusError
from groq import APITimeoutError as GroqAPITimeoutError
from groq import Groq
from groq import RateLimitError as GroqRateLimitError

from phone_agent.llm.models import LLMConfig, LLMResponse
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

_DEFAULT_RETRY_DELAY = 5.0  # seconds
_MAX_RETRY_DELAY = 30.0
_BACKOFF_MULTIPLIER = 2.0

# Groq states the wait in the 429 message: "Please try again in 1m2.5s"
_RETRY_HINT = re.compile(r"try again in\s+(?:(\d+)m)?([\d.]+)s", re.IGNORECASE)


class LLMError(Exception):
    """Exception raised for LLM-related errors."""


class RateLimitError(LLMError):
    """The API kept answering 429 after every retry."""

    def __init__(self, message: str, retry_after: float = _DEFAULT_RETRY_DELAY):
        super().__init__(message)
        self.retry_after = retry_after


def _extract_retry_delay(error: Exception, attempt: int = 1) -> float:
    """
    Seconds to wait before retrying a rate-limited request.

    Uses the delay Groq puts in the error message when there is one,
    otherwise exponential backoff from _DEFAULT_RETRY_DELAY. Capped at
    _MAX_RETRY_DELAY.
    """
    match = _RETRY_HINT.search(str(error))
    if match:
        minutes = int(match.group(1) or 0)
        try:
            return min(minutes * 60 + float(match.group(2)), _MAX_RETRY_DELAY)
        except ValueError:
            pass
    return min(_DEFAULT_RETRY_DELAY * _BACKOFF_MULTIPLIER ** (attempt - 1), _MAX_RETRY_DELAY)


def _is_rate_limit_error(error: Exception) -> bool:
    """True for errors whose message looks like a 429."""
    text = str(error).lower()
    return any(marker in text for marker in ("429", "rate_limit", "rate limit"))


def _to_llm_response(raw: Any, model: str) -> LLMResponse:
    """Convert an SDK chat completion into an LLMResponse."""
    choice = raw.choices[0] if raw.choices else None

    usage: dict[str, int] = {}
    if raw.usage:
        usage = {
            "prompt_tokens": raw.usage.prompt_tokens or 0,
            "completion_tokens": raw.usage.completion_tokens or 0,
            "total_tokens": raw.usage.total_tokens or 0,
        }

    return LLMResponse(
        content=(choice.message.content if choice else None) or "",
        model=model,
        usage=usage,
        finish_reason=(choice.finish_reason if choice else None) or None,
    )


class GroqLLMClient:
    """
    Async wrapper around the Groq chat completions API.

    One instance serves one automation loop. ``api_call_count`` counts
    every request sent, retries included.
    """

    def __init__(self, config: LLMConfig) -> None:
        self.config = config
        self._client = Groq(api_key=config.api_key, timeout=config.timeout, max_retries=0)
        self.api_call_count = 0

        logger.info("Groq LLM client initialized", model=config.model)

    def _build_messages(self, prompt: str, system_prompt: Optional[str] = None) -> list[dict]:
        """Build the system + user message list."""
        messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
        messages.append({"role": "user", "content": prompt})
        return messages

    async def _create(self, messages: list[dict]) -> Any:
        """Send one chat completion request from a worker thread."""
        self.api_call_count += 1
        return await asyncio.to_thread(
            self._client.chat.completions.create,
            model=self.config.model,
            messages=messages,
            max_tokens=self.config.max_output_tokens,
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            stream=False,
        )

    async def _call_api(self, messages: list[dict]) -> LLMResponse:
        """
        Send a request, retrying only when rate limited.

        Raises:
            RateLimitError: Still rate limited after rate_limit_retries.
            LLMError: Any other API, network or timeout failure.
        """
        max_attempts = self.config.rate_limit_retries + 1
        attempt = 0

        while True:
            attempt += 1
            try:
                raw = await self._create(messages)
                return _to_llm_response(raw, self.config.model)

            except GroqRateLimitError as e:
                delay = _extract_retry_delay(e, attempt)
                if attempt >= max_attempts:
                    logger.error("Groq rate limit not lifted", attempts=attempt)
                    raise RateLimitError(str(e), retry_after=delay) from e

            except GroqAPITimeoutError as e:
                logger.error("Groq request timed out", timeout=self.config.timeout)
                raise LLMError(f"Request timed out after {self.config.timeout:g}s") from e

            except GroqAPIConnectionError as e:
                logger.error("Could not reach Groq", error=str(e))
                raise LLMError(f"Connection error: {e}") from e

            except GroqAPIStatusError as e:
                # Some proxies report 429s with a different status class
                if not _is_rate_limit_error(e) or attempt >= max_attempts:
                    logger.error("Groq API error", status_code=e.status_code, error=str(e))
                    raise LLMError(f"API error: {e}") from e
                delay = _extract_retry_delay(e, attempt)

            except Exception as e:
                logger.error("Unexpected error calling Groq", error=str(e))
                raise LLMError(f"Unexpected error: {e}") from e

            logger.warning(
                "Rate limited by Groq, retrying",
                attempt=attempt,
                max_attempts=max_attempts,
                retry_after_seconds=round(delay, 1),
            )
            await asyncio.sleep(delay)

    async def complete(self, prompt: str, system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Generate one completion.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system instruction.

        Returns:
            LLMResponse with the generated text.

        Raises:
            LLMError: On API or network errors.
        """
        return await self._call_api(self._build_messages(prompt, system_prompt))

    def get_api_call_count(self) -> int:
        """Get the total number of API calls made."""
        return self.api_call_count

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()
        logger.debug("Groq LLM client closed")
