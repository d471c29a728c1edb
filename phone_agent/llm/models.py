"""
LLM Model Configuration
=======================

Request settings and the response envelope for the decision LLM.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from phone_agent.config import OracleSettings

DEFAULT_GROQ_MODEL = "qwen/qwen3-32b"


@dataclass
class LLMConfig:
    """
    How the oracle talks to Groq.

    Decisions are a single short JSON object, so the defaults favour a
    small output budget and near-deterministic sampling.

    Attributes:
        model: Groq model id.
        api_key: Groq API key.
        max_output_tokens: Cap on generated tokens per decision.
        temperature: Sampling temperature (0.0-2.0).
        timeout: Per-request timeout in seconds.
        rate_limit_retries: Extra attempts after a 429.
        top_p: Nucleus sampling parameter.
    """

    model: str = DEFAULT_GROQ_MODEL
    api_key: str = ""
    max_output_tokens: int = 256
    temperature: float = 0.1
    timeout: float = 30.0
    rate_limit_retries: int = 2
    top_p: float = 1.0

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("Groq API key is required")
        if not 0 <= self.temperature <= 2:
            raise ValueError("Temperature must be between 0 and 2")
        if self.max_output_tokens < 1:
            raise ValueError("max_output_tokens must be positive")
        if not 0 <= self.top_p <= 1:
            raise ValueError("top_p must be between 0 and 1")
        if self.rate_limit_retries < 0:
            raise ValueError("rate_limit_retries must not be negative")

    @classmethod
    def from_settings(cls, oracle: "OracleSettings") -> "LLMConfig":
        """Build from the ``oracle`` settings section."""
        return cls(
            model=oracle.groq_model,
            api_key=oracle.groq_api_key,
            max_output_tokens=oracle.oracle_max_tokens,
            temperature=oracle.oracle_temperature,
            timeout=oracle.oracle_timeout,
            rate_limit_retries=oracle.oracle_rate_limit_retries,
        )


@dataclass
class LLMResponse:
    """
    One completion returned by the LLM.

    Attributes:
        content: Generated text, possibly with ``<think>`` blocks.
        model: Model that produced it.
        usage: Token counts as reported by the API.
        finish_reason: Why generation stopped (``stop``, ``length``).
    """

    content: str
    model: str
    usage: dict = field(default_factory=dict)
    finish_reason: Optional[str] = None

    @property
    def prompt_tokens(self) -> int:
        return self.usage.get("prompt_tokens", 0)

    @property
    def completion_tokens(self) -> int:
        return self.usage.get("completion_tokens", 0)

    @property
    def total_tokens(self) -> int:
        return self.usage.get("total_tokens", 0)
