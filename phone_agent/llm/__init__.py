"""
LLM Integration Module
======================

Groq client and decision parsing for the phone automation loop.

This package contains:
    - groq_client: Groq chat completions client
    - response_parser: Turn model output into a single Action
    - models: Model configuration and data classes
"""

from phone_agent.llm.groq_client import GroqLLMClient, LLMError, RateLimitError
from phone_agent.llm.models import DEFAULT_GROQ_MODEL, LLMConfig, LLMResponse
from phone_agent.llm.response_parser import (
    Action,
    ActionType,
    action_signature,
    extract_json_object,
    format_action_for_log,
    parse_action,
    parse_decision,
    strip_thinking,
)

__all__ = [
    "GroqLLMClient",
    "LLMConfig",
    "LLMError",
    "RateLimitError",
    "LLMResponse",
    "DEFAULT_GROQ_MODEL",
    "Action",
    "ActionType",
    "action_signature",
    "extract_json_object",
    "format_action_for_log",
    "parse_action",
    "parse_decision",
    "strip_thinking",
]
