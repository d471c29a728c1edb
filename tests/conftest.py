"""
Shared Test Fixtures
====================

Pytest fixtures used across all test modules.

Provides a scripted in-memory command channel, a mocked Groq client and
raw accessibility trees shaped like the ones the phone reports.
"""

import os

# Set required env vars BEFORE any phone_agent.* imports
os.environ.setdefault("GROQ_API_KEY", "gsk_test-groq-key-for-testing")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")

import json
from itertools import count
from typing import Any, Optional, Union
from unittest.mock import AsyncMock, MagicMock

import pytest

from phone_agent.agent.actions.handler import ActionExecutor
from phone_agent.agent.automation_loop import AutomationConfig, AutomationLoop
from phone_agent.agent.decision import DecisionOracle
from phone_agent.channel.command_channel import CommandChannel, CommandResponse, PollingProfile
from phone_agent.llm.groq_client import GroqLLMClient
from phone_agent.llm.models import LLMResponse

INSTANT_PROFILE = PollingProfile(interval=0, timeout=1.0)

Scripted = Union[CommandResponse, list, None]


def make_node(
    text: str = "",
    cls: str = "android.widget.TextView",
    bounds: str = "[0,0][100,100]",
    children: Optional[list] = None,
    **flags: Any,
) -> dict[str, Any]:
    """Build a raw accessibility node."""
    node: dict[str, Any] = {"class": cls, "text": text, "bounds": bounds}
    node.update(flags)
    if children is not None:
        node["children"] = children
    return node


def settings_screen() -> dict[str, Any]:
    """A small home screen: title, search field, Settings button."""
    return make_node(
        cls="android.widget.FrameLayout",
        bounds="[0,0][1080,2400]",
        children=[
            make_node("Home", bounds="[0,0][100,50]"),
            make_node(
                "",
                cls="android.widget.EditText",
                bounds="[0,50][1080,150]",
                clickable=True,
                **{"content-desc": "Search"},
            ),
            make_node(
                "Settings",
                cls="android.widget.Button",
                bounds="[0,150][200,200]",
                clickable=True,
            ),
        ],
    )


def llm_reply(payload: Union[str, dict]) -> LLMResponse:
    """Wrap an action (dict) or raw text as an LLMResponse."""
    content = payload if isinstance(payload, str) else json.dumps(payload)
    return LLMResponse(content=content, model="qwen/qwen3-32b")


class FakeCommandChannel(CommandChannel):
    """
    In-memory command store.

    Responses are scripted per command type. A list is consumed one
    entry per command, the last entry repeating. ``None`` means the
    command never leaves pending.
    """

    def __init__(self, responses: Optional[dict[str, Scripted]] = None) -> None:
        self.responses: dict[str, Scripted] = dict(responses or {})
        self.sent: list[tuple[str, dict]] = []
        self.polls = 0
        self.closed = False
        self._ids = count(1)
        self._pending: dict[str, Optional[CommandResponse]] = {}

    async def submit(self, command_type: str, params: Optional[dict] = None) -> str:
        self.sent.append((command_type, dict(params or {})))
        command_id = str(next(self._ids))
        self._pending[command_id] = self._next_response(command_type)
        return command_id

    async def poll(self, command_id: str) -> Optional[CommandResponse]:
        self.polls += 1
        return self._pending[command_id]

    async def close(self) -> None:
        self.closed = True

    def _next_response(self, command_type: str) -> Optional[CommandResponse]:
        scripted = self.responses.get(command_type, CommandResponse.completed("ok"))
        if isinstance(scripted, list):
            if len(scripted) > 1:
                return scripted.pop(0)
            return scripted[0]
        return scripted

    def sent_types(self) -> list[str]:
        return [command_type for command_type, _ in self.sent]

    def actions_sent(self) -> list[tuple[str, dict]]:
        """Everything except observations."""
        return [entry for entry in self.sent if entry[0] != "get_ui_elements"]


# ---------------------------------------------------------------------------
# Channel
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_channel() -> FakeCommandChannel:
    """Channel whose screen is the settings screen and every action completes."""
    return FakeCommandChannel({"get_ui_elements": CommandResponse.completed(settings_screen())})


# ---------------------------------------------------------------------------
# LLM client mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm_client() -> MagicMock:
    """Create a mock GroqLLMClient that reports done."""
    client = MagicMock(spec=GroqLLMClient)
    client.complete = AsyncMock(
        return_value=llm_reply({"action": "done", "summary": "Opened settings"})
    )
    client.get_api_call_count = MagicMock(return_value=0)
    client.close = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# Loop assembly
# ---------------------------------------------------------------------------


@pytest.fixture
def zero_delay_config() -> AutomationConfig:
    """Default limits without any sleeping."""
    return AutomationConfig(settle_delay=0)


@pytest.fixture
def make_loop(mock_llm_client, zero_delay_config):
    """Factory building an AutomationLoop around a channel."""

    def _make(channel: CommandChannel, config: Optional[AutomationConfig] = None) -> AutomationLoop:
        return AutomationLoop(
            channel=channel,
            oracle=DecisionOracle(mock_llm_client),
            executor=ActionExecutor(channel, profile=INSTANT_PROFILE, wait_seconds=0),
            config=config or zero_delay_config,
            profile=INSTANT_PROFILE,
        )

    return _make
