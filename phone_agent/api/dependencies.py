"""
API Dependencies
================

Shared resources handed to routes through FastAPI ``Depends``.

The command channel and the automation loop are created on first use
and reused for the life of the process. Tests replace them through
``app.dependency_overrides``.
"""

from typing import Optional

from phone_agent.agent.automation_loop import AutomationLoop
from phone_agent.agent.runner import create_automation_loop
from phone_agent.channel.command_channel import CommandChannel, PollingProfile
from phone_agent.channel.supabase_channel import create_command_channel
from phone_agent.config import get_settings

_channel: Optional[CommandChannel] = None
_loop: Optional[AutomationLoop] = None


def get_command_channel() -> CommandChannel:
    """Get the process-wide command channel."""
    global _channel
    if _channel is None:
        _channel = create_command_channel(get_settings().channel)
    return _channel


def get_standard_profile() -> PollingProfile:
    """Polling profile for user-facing one-shot commands."""
    channel_settings = get_settings().channel
    return PollingProfile(
        interval=channel_settings.poll_interval,
        timeout=channel_settings.poll_timeout,
    )


def get_automation_loop() -> AutomationLoop:
    """Get the process-wide automation loop."""
    global _loop
    if _loop is None:
        _loop = create_automation_loop(channel=get_command_channel())
    return _loop


async def close_resources() -> None:
    """Close the shared command channel and LLM client, then forget them."""
    global _channel, _loop
    if _loop is not None:
        await _loop.close()
    elif _channel is not None:
        await _channel.close()
    _channel = None
    _loop = None
