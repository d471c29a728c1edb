"""
Command Channel Module
======================

Asynchronous command round trips to the phone over a polled store.

This package contains:
    - command_channel: Channel contract, polling profiles, send helpers
    - supabase_channel: Supabase REST implementation
    - commands: Catalog of one-shot device commands
"""

from phone_agent.channel.command_channel import (
    FAST_PROFILE,
    STANDARD_PROFILE,
    CommandChannel,
    CommandResponse,
    CommandStatus,
    PollingProfile,
    format_command_response,
    send_command,
    send_command_fast,
    wait_for_completion,
)
from phone_agent.channel.commands import PHONE_COMMANDS, CommandDef, ParamDef, get_command
from phone_agent.channel.supabase_channel import SupabaseCommandChannel, create_command_channel

__all__ = [
    "CommandChannel",
    "CommandResponse",
    "CommandStatus",
    "PollingProfile",
    "STANDARD_PROFILE",
    "FAST_PROFILE",
    "send_command",
    "send_command_fast",
    "wait_for_completion",
    "format_command_response",
    "SupabaseCommandChannel",
    "create_command_channel",
    "PHONE_COMMANDS",
    "CommandDef",
    "ParamDef",
    "get_command",
]
