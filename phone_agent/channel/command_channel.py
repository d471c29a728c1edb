"""
Command Channel
===============

Asynchronous request/response abstraction over a polled command store.

A command is submitted with a type and optional parameters and gets an
id back. The phone picks it up, runs it and writes a terminal status.
The caller polls by id until the status is terminal or a deadline passes.

Two polling profiles exist: a standard one for user-facing one-shot
commands and a faster one for the automation loop, which has to stay
responsive across many steps. The channel never retries; retry policy
belongs to the caller.

Usage:
    from phone_agent.channel import send_command_fast

    response = await send_command_fast(channel, "tap", {"x": 200, "y": 230})
    if response.status == CommandStatus.COMPLETED:
        ...
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class CommandStatus(Enum):
    """Terminal outcome of one command round trip."""

    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass
class CommandResponse:
    """
    Outcome of one command.

    Attributes:
        status: Terminal status. TIMEOUT means no terminal status was
            observed before the deadline, not that the device failed.
        response: Opaque payload returned by the device.
        error: Failure or timeout reason.
    """

    status: CommandStatus
    response: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Check if the command completed."""
        return self.status == CommandStatus.COMPLETED

    @classmethod
    def completed(cls, response: Any = None) -> "CommandResponse":
        return cls(status=CommandStatus.COMPLETED, response=response)

    @classmethod
    def failed(cls, error: str) -> "CommandResponse":
        return cls(status=CommandStatus.FAILED, error=error)


@dataclass(frozen=True)
class PollingProfile:
    """
    Polling cadence for one class of callers.

    Attributes:
        interval: Seconds between polls.
        timeout: Seconds before giving up with a TIMEOUT status.
    """

    interval: float
    timeout: float

    def __post_init__(self) -> None:
        """Validate the profile."""
        if self.interval < 0:
            raise ValueError("interval must not be negative")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")


STANDARD_PROFILE = PollingProfile(interval=0.5, timeout=15.0)
FAST_PROFILE = PollingProfile(interval=0.2, timeout=10.0)


class CommandChannel(ABC):
    """
    Abstract command store.

    Implementations only submit and read back; they never wait, retry
    or interpret payloads.
    """

    @abstractmethod
    async def submit(
        self,
        command_type: str,
        params: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        Submit a command.

        Args:
            command_type: Device command name (tap, swipe, get_ui_elements, ...).
            params: Command parameters.

        Returns:
            Id used to poll for the outcome.

        Raises:
            CommandChannelError: If the store rejects the command.
        """
        pass

    @abstractmethod
    async def poll(self, command_id: str) -> Optional[CommandResponse]:
        """
        Read the current state of a command.

        Args:
            command_id: Id returned by submit().

        Returns:
            CommandResponse once the command is completed or failed,
            None while it is still pending.

        Raises:
            CommandChannelError: If the store cannot be read.
        """
        pass

    async def close(self) -> None:
        """Release transport resources."""
        return None


async def wait_for_completion(
    channel: CommandChannel,
    command_type: str,
    params: Optional[dict[str, Any]] = None,
    profile: PollingProfile = FAST_PROFILE,
) -> CommandResponse:
    """
    Submit a command and poll until it is terminal or the deadline passes.

    Args:
        channel: Command store.
        command_type: Device command name.
        params: Command parameters.
        profile: Polling cadence.

    Returns:
        The terminal CommandResponse, or a TIMEOUT response.
    """
    command_id = await channel.submit(command_type, params or {})
    start = time.monotonic()
    deadline = start + profile.timeout
    polls = 0

    while time.monotonic() < deadline:
        polls += 1
        response = await channel.poll(command_id)
        if response is not None:
            logger.debug(
                "Command finished",
                command_type=command_type,
                command_id=command_id,
                status=response.status.value,
                polls=polls,
                elapsed_ms=int((time.monotonic() - start) * 1000),
            )
            return response
        await asyncio.sleep(profile.interval)

    logger.warning(
        "Command timed out",
        command_type=command_type,
        command_id=command_id,
        timeout=profile.timeout,
        polls=polls,
    )
    return CommandResponse(
        status=CommandStatus.TIMEOUT,
        error=f"Device did not respond within {profile.timeout:g} seconds",
    )


async def send_command_fast(
    channel: CommandChannel,
    command_type: str,
    params: Optional[dict[str, Any]] = None,
    profile: PollingProfile = FAST_PROFILE,
) -> CommandResponse:
    """Run a command with the automation loop's fast polling profile."""
    return await wait_for_completion(channel, command_type, params, profile)


async def send_command(
    channel: CommandChannel,
    command_type: str,
    params: Optional[dict[str, Any]] = None,
    profile: PollingProfile = STANDARD_PROFILE,
) -> str:
    """
    Run a one-shot, user-facing command and format its outcome.

    Returns:
        ``[completed] <payload>``, ``[failed] <error>`` or
        ``[timeout] <error>``. Structured payloads are JSON-encoded.
    """
    result = await wait_for_completion(channel, command_type, params, profile)
    return format_command_response(result)


def format_command_response(result: CommandResponse) -> str:
    """Render a CommandResponse as a single status-prefixed string."""
    if result.status == CommandStatus.COMPLETED:
        payload = result.response
        if isinstance(payload, (dict, list)):
            body = json.dumps(payload, ensure_ascii=False)
        else:
            body = "" if payload is None else str(payload)
        return f"[completed] {body}".rstrip()
    return f"[{result.status.value}] {result.error or 'Unknown error'}"
