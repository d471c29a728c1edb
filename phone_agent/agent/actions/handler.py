"""
Action Executor
===============

Turn a decided action into a device command.

Element actions are resolved against the element list of the snapshot
the decision was made on; the tap lands on the element's center.
Everything else passes straight through to the command channel.

Usage:
    from phone_agent.agent.actions import ActionExecutor

    executor = ActionExecutor(channel)
    response = await executor.execute(action, ui.elements)
"""

import asyncio
from typing import Sequence

from phone_agent.channel.command_channel import (
    FAST_PROFILE,
    CommandChannel,
    CommandResponse,
    PollingProfile,
    send_command_fast,
)
from phone_agent.errors import ActionExecutionError
from phone_agent.llm.response_parser import Action, ActionType
from phone_agent.perception.tree_compressor import UIElement
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SWIPE_DIRECTION = "up"


class ActionExecutor:
    """
    Executes actions over a command channel.

    Expected failures come back as failed CommandResponses. Channel
    transport errors are not caught.
    """

    def __init__(
        self,
        channel: CommandChannel,
        profile: PollingProfile = FAST_PROFILE,
        wait_seconds: float = 1.5,
    ) -> None:
        """
        Initialize the executor.

        Args:
            channel: Command channel to the device.
            profile: Polling profile for every command.
            wait_seconds: Duration of the wait action.
        """
        self.channel = channel
        self.profile = profile
        self.wait_seconds = wait_seconds

    def resolve_element(self, action: Action, elements: Sequence[UIElement]) -> UIElement:
        """
        Look up the element an action refers to.

        Raises:
            ActionExecutionError: If the index is outside the element list.
        """
        index = action.element
        if index is None or not 0 <= index < len(elements):
            raise ActionExecutionError(f"Element [{index}] not found")
        return elements[index]

    async def execute(self, action: Action, elements: Sequence[UIElement]) -> CommandResponse:
        """
        Execute an action.

        Args:
            action: The decided action.
            elements: Elements of the snapshot the action was decided on.

        Returns:
            CommandResponse of the device command, or a local result for
            wait, done and unresolvable element indices.
        """
        t = action.action_type

        if t.targets_element:
            try:
                element = self.resolve_element(action, elements)
            except ActionExecutionError as e:
                logger.warning("Action target not found", action_type=t.value, element=action.element)
                return CommandResponse.failed(str(e))
            return await self._send(t.value, {"x": element.center_x, "y": element.center_y})

        if t == ActionType.SWIPE:
            return await self._send("swipe", {"direction": action.direction or DEFAULT_SWIPE_DIRECTION})

        if t == ActionType.TYPE:
            return await self._send("send_text", {"text": action.text})

        if t == ActionType.PRESS_BUTTON:
            return await self._send("press_button", {"button": action.button})

        if t == ActionType.LAUNCH_APP:
            return await self._send("launch_app", {"package_name": action.package_name})

        if t == ActionType.WAIT:
            await asyncio.sleep(self.wait_seconds)
            return CommandResponse.completed("Waited for UI to settle")

        if t == ActionType.DONE:
            return CommandResponse.completed(action.summary or "Task complete")

        return CommandResponse.failed(f"Unknown action: {t.value}")

    async def _send(self, command_type: str, params: dict) -> CommandResponse:
        response = await send_command_fast(self.channel, command_type, params, self.profile)
        if not response.ok:
            logger.warning(
                "Device command did not complete",
                command_type=command_type,
                status=response.status.value,
                error=response.error,
            )
        return response
