"""
Command Routes
==============

One-shot device commands (tap, ring, list_apps, ...) outside the
automation loop. Results use the standard polling profile and come
back as ``[completed] ...``, ``[failed] ...`` or ``[timeout] ...``.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from phone_agent.api.dependencies import get_command_channel, get_standard_profile
from phone_agent.channel.command_channel import CommandChannel, PollingProfile, send_command
from phone_agent.channel.commands import PHONE_COMMANDS, get_command
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/commands", tags=["Commands"])


class SendCommandRequest(BaseModel):
    """Parameters for a one-shot command."""

    params: dict[str, Any] = Field(default_factory=dict)


class SendCommandResponse(BaseModel):
    """Formatted command outcome."""

    command: str
    result: str


@router.get("", summary="List device commands")
async def list_commands() -> dict[str, Any]:
    """List every one-shot command with its parameters."""
    return {"commands": [command.to_dict() for command in PHONE_COMMANDS.values()]}


@router.post(
    "/{name}",
    response_model=SendCommandResponse,
    summary="Send a device command",
)
async def run_command(
    name: str,
    request: Optional[SendCommandRequest] = None,
    channel: CommandChannel = Depends(get_command_channel),
    profile: PollingProfile = Depends(get_standard_profile),
) -> SendCommandResponse:
    """
    Send one command and wait for the device.

    Raises:
        HTTPException: 404 for unknown commands, 422 for invalid
            parameters. Command store failures surface as 502 through
            the application exception handler.
    """
    params = request.params if request else {}
    command = get_command(name)
    if command is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown command: {name}",
        )

    problems = command.validate(params)
    if problems:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=problems,
        )

    result = await send_command(channel, command.name, params or None, profile)

    logger.info("Command sent", command=name, result=result[:80])
    return SendCommandResponse(command=command.name, result=result)
