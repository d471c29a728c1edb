"""
Automation Runner
=================

Entry points that turn a goal into a report.

``phone_do_task`` is the tool exposed to a conversational agent: it
never raises and always returns text. ``run_automation`` is the same
without the error presentation, for callers that handle exceptions
themselves.

Usage:
    from phone_agent.agent.runner import phone_do_task

    report = await phone_do_task("Open WhatsApp and message Sam hello")
"""

from typing import Optional

from phone_agent.agent.actions.handler import ActionExecutor
from phone_agent.agent.automation_loop import AutomationConfig, AutomationLoop
from phone_agent.agent.decision import DecisionOracle
from phone_agent.channel.command_channel import CommandChannel, PollingProfile
from phone_agent.channel.supabase_channel import create_command_channel
from phone_agent.config import Settings, get_settings
from phone_agent.llm.groq_client import GroqLLMClient
from phone_agent.llm.models import LLMConfig
from phone_agent.perception.tree_compressor import UITreeCompressor
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

PHONE_DO_TASK_DESCRIPTION = (
    "Execute a multi-step task on the Android phone autonomously. Reads the screen, "
    "decides what to tap/type/swipe, and repeats until done. Use for any task that "
    "requires navigating through apps, typing, or finding UI elements."
)


def create_llm_client(settings: Optional[Settings] = None) -> GroqLLMClient:
    """Create the Groq client for automation decisions."""
    return GroqLLMClient(LLMConfig.from_settings((settings or get_settings()).oracle))


def create_automation_loop(
    settings: Optional[Settings] = None,
    channel: Optional[CommandChannel] = None,
    llm_client: Optional[GroqLLMClient] = None,
) -> AutomationLoop:
    """
    Build an automation loop from settings.

    Args:
        settings: Application settings. Defaults to get_settings().
        channel: Command channel. Defaults to the Supabase channel.
        llm_client: LLM client. Defaults to a Groq client.

    Returns:
        A ready AutomationLoop.
    """
    settings = settings or get_settings()
    auto = settings.automation
    fast_profile = PollingProfile(
        interval=settings.channel.fast_poll_interval,
        timeout=settings.channel.fast_poll_timeout,
    )

    channel = channel or create_command_channel(settings.channel)
    llm_client = llm_client or create_llm_client(settings)

    return AutomationLoop(
        channel=channel,
        oracle=DecisionOracle(llm_client, history_window=auto.history_window),
        executor=ActionExecutor(
            channel,
            profile=fast_profile,
            wait_seconds=auto.wait_action_delay,
        ),
        config=AutomationConfig(
            max_steps=auto.automation_max_steps,
            max_same_action=auto.max_same_action,
            max_empty_observations=auto.max_empty_observations,
            settle_delay=auto.ui_settle_delay,
            history_window=auto.history_window,
        ),
        compressor=UITreeCompressor(max_text_length=auto.max_text_length),
        profile=fast_profile,
    )


async def run_automation(goal: str, loop: Optional[AutomationLoop] = None) -> str:
    """
    Run one goal and return its report.

    Args:
        goal: Natural-language goal.
        loop: Loop to use. When omitted one is built from settings and
            its channel and LLM client closed afterwards.

    Returns:
        The multi-line run report.

    Raises:
        CommandChannelError: If the command store fails.
    """
    if loop is not None:
        result = await loop.run(goal)
        return result.report

    loop = create_automation_loop()
    try:
        result = await loop.run(goal)
    finally:
        await loop.close()
    return result.report


async def phone_do_task(goal: Optional[str], loop: Optional[AutomationLoop] = None) -> str:
    """
    Tool entry point: run a goal and always return text.

    Args:
        goal: Natural-language goal.
        loop: Loop to use, see run_automation().

    Returns:
        The run report, or an error message.
    """
    if not goal or not goal.strip():
        return "Error: goal is required."

    logger.info("Starting phone task", goal=goal)
    try:
        return await run_automation(goal.strip(), loop)
    except Exception as e:
        logger.error("Phone automation failed", goal=goal, error=str(e), exc_info=True)
        return f"Phone automation failed: {e}"
