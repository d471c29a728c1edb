"""
Automation Loop
===============

Observe-decide-act loop that drives the phone toward a goal.

The loop follows this cycle:
1. Observe: read and compress the accessibility tree
2. Decide: ask the LLM for exactly one next action
3. Act: execute it over the command channel
4. Repeat until done, stuck, unreadable or out of steps

Expected failures (bad LLM output, missing element, failed or timed-out
command) are written to the step log and the loop moves on. A stall or
a screen that stays unreadable ends the run as aborted. Channel
transport errors and anything unexpected propagate to the caller.

Usage:
    from phone_agent.agent import AutomationLoop

    loop = AutomationLoop(channel, oracle, executor)
    result = await loop.run("Open Settings and turn on Wi-Fi")
    print(result.report)
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional

from phone_agent.agent.actions.handler import ActionExecutor
from phone_agent.agent.decision import DecisionOracle
from phone_agent.agent.state import (
    ACTION_DECISION_ERROR,
    OUTCOME_OK,
    RunContext,
    RunStatus,
    StepLog,
)
from phone_agent.channel.command_channel import (
    FAST_PROFILE,
    CommandChannel,
    CommandResponse,
    PollingProfile,
    send_command_fast,
)
from phone_agent.errors import DecisionError, ObservationError, StallError
from phone_agent.llm.response_parser import ActionType, action_signature, format_action_for_log
from phone_agent.perception.tree_compressor import (
    CompressedUI,
    UITreeCompressor,
    unwrap_ui_payload,
)
from phone_agent.utils.logger import LogContext, get_logger

logger = get_logger(__name__)

OBSERVE_COMMAND = "get_ui_elements"


@dataclass
class AutomationConfig:
    """
    Configuration for the automation loop.

    Attributes:
        max_steps: Hard iteration ceiling.
        max_same_action: Consecutive identical decisions treated as a stall.
        max_empty_observations: Consecutive unreadable screens before aborting.
        settle_delay: Pause after an action (and after an unreadable
            screen) so the UI can redraw.
        history_window: Past actions shown to the LLM.
    """

    max_steps: int = 20
    max_same_action: int = 3
    max_empty_observations: int = 3
    settle_delay: float = 0.8
    history_window: int = 3

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.max_steps < 1:
            raise ValueError("max_steps must be positive")
        if self.max_same_action < 1:
            raise ValueError("max_same_action must be positive")
        if self.max_empty_observations < 1:
            raise ValueError("max_empty_observations must be positive")
        if self.settle_delay < 0:
            raise ValueError("settle_delay must not be negative")


@dataclass
class AutomationResult:
    """
    Final result of one automation run.

    Attributes:
        goal: The goal that was attempted.
        completed: Whether the LLM reported the goal done.
        summary: The LLM's final summary, if any.
        status: Terminal run status.
        steps: Full step log.
        report: Human-readable multi-line report.
        duration_seconds: Wall time of the run.
    """

    goal: str
    completed: bool
    summary: Optional[str]
    status: RunStatus
    steps: list[StepLog] = field(default_factory=list)
    report: str = ""
    duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "goal": self.goal,
            "completed": self.completed,
            "summary": self.summary,
            "status": self.status.name.lower(),
            "steps": [step.to_dict() for step in self.steps],
            "report": self.report,
            "duration_seconds": round(self.duration_seconds, 2),
        }


def build_report(goal: str, steps: list[StepLog], completed: bool, summary: Optional[str]) -> str:
    """
    Render the human-readable run report.

    Args:
        goal: The goal that was attempted.
        steps: Step log in order.
        completed: Whether the done action was reached.
        summary: The LLM's final summary.

    Returns:
        Multi-line report text.
    """
    lines = []
    for entry in steps:
        label = f"[{entry.action}]"
        if entry.reasoning:
            label += f" {entry.reasoning}"
        lines.append(f"  {entry.step + 1}. {label} → {entry.outcome}")

    if completed:
        ending = f"Result: {summary or 'Task complete'}"
    else:
        ending = "The task did not complete successfully."

    return (
        f"Phone task {'completed' if completed else 'stopped'} after {len(steps)} steps.\n\n"
        f"Goal: {goal}\n\n"
        f"Steps:\n" + "\n".join(lines) + "\n\n"
        f"{ending}"
    )


class AutomationLoop:
    """
    Bounded observe-decide-act loop for one device.

    Each call to run() gets its own RunContext. The loop does not guard
    against concurrent runs on the same device; callers serialize.
    """

    def __init__(
        self,
        channel: CommandChannel,
        oracle: DecisionOracle,
        executor: ActionExecutor,
        config: Optional[AutomationConfig] = None,
        compressor: Optional[UITreeCompressor] = None,
        profile: PollingProfile = FAST_PROFILE,
    ) -> None:
        """
        Initialize the automation loop.

        Args:
            channel: Command channel used for observations.
            oracle: Decides the next action.
            executor: Executes decided actions.
            config: Loop configuration.
            compressor: Tree compressor for observations.
            profile: Polling profile for observation commands.
        """
        self.channel = channel
        self.oracle = oracle
        self.executor = executor
        self.config = config or AutomationConfig()
        self.compressor = compressor or UITreeCompressor()
        self.profile = profile

    async def run(self, goal: str) -> AutomationResult:
        """
        Drive the device toward a goal.

        Args:
            goal: Natural-language goal.

        Returns:
            AutomationResult with the step log and report.

        Raises:
            CommandChannelError: If the command store fails.
        """
        start_time = time.monotonic()
        ctx = RunContext(
            goal=goal,
            history_window=self.config.history_window,
            max_same_action=self.config.max_same_action,
        )

        with LogContext(goal=goal):
            logger.info("Starting automation", max_steps=self.config.max_steps)

            for step in range(self.config.max_steps):
                ctx.step = step
                await self._run_step(ctx)
                if ctx.status.is_terminal:
                    break
            else:
                ctx.stop()
                logger.info("Step ceiling reached", max_steps=self.config.max_steps)

            duration = time.monotonic() - start_time
            report = build_report(goal, ctx.steps, ctx.completed, ctx.summary)

            logger.info(
                "Automation finished",
                completed=ctx.completed,
                status=ctx.status.name,
                steps=len(ctx.steps),
                duration_seconds=round(duration, 2),
            )

        return AutomationResult(
            goal=goal,
            completed=ctx.completed,
            summary=ctx.summary,
            status=ctx.status,
            steps=list(ctx.steps),
            report=report,
            duration_seconds=duration,
        )

    async def close(self) -> None:
        """Release the command channel and the LLM client."""
        try:
            await self.channel.close()
        finally:
            await self.oracle.llm_client.close()

    async def _run_step(self, ctx: RunContext) -> None:
        """Run one observe-decide-act iteration."""
        # 1. Observe
        ctx.status = RunStatus.OBSERVING
        try:
            ui = await self._observe(ctx)
        except ObservationError as e:
            ctx.empty_observations += 1
            logger.warning(
                "Screen unreadable",
                step=ctx.step,
                attempt=ctx.empty_observations,
                error=str(e),
            )
            if ctx.empty_observations >= self.config.max_empty_observations:
                ctx.abort(
                    f"screen unreadable after {ctx.empty_observations} attempts",
                    reasoning="Screen unreadable after retries",
                )
                return
            await asyncio.sleep(self.config.settle_delay)
            return
        ctx.empty_observations = 0

        # 2. Decide
        ctx.status = RunStatus.DECIDING
        try:
            action = await self.oracle.decide(ctx.goal, ui.text, ctx.history)
        except DecisionError as e:
            logger.warning("Decision failed", step=ctx.step, error=str(e))
            ctx.record_step(ACTION_DECISION_ERROR, str(e), f"failed: {e}")
            return

        logger.info(
            "Action decided",
            step=ctx.step + 1,
            action=format_action_for_log(action),
            reasoning=action.reasoning,
            elements=len(ui.elements),
        )

        # 3. Done
        if action.is_terminal:
            ctx.finish(action.summary or "Task complete", reasoning=action.reasoning)
            return

        # 4. Stall detection
        try:
            ctx.track_signature(action_signature(action))
        except StallError as e:
            logger.warning("Automation stuck", step=ctx.step, repeats=e.repeats)
            ctx.abort(str(e), reasoning=f"Same action repeated {e.repeats} times, stuck")
            return

        # 5. Act
        ctx.status = RunStatus.ACTING
        response = await self.executor.execute(action, ui.elements)
        outcome = OUTCOME_OK if response.ok else f"failed: {response.error or 'unknown'}"

        ctx.record_step(action.name, action.reasoning, outcome)
        ctx.push_history(format_action_for_log(action), action.reasoning, outcome)
        ctx.cached_ui = self._inline_ui(response)

        logger.info("Action finished", step=ctx.step + 1, outcome=outcome)

        # 6. Let the UI settle
        if action.action_type != ActionType.WAIT:
            await asyncio.sleep(self.config.settle_delay)

    async def _observe(self, ctx: RunContext) -> CompressedUI:
        """
        Get the current screen, preferring a snapshot from the last action.

        Raises:
            ObservationError: If the screen could not be read or has no elements.
        """
        ui = ctx.take_cached_ui()
        if ui is None:
            response = await send_command_fast(self.channel, OBSERVE_COMMAND, profile=self.profile)
            if not response.ok:
                raise ObservationError(response.error or "get_ui_elements did not complete")
            if not response.response:
                raise ObservationError("get_ui_elements returned no payload")
            ui = self.compressor.compress(unwrap_ui_payload(response.response))

        if ui.is_empty:
            raise ObservationError("No usable elements on screen")

        logger.debug("Observed screen", step=ctx.step, elements=len(ui.elements))
        return ui

    def _inline_ui(self, response: CommandResponse) -> Optional[CompressedUI]:
        """Compress a UI tree carried inline by a command response."""
        payload = response.response
        if isinstance(payload, dict) and payload.get("ui_elements"):
            return self.compressor.compress(unwrap_ui_payload(payload["ui_elements"]))
        return None
