"""
Agent State Management
======================

Per-run state of the automation loop.

Maintains:
- Goal and step counter
- Step log for the final report
- Short action history for the LLM
- Stall and empty-screen counters
- A UI snapshot delivered inline with the last command response

A RunContext is created for each goal and never shared.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional

from phone_agent.errors import StallError
from phone_agent.perception.tree_compressor import CompressedUI

OUTCOME_OK = "ok"
ACTION_DECISION_ERROR = "decision_error"
ACTION_ABORT = "abort"


class RunStatus(Enum):
    """Phase of an automation run."""

    OBSERVING = auto()
    DECIDING = auto()
    ACTING = auto()
    DONE = auto()
    ABORTED = auto()

    @property
    def is_terminal(self) -> bool:
        return self in (RunStatus.DONE, RunStatus.ABORTED)


@dataclass(frozen=True)
class StepLog:
    """
    One entry of the run report.

    Attributes:
        step: Zero-based loop iteration.
        action: Action kind, or ``decision_error`` / ``abort``.
        reasoning: Model reasoning or the error description.
        outcome: ``ok``, ``failed: <reason>`` or ``aborted: <reason>``.
    """

    step: int
    action: str
    reasoning: str
    outcome: str

    @property
    def ok(self) -> bool:
        return self.outcome == OUTCOME_OK

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "step": self.step,
            "action": self.action,
            "reasoning": self.reasoning,
            "outcome": self.outcome,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """An executed action as shown to the LLM."""

    action: str
    reasoning: str
    outcome: str = OUTCOME_OK


@dataclass
class RunContext:
    """
    Mutable state of one automation run.

    Attributes:
        goal: The user's goal.
        step: Current zero-based iteration.
        status: Current phase.
        steps: Append-only step log.
        history: Most recent executed actions, oldest first.
        history_window: Maximum history length.
        max_same_action: Consecutive identical actions that count as a stall.
        last_signature: Signature of the previous decided action.
        same_action_count: Length of the current run of identical actions.
        empty_observations: Consecutive unreadable observations.
        cached_ui: Snapshot carried by the last command response.
        summary: Summary reported by the done action.
        completed: True once the done action was reached.
    """

    goal: str
    step: int = 0
    status: RunStatus = RunStatus.OBSERVING
    steps: list[StepLog] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    history_window: int = 3
    max_same_action: int = 3
    last_signature: Optional[str] = None
    same_action_count: int = 0
    empty_observations: int = 0
    cached_ui: Optional[CompressedUI] = None
    summary: Optional[str] = None
    completed: bool = False

    def record_step(self, action: str, reasoning: str, outcome: str) -> StepLog:
        """Append a step log entry for the current iteration."""
        entry = StepLog(step=self.step, action=action, reasoning=reasoning, outcome=outcome)
        self.steps.append(entry)
        return entry

    def push_history(self, action: str, reasoning: str, outcome: str = OUTCOME_OK) -> None:
        """Add an executed action and keep only the latest entries."""
        self.history.append(HistoryEntry(action=action, reasoning=reasoning, outcome=outcome))
        if len(self.history) > self.history_window:
            del self.history[: len(self.history) - self.history_window]

    def track_signature(self, signature: str) -> int:
        """
        Count consecutive identical actions.

        Returns:
            Length of the current run of identical actions.

        Raises:
            StallError: When the run reaches max_same_action.
        """
        if signature == self.last_signature:
            self.same_action_count += 1
        else:
            self.last_signature = signature
            self.same_action_count = 1

        if self.same_action_count >= self.max_same_action:
            raise StallError(
                f"same action repeated {self.same_action_count} times",
                signature=signature,
                repeats=self.same_action_count,
            )
        return self.same_action_count

    def take_cached_ui(self) -> Optional[CompressedUI]:
        """Return the cached snapshot once and clear it."""
        ui, self.cached_ui = self.cached_ui, None
        return ui

    def abort(self, reason: str, reasoning: str = "") -> None:
        """End the run as aborted with a final abort step."""
        self.record_step(ACTION_ABORT, reasoning or reason, f"aborted: {reason}")
        self.status = RunStatus.ABORTED

    def finish(self, summary: str, reasoning: str = "") -> None:
        """End the run as completed."""
        self.summary = summary
        self.completed = True
        self.record_step("done", reasoning, OUTCOME_OK)
        self.status = RunStatus.DONE

    def stop(self) -> None:
        """End the run at the step ceiling without completing the goal."""
        self.status = RunStatus.DONE
