"""
Agent Module
============

Observe-decide-act automation loop for the phone.

This package contains:
    - automation_loop: The bounded loop and its report
    - decision: LLM decision oracle
    - state: Per-run state and step log
    - prompts: System and user prompts for the LLM
    - runner: Tool entry points
    - actions/: Action execution
"""

from phone_agent.agent.automation_loop import (
    AutomationConfig,
    AutomationLoop,
    AutomationResult,
    build_report,
)
from phone_agent.agent.decision import DecisionOracle
from phone_agent.agent.prompts import AUTOMATION_SYSTEM_PROMPT, build_user_prompt
from phone_agent.agent.runner import create_automation_loop, phone_do_task, run_automation
from phone_agent.agent.state import HistoryEntry, RunContext, RunStatus, StepLog

__all__ = [
    "AutomationLoop",
    "AutomationConfig",
    "AutomationResult",
    "build_report",
    "DecisionOracle",
    "AUTOMATION_SYSTEM_PROMPT",
    "build_user_prompt",
    "create_automation_loop",
    "run_automation",
    "phone_do_task",
    "HistoryEntry",
    "RunContext",
    "RunStatus",
    "StepLog",
]
