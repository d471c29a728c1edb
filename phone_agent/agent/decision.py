"""
Decision Oracle
===============

Ask the LLM for the next action given the goal, the compressed screen
and the last few actions.

The oracle is stateless between calls and does no domain validation:
whether an element index exists is checked by the executor.
"""

from typing import Sequence

from phone_agent.agent.prompts import AUTOMATION_SYSTEM_PROMPT, build_user_prompt
from phone_agent.agent.state import HistoryEntry
from phone_agent.errors import DecisionError
from phone_agent.llm.groq_client import GroqLLMClient, LLMError
from phone_agent.llm.response_parser import Action, parse_decision
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)


class DecisionOracle:
    """Adapter between the automation loop and the LLM client."""

    def __init__(
        self,
        llm_client: GroqLLMClient,
        history_window: int = 3,
        system_prompt: str = AUTOMATION_SYSTEM_PROMPT,
    ) -> None:
        """
        Initialize the oracle.

        Args:
            llm_client: Client used for completions.
            history_window: Number of past actions shown to the model.
            system_prompt: Rules and action catalog.
        """
        self.llm_client = llm_client
        self.history_window = history_window
        self.system_prompt = system_prompt

    async def decide(
        self,
        goal: str,
        ui_text: str,
        history: Sequence[HistoryEntry] = (),
    ) -> Action:
        """
        Decide the next action.

        Args:
            goal: The user's goal.
            ui_text: Compressed screen text.
            history: Past actions, oldest first. Only the most recent
                ``history_window`` entries are sent.

        Returns:
            The decided Action.

        Raises:
            DecisionError: If the LLM fails or its output is not a valid action.
        """
        recent = list(history)[-self.history_window:] if self.history_window > 0 else []
        prompt = build_user_prompt(goal, ui_text, recent)

        try:
            response = await self.llm_client.complete(prompt, system_prompt=self.system_prompt)
        except LLMError as e:
            raise DecisionError(f"Automation LLM error: {e}") from e

        return parse_decision(response.content)
