"""
Agent Prompts
=============

System and user prompts for the automation LLM.

The model sees the compressed screen as numbered element lines and
answers with exactly one JSON action. Elements are referred to by
index only; the executor turns indices into coordinates.
"""

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from phone_agent.agent.state import HistoryEntry


AUTOMATION_SYSTEM_PROMPT = """You are an Android phone automation agent. You navigate UI by reading the accessibility tree and issuing actions.

RULES:
- You receive a GOAL and a numbered list of UI elements with their type, text, center coordinates, and flags.
- Output exactly ONE JSON action per turn. No extra text.
- Reference elements by their [index] number. The system will compute exact coordinates.
- For typing: first tap an editable field, then use "type" action.
- For scrolling: use "swipe" with direction (up=scroll down, down=scroll up).
- When the goal is complete, output {"action":"done","summary":"what was accomplished"}.
- If stuck, try pressing "back" or scrolling to find elements.
- If a previous action failed, do not repeat it unchanged.

ACTIONS:
{"action":"tap","element":N,"reasoning":"..."}
{"action":"double_tap","element":N,"reasoning":"..."}
{"action":"long_press","element":N,"reasoning":"..."}
{"action":"swipe","direction":"up|down|left|right","reasoning":"..."}
{"action":"type","text":"...","reasoning":"..."}
{"action":"press_button","button":"home|back|recents|enter","reasoning":"..."}
{"action":"launch_app","package_name":"com.example.app","reasoning":"..."}
{"action":"wait","reasoning":"waiting for content to load"}
{"action":"done","summary":"what was accomplished"}"""


def format_history(history: Sequence["HistoryEntry"]) -> str:
    """
    Format past actions as a numbered list.

    Args:
        history: Most recent entries, oldest first.

    Returns:
        One line per entry, empty string if there is no history.
    """
    lines = []
    for i, entry in enumerate(history, start=1):
        line = f"{i}. {entry.action}: {entry.reasoning or '-'}"
        if entry.outcome and entry.outcome != "ok":
            line += f" ({entry.outcome})"
        lines.append(line)
    return "\n".join(lines)


def build_user_prompt(goal: str, ui_text: str, history: Sequence["HistoryEntry"] = ()) -> str:
    """
    Build the user message for one decision.

    Args:
        goal: The user's goal.
        ui_text: Compressed screen, one element per line.
        history: Most recent actions, oldest first.

    Returns:
        Formatted user prompt.
    """
    prompt = f"GOAL: {goal}\n\nCURRENT SCREEN:\n{ui_text}"
    history_text = format_history(history)
    if history_text:
        prompt += f"\n\nLAST ACTIONS:\n{history_text}"
    return prompt
