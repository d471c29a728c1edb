"""
Response Parser
===============

Parse automation LLM output into a single validated action.

The model is asked for exactly one JSON object, but reasoning models
often wrap it in ``<think>`` blocks or prose. Parsing therefore runs
in three stages:

    1. strip_thinking: remove reasoning blocks
    2. extract_json_object: find the first JSON object in what is left
    3. parse_action: decode the object into a tagged Action

Response Format:
    {"action": "tap", "element": 3, "reasoning": "open settings"}

Supported Actions:
    - {"action": "tap" | "double_tap" | "long_press", "element": N}
    - {"action": "swipe", "direction": "up|down|left|right"}
    - {"action": "type", "text": "..."}
    - {"action": "press_button", "button": "home|back|recents|enter"}
    - {"action": "launch_app", "package_name": "com.example.app"}
    - {"action": "wait"}
    - {"action": "done", "summary": "..."}

Every variant accepts an optional ``reasoning``. Unknown fields are
ignored; a missing or mistyped required field is a DecisionError.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from phone_agent.errors import DecisionError
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

_THINK_BLOCK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_THINK_CLOSE_RE = re.compile(r"</think>", re.IGNORECASE)

SWIPE_DIRECTIONS = ("up", "down", "left", "right")


class ActionType(Enum):
    """Actions the automation LLM may choose."""

    TAP = "tap"
    DOUBLE_TAP = "double_tap"
    LONG_PRESS = "long_press"
    SWIPE = "swipe"
    TYPE = "type"
    PRESS_BUTTON = "press_button"
    LAUNCH_APP = "launch_app"
    WAIT = "wait"
    DONE = "done"

    @property
    def targets_element(self) -> bool:
        """Check if this action refers to an element index."""
        return self in (ActionType.TAP, ActionType.DOUBLE_TAP, ActionType.LONG_PRESS)


@dataclass(frozen=True)
class Action:
    """
    A decided action.

    Only the fields of the action's variant are set; the rest stay None.

    Attributes:
        action_type: Variant tag.
        element: Element index for tap, double_tap and long_press.
        direction: Swipe direction, None means the executor default.
        text: Text for type.
        button: Button for press_button.
        package_name: Package for launch_app.
        summary: Outcome description for done.
        reasoning: The model's short justification.
    """

    action_type: ActionType
    element: Optional[int] = None
    direction: Optional[str] = None
    text: Optional[str] = None
    button: Optional[str] = None
    package_name: Optional[str] = None
    summary: Optional[str] = None
    reasoning: str = ""

    @property
    def name(self) -> str:
        return self.action_type.value

    @property
    def is_terminal(self) -> bool:
        """Check if this action ends the task."""
        return self.action_type == ActionType.DONE


def strip_thinking(text: str) -> str:
    """
    Remove reasoning blocks from model output.

    Drops every ``<think>...</think>`` block, then anything up to a
    dangling ``</think>`` whose opening tag was cut off.
    """
    cleaned = _THINK_BLOCK_RE.sub("", text or "")
    closers = list(_THINK_CLOSE_RE.finditer(cleaned))
    if closers:
        cleaned = cleaned[closers[-1].end():]
    return cleaned.strip()


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Return the first JSON object embedded in text.

    Tries to decode at every ``{`` in order; the first position that
    yields a mapping wins, so prose before or after the object and
    stray braces are tolerated.

    Raises:
        DecisionError: If no JSON object is found.
    """
    decoder = json.JSONDecoder()
    position = text.find("{")
    while position != -1:
        try:
            value, _ = decoder.raw_decode(text, position)
        except ValueError:
            value = None
        if isinstance(value, dict):
            return value
        position = text.find("{", position + 1)

    raise DecisionError(f"No JSON found in LLM response: {text[:200]}")


def _require_str(data: dict[str, Any], key: str, kind: str, allow_empty: bool = False) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DecisionError(f"Action '{kind}' requires string field '{key}'")
    if not allow_empty and not value.strip():
        raise DecisionError(f"Action '{kind}' requires non-empty field '{key}'")
    return value


def _require_element(data: dict[str, Any], kind: str) -> int:
    value = data.get("element")
    # bool is an int subclass
    if isinstance(value, bool):
        raise DecisionError(f"Action '{kind}' has invalid element: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            return int(value.strip())
        except ValueError:
            # beyond the int() digit limit
            raise DecisionError(f"Action '{kind}' has invalid element: {value!r}") from None
    if value is None:
        raise DecisionError(f"Action '{kind}' requires field 'element'")
    raise DecisionError(f"Action '{kind}' has invalid element: {value!r}")


def parse_action(data: dict[str, Any]) -> Action:
    """
    Decode a mapping into an Action.

    Args:
        data: The decoded JSON object.

    Returns:
        The validated Action.

    Raises:
        DecisionError: If the kind is unknown or a required field is
            missing or mistyped.
    """
    kind = data.get("action")
    if not isinstance(kind, str):
        raise DecisionError("Action object has no 'action' field")

    try:
        action_type = ActionType(kind.strip().lower())
    except ValueError:
        raise DecisionError(f"Unknown action: {kind}") from None

    reasoning = data.get("reasoning")
    reasoning = reasoning.strip() if isinstance(reasoning, str) else ""
    name = action_type.value

    if action_type.targets_element:
        return Action(action_type, element=_require_element(data, name), reasoning=reasoning)

    if action_type == ActionType.SWIPE:
        direction = data.get("direction")
        if direction is None:
            return Action(action_type, reasoning=reasoning)
        if not isinstance(direction, str) or direction.strip().lower() not in SWIPE_DIRECTIONS:
            raise DecisionError(f"Action 'swipe' has invalid direction: {direction!r}")
        return Action(action_type, direction=direction.strip().lower(), reasoning=reasoning)

    if action_type == ActionType.TYPE:
        return Action(action_type, text=_require_str(data, "text", name), reasoning=reasoning)

    if action_type == ActionType.PRESS_BUTTON:
        button = _require_str(data, "button", name).strip().lower()
        return Action(action_type, button=button, reasoning=reasoning)

    if action_type == ActionType.LAUNCH_APP:
        package_name = _require_str(data, "package_name", name).strip()
        return Action(action_type, package_name=package_name, reasoning=reasoning)

    if action_type == ActionType.DONE:
        summary = _require_str(data, "summary", name, allow_empty=True).strip()
        return Action(action_type, summary=summary, reasoning=reasoning)

    return Action(action_type, reasoning=reasoning)


def parse_decision(text: str) -> Action:
    """
    Parse raw model output into an Action.

    Example:
        >>> parse_decision('Sure! {"action":"tap","element":0,"reasoning":"send message"}')
        Action(action_type=<ActionType.TAP: 'tap'>, element=0, ..., reasoning='send message')

    Raises:
        DecisionError: If the output holds no valid action.
    """
    cleaned = strip_thinking(text)
    if not cleaned:
        raise DecisionError("Empty LLM response")

    action = parse_action(extract_json_object(cleaned))

    logger.debug(
        "Parsed LLM decision",
        action_type=action.name,
        element=action.element,
        raw_length=len(text or ""),
    )
    return action


def action_signature(action: Action) -> str:
    """Identity used to detect the same action being repeated."""
    return json.dumps(
        {
            "action": action.name,
            "element": action.element,
            "direction": action.direction,
            "text": action.text,
        },
        sort_keys=True,
    )


def format_action_for_log(action: Action) -> str:
    """Format an action for logging and history display."""
    t = action.action_type
    if t.targets_element:
        return f"{t.value}({action.element})"
    if t == ActionType.SWIPE:
        return f"swipe({action.direction or 'up'})"
    if t == ActionType.TYPE:
        text = action.text or ""
        preview = text[:20] + "..." if len(text) > 20 else text
        return f'type("{preview}")'
    if t == ActionType.PRESS_BUTTON:
        return f"press_button({action.button})"
    if t == ActionType.LAUNCH_APP:
        return f"launch_app({action.package_name})"
    if t == ActionType.DONE:
        return "done"
    return t.value
