"""
UI Tree Compressor
==================

Compress a raw Android accessibility tree into a short indexed list of
elements for the automation LLM.

The phone reports its UI as nested dictionaries whose shape varies with
the app version that produced them: children may live under ``children``
or ``nodes``, text under ``text`` or ``content-desc``, booleans may be
real booleans or ``"true"`` strings. The compressor walks whatever it is
given, keeps visible and enabled nodes that carry text or can be
interacted with, and numbers them in depth-first pre-order. The number
is the only handle the LLM uses to refer to an element.

Usage:
    from phone_agent.perception import compress_ui_tree

    ui = compress_ui_tree(raw_tree)
    print(ui.text)
    # [0] Button "Send" [200,230] clickable
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CHILD_KEYS: tuple[str, ...] = ("children", "nodes")
DEFAULT_MAX_TEXT_LENGTH = 80

_TEXT_KEYS = ("text", "content-desc", "contentDescription", "content_desc")
_WHITESPACE = re.compile(r"\s+")
_CLASS_KEYS = ("class", "className")
_BOUNDS_KEYS = ("bounds", "boundsInScreen")
_VISIBLE_KEYS = ("visible-to-user", "visible")

_BOUNDS_RE = re.compile(r"\[\s*(-?\d+)\s*,\s*(-?\d+)\s*\]\s*\[\s*(-?\d+)\s*,\s*(-?\d+)\s*\]")


@dataclass(frozen=True)
class Bounds:
    """Screen rectangle of an element in pixels."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def center_x(self) -> int:
        """Horizontal center, rounded half up."""
        return (self.left + self.right + 1) // 2

    @property
    def center_y(self) -> int:
        """Vertical center, rounded half up."""
        return (self.top + self.bottom + 1) // 2

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top


@dataclass(frozen=True)
class UIElement:
    """
    A kept node of one UI snapshot.

    Attributes:
        index: Position in traversal order, unique within the snapshot.
        element_class: Short class name ("Button", "EditText", "View").
        text: Trimmed text or accessibility label, capped in length.
        bounds: Screen rectangle, always with positive area.
        clickable: Element accepts taps.
        editable: Element accepts text input.
        scrollable: Element can be scrolled.
        checked: Check state for checkable nodes, None otherwise.
    """

    index: int
    element_class: str
    text: str
    bounds: Bounds
    clickable: bool = False
    editable: bool = False
    scrollable: bool = False
    checked: Optional[bool] = None

    @property
    def center_x(self) -> int:
        return self.bounds.center_x

    @property
    def center_y(self) -> int:
        return self.bounds.center_y

    @property
    def flags(self) -> list[str]:
        """Capability flags in rendering order."""
        flags = []
        if self.clickable:
            flags.append("clickable")
        if self.editable:
            flags.append("editable")
        if self.scrollable:
            flags.append("scrollable")
        if self.checked is not None:
            flags.append("checked" if self.checked else "unchecked")
        return flags

    def to_line(self) -> str:
        """Render as ``[index] Class "text" [cx,cy] flag,flag``."""
        parts = [f"[{self.index}]", self.element_class]
        if self.text:
            escaped = self.text.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'"{escaped}"')
        parts.append(f"[{self.center_x},{self.center_y}]")
        flags = self.flags
        if flags:
            parts.append(",".join(flags))
        return " ".join(parts)


@dataclass(frozen=True)
class CompressedUI:
    """
    Result of compressing one raw tree.

    Attributes:
        text: One line per element, ready for the LLM prompt.
        elements: The elements in index order, for coordinate lookup.
    """

    text: str
    elements: tuple[UIElement, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.elements


def shorten_class_name(class_name: Any) -> str:
    """Return the last dotted segment of a class name, or "View"."""
    if not isinstance(class_name, str) or not class_name.strip():
        return "View"
    return class_name.strip().rsplit(".", 1)[-1] or "View"


def parse_bounds(value: Any) -> Optional[Bounds]:
    """
    Parse bounds from ``"[l,t][r,b]"`` or a left/top/right/bottom mapping.

    Returns:
        Bounds with positive width and height, or None.
    """
    coords: Optional[tuple[int, int, int, int]] = None

    if isinstance(value, str):
        match = _BOUNDS_RE.search(value)
        if match:
            left, top, right, bottom = (int(group) for group in match.groups())
            coords = (left, top, right, bottom)
    elif isinstance(value, dict):
        try:
            coords = (
                int(value["left"]),
                int(value["top"]),
                int(value["right"]),
                int(value["bottom"]),
            )
        except (KeyError, TypeError, ValueError):
            coords = None

    if coords is None:
        return None

    left, top, right, bottom = coords
    if right <= left or bottom <= top:
        return None
    return Bounds(left=left, top=top, right=right, bottom=bottom)


def _is_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _is_false(value: Any) -> bool:
    if isinstance(value, bool):
        return not value
    if isinstance(value, str):
        return value.strip().lower() == "false"
    return False


def _first(node: dict, keys: Sequence[str]) -> Any:
    for key in keys:
        if key in node and node[key] is not None:
            return node[key]
    return None


def _node_text(node: dict) -> str:
    for key in _TEXT_KEYS:
        value = node.get(key)
        if isinstance(value, str) and value.strip():
            # one rendered line per element
            return _WHITESPACE.sub(" ", value).strip()
    return ""


class UITreeCompressor:
    """
    Compressor for heterogeneous accessibility trees.

    Walks raw trees depth-first without recursion, so arbitrarily deep
    hierarchies are safe, and produces a CompressedUI.
    """

    def __init__(
        self,
        child_keys: Sequence[str] = DEFAULT_CHILD_KEYS,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
    ) -> None:
        """
        Initialize the compressor.

        Args:
            child_keys: Key names that may hold a node's children, in
                priority order. The first one holding a list is used.
            max_text_length: Cap applied to each element's text.
        """
        if not child_keys:
            raise ValueError("At least one child key is required")
        if max_text_length < 1:
            raise ValueError("max_text_length must be positive")
        self.child_keys = tuple(child_keys)
        self.max_text_length = max_text_length

    def compress(self, raw: Any) -> CompressedUI:
        """
        Compress a raw tree.

        Args:
            raw: A root node, a list of root nodes, or anything else
                (which yields no elements).

        Returns:
            CompressedUI with rendered text and indexed elements.
        """
        elements: list[UIElement] = []
        visited = 0

        for node in self._walk(raw):
            visited += 1
            element = self._to_element(node, index=len(elements))
            if element is not None:
                elements.append(element)

        logger.debug(
            "Compressed UI tree",
            nodes_visited=visited,
            elements_kept=len(elements),
        )

        return CompressedUI(
            text=self.format_for_llm(elements),
            elements=tuple(elements),
        )

    def format_for_llm(self, elements: Sequence[UIElement]) -> str:
        """Render elements one per line."""
        return "\n".join(element.to_line() for element in elements)

    def _walk(self, raw: Any) -> Iterator[dict]:
        """Yield mapping nodes in depth-first pre-order."""
        if isinstance(raw, dict):
            stack: list[Any] = [raw]
        elif isinstance(raw, list):
            stack = list(reversed(raw))
        else:
            return

        while stack:
            node = stack.pop()
            if not isinstance(node, dict):
                continue
            yield node
            children = self._children(node)
            # Reversed so the first child is popped first
            stack.extend(reversed(children))

    def _children(self, node: dict) -> list[Any]:
        for key in self.child_keys:
            children = node.get(key)
            if isinstance(children, list):
                return children
        return []

    def _to_element(self, node: dict, index: int) -> Optional[UIElement]:
        """Build an element from a node, or None if the node is not kept."""
        visible = not _is_false(_first(node, _VISIBLE_KEYS))
        enabled = not _is_false(node.get("enabled"))
        if not (visible and enabled):
            return None

        raw_class = _first(node, _CLASS_KEYS)
        class_name = raw_class if isinstance(raw_class, str) else ""
        text = _node_text(node)

        clickable = _is_true(node.get("clickable"))
        editable = "edittext" in class_name.lower() or _is_true(node.get("editable"))
        scrollable = _is_true(node.get("scrollable"))

        if not (text or clickable or editable or scrollable):
            return None

        bounds = parse_bounds(_first(node, _BOUNDS_KEYS))
        if bounds is None:
            return None

        if _is_true(node.get("checkable")):
            checked: Optional[bool] = _is_true(node.get("checked"))
        elif _is_true(node.get("checked")):
            checked = True
        else:
            checked = None

        return UIElement(
            index=index,
            element_class=shorten_class_name(class_name),
            text=text[: self.max_text_length],
            bounds=bounds,
            clickable=clickable,
            editable=editable,
            scrollable=scrollable,
            checked=checked,
        )


_default_compressor = UITreeCompressor()


def compress_ui_tree(raw: Any) -> CompressedUI:
    """Compress a raw tree with the default child keys and text cap."""
    return _default_compressor.compress(raw)


def unwrap_ui_payload(payload: Any) -> Any:
    """
    Dig the raw tree out of a ``get_ui_elements`` response payload.

    The phone may return the tree directly, as a JSON string, wrapped
    in ``ui_elements`` or ``elements``, or JSON-encoded inside a
    ``message`` string. Undecodable strings are returned unchanged.
    """
    raw = _decode_json(payload)
    if isinstance(raw, dict) and "ui_elements" in raw:
        raw = raw["ui_elements"]
    if isinstance(raw, dict) and "elements" in raw:
        raw = raw["elements"]
    if isinstance(raw, dict) and isinstance(raw.get("message"), str):
        raw = _decode_json(raw["message"])
    return raw


def _decode_json(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value
