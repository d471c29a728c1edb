"""
Perception Module
=================

Turns raw accessibility trees into what the automation LLM sees.

This package contains:
    - tree_compressor: Compact, indexed element list and its text rendering
"""

from phone_agent.perception.tree_compressor import (
    Bounds,
    CompressedUI,
    UIElement,
    UITreeCompressor,
    compress_ui_tree,
    parse_bounds,
    unwrap_ui_payload,
)

__all__ = [
    "Bounds",
    "CompressedUI",
    "UIElement",
    "UITreeCompressor",
    "compress_ui_tree",
    "parse_bounds",
    "unwrap_ui_payload",
]
