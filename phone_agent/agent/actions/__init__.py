"""
Agent Actions Module
====================

Action execution for the phone automation loop.

This package contains:
    - handler: Resolve decided actions and send them to the device
"""

from phone_agent.agent.actions.handler import DEFAULT_SWIPE_DIRECTION, ActionExecutor

__all__ = [
    "ActionExecutor",
    "DEFAULT_SWIPE_DIRECTION",
]
