"""
Phone Agent
===========

Autonomous Android phone automation driven by a language model.

A natural-language goal is turned into a sequence of device commands by
repeatedly reading the accessibility tree, asking an LLM for the next
action and issuing it through a polling command channel.

Modules:
    - agent: Automation loop, decision oracle and action executor
    - channel: Polling command channel to the phone
    - perception: Accessibility tree compression
    - llm: LLM client and response parsing
    - api: FastAPI routes
    - utils: Logging helpers
"""

__version__ = "1.0.0"
__author__ = "Phone Agent Team"
