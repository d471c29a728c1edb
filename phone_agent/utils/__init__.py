"""
Utility modules for the Phone Agent.

This package contains:
    - logger: Structured logging with structlog
"""

from phone_agent.utils.logger import LogContext, get_logger, setup_logging

__all__ = [
    "LogContext",
    "get_logger",
    "setup_logging",
]
