"""
API Module
==========

FastAPI routes for the phone agent service.

This package contains:
    - routes/: REST API endpoints
    - dependencies: Shared channel and loop providers
"""

from phone_agent.api.routes import automation, commands, health

__all__ = [
    "health",
    "automation",
    "commands",
]
