"""
API Routes Package
==================

REST API route definitions.
"""

from phone_agent.api.routes.automation import router as automation_router
from phone_agent.api.routes.commands import router as commands_router
from phone_agent.api.routes.health import router as health_router

__all__ = [
    "health_router",
    "automation_router",
    "commands_router",
]
