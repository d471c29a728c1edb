"""
Health Check Routes
===================

Liveness, readiness and service information.

Readiness only checks that credentials are configured; neither Groq
nor Supabase is contacted, so the checks stay cheap while a run is active.
"""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from phone_agent import __version__
from phone_agent.config import Settings, get_settings
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("", summary="Basic health check")
async def health_check() -> dict[str, str]:
    """Report that the service is up."""
    return {"status": "healthy", "timestamp": _now()}


@router.get("/live", summary="Liveness check")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/ready", summary="Readiness check")
async def readiness_check(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """
    Check that the decision LLM and the command store are configured.

    Raises:
        HTTPException: 503 listing the failed checks.
    """
    channel = settings.channel
    checks = {
        "llm_configured": bool(settings.oracle.groq_api_key),
        "channel_configured": bool(channel.supabase_url and channel.supabase_anon_key),
    }

    if not all(checks.values()):
        logger.warning(
            "Service not ready",
            missing=[name for name, ok in checks.items() if not ok],
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "checks": checks},
        )

    return {"status": "ready", "checks": checks, "timestamp": _now()}


@router.get("/info", summary="Service information")
async def service_info(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
    """
    Describe the running configuration.

    Secrets are never included.
    """
    channel = settings.channel
    automation = settings.automation
    return {
        "service": "phone-agent",
        "version": __version__,
        "environment": settings.server.environment,
        "config": {
            "llm_model": settings.oracle.groq_model,
            "command_table": channel.supabase_phone_table,
            "max_steps": automation.automation_max_steps,
            "max_same_action": automation.max_same_action,
            "polling": {
                "standard": {"interval": channel.poll_interval, "timeout": channel.poll_timeout},
                "fast": {"interval": channel.fast_poll_interval, "timeout": channel.fast_poll_timeout},
            },
            "debug_mode": settings.server.debug,
        },
        "timestamp": _now(),
    }
