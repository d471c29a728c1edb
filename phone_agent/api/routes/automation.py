"""
Automation Routes
=================

Run a natural-language goal on the phone.

The device is a single shared resource, so only one run may be in
progress per process. A second request while a run is active gets
409 Conflict instead of queueing.
"""

import asyncio
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from phone_agent.agent.automation_loop import AutomationLoop
from phone_agent.api.dependencies import get_automation_loop
from phone_agent.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/automation", tags=["Automation"])

_run_lock = asyncio.Lock()


class RunAutomationRequest(BaseModel):
    """Request to run a goal."""

    goal: str = Field(
        description="What to accomplish on the phone, in natural language",
        min_length=1,
        max_length=1000,
    )


class AutomationRunResponse(BaseModel):
    """Outcome of a run."""

    goal: str
    completed: bool
    status: str
    summary: Optional[str] = None
    steps: list[dict[str, Any]] = []
    report: str
    duration_seconds: float = 0.0


@router.post(
    "/run",
    response_model=AutomationRunResponse,
    summary="Run a goal",
)
async def run_goal(
    request: RunAutomationRequest,
    loop: AutomationLoop = Depends(get_automation_loop),
) -> AutomationRunResponse:
    """
    Run a goal to completion and return the report.

    Raises:
        HTTPException: 409 if a run is already in progress, 500 if the
            command store or anything unexpected fails.
    """
    goal = request.goal.strip()
    if not goal:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Error: goal is required.",
        )

    if _run_lock.locked():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An automation run is already in progress",
        )

    async with _run_lock:
        logger.info("Automation requested", goal=goal)
        try:
            result = await loop.run(goal)
        except Exception as e:
            logger.exception("Phone automation failed", error=str(e))
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Phone automation failed: {e}",
            )

    return AutomationRunResponse(**result.to_dict())
