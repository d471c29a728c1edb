"""
Phone Agent - Main Application
==============================

FastAPI application entry point for the phone automation service.

This module sets up:
- FastAPI application with CORS
- Route registration
- Middleware (logging, error handling)
- Lifespan management (startup/shutdown)

Usage:
    # Development
    uvicorn phone_agent.main:app --reload --host 0.0.0.0 --port 8000

    # Production
    uvicorn phone_agent.main:app --host 0.0.0.0 --port 8000
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from phone_agent import __version__
from phone_agent.api.dependencies import close_resources
from phone_agent.api.routes import automation_router, commands_router, health_router
from phone_agent.config import get_settings
from phone_agent.errors import CommandChannelError
from phone_agent.utils.logger import LogContext, get_logger, setup_logging

# Setup logging
settings = get_settings()
setup_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the wiring on startup and close the shared command channel on shutdown."""
    logger.info(
        "Starting Phone Agent",
        llm_model=settings.oracle.groq_model,
        command_table=settings.channel.supabase_phone_table,
        max_steps=settings.automation.automation_max_steps,
    )

    yield

    logger.info("Shutting down Phone Agent")
    await close_resources()


app = FastAPI(
    title="Phone Agent",
    description=(
        "Drives an Android phone toward natural-language goals by observing "
        "its accessibility tree, asking an LLM for the next action and "
        "sending commands through a polled command store."
    ),
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.server.debug else None,
    redoc_url="/redoc" if settings.server.debug else None,
    openapi_url="/openapi.json" if settings.server.debug else None,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests with timing, binding the request id for nested logs."""
    start_time = time.time()
    request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)

    with LogContext(request_id=request_id):
        logger.info(
            "Request started",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else "unknown",
        )

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )

    response.headers["X-Request-ID"] = request_id
    response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

    return response


@app.exception_handler(CommandChannelError)
async def command_channel_exception_handler(request: Request, exc: CommandChannelError) -> JSONResponse:
    """The command store is unreachable or rejected a request."""
    logger.error("Command store failure", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=502,
        content={"error": "Command store unavailable", "detail": str(exc)},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.server.debug else "An unexpected error occurred",
        },
    )


app.include_router(health_router)
app.include_router(automation_router)
app.include_router(commands_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    """Root endpoint with service information."""
    return {
        "service": "Phone Agent",
        "version": __version__,
        "docs": "/docs" if settings.server.debug else None,
        "endpoints": {
            "health": "/health",
            "automation": "/automation/run",
            "commands": "/commands",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "phone_agent.main:app",
        host=settings.server.server_host,
        port=settings.server.server_port,
        reload=settings.server.debug,
        log_level=settings.server.log_level.lower(),
    )
