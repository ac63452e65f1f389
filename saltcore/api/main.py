"""
FastAPI application entry point.

Wires the routers, CORS and the error handlers that render the pipeline
error taxonomy as JSON.
"""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Dict, Optional, Union

import yaml
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .models.common import APIError
from .routers import health, poster, sermon, media, writing
from saltcore import __version__
from saltcore.models.manager import ModelManager, DEFAULT_CONFIG_PATH
from saltcore.models.providers.base import ModelError
from saltcore.pipeline.errors import InvalidRequestError, PipelineError, PipelineStageError, ValidationExhaustedError

logger = logging.getLogger(__name__)

# Global application state
app_state = {}


def _resolve_config_path(config_path: Union[Path, str, None]) -> Path:
    return Path(config_path or os.getenv("SALTCORE_CONFIG") or DEFAULT_CONFIG_PATH)


def _cors_settings(config_path: Path) -> Dict:
    with open(config_path) as f:
        config = yaml.safe_load(f) or {}
    cors = dict((config.get("server") or {}).get("cors") or {})

    origins = list(cors.get("allow_origins") or [])
    if os.getenv("SALT_ENV") == "development":
        origins += list(cors.get("dev_origins") or [])
    return {
        "allow_origins": origins,
        "allow_methods": cors.get("allow_methods", ["GET", "POST"]),
        "max_age": int(cors.get("max_age", 600)),
    }


def _error_response(status_code: int, error: APIError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.model_dump(mode="json", exclude_none=True))


async def pipeline_error_handler(request: Request, exc: PipelineError) -> JSONResponse:
    root = exc.cause if isinstance(exc, PipelineStageError) else exc
    stage = exc.stage if isinstance(exc, PipelineStageError) else None

    if isinstance(root, ValidationExhaustedError):
        error = APIError(
            error="validation exhausted",
            error_code="validation_exhausted",
            stage=stage,
            attempts=root.attempts,
            details={"reason": root.last_reason},
        )
    else:
        error = APIError(
            error=exc.message,
            error_code=type(root).__name__,
            stage=stage,
            details={"reason": str(root)} if stage else None,
        )
    logger.error(f"{request.method} {request.url.path} failed with {exc.http_status}: {exc.message}")
    return _error_response(exc.http_status, error)


async def model_error_handler(request: Request, exc: ModelError) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} upstream error: {exc}")
    details = {"upstream_status": exc.status_code} if exc.status_code else None
    return _error_response(502, APIError(error=str(exc), error_code=type(exc).__name__, details=details))


async def invalid_request_handler(request: Request, exc: InvalidRequestError) -> JSONResponse:
    return _error_response(400, APIError(error=str(exc), error_code="invalid_request"))


def create_app(config_path: Union[Path, str, None] = None, manager: Optional[ModelManager] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    ``manager`` skips building one in the lifespan, which tests rely on.
    """
    resolved_config = _resolve_config_path(config_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting saltcore API server")
        model_manager = manager or ModelManager(config_path=resolved_config)
        app_state["model_manager"] = model_manager
        logger.info(f"ModelManager ready with {len(model_manager.config['tasks'])} tasks")

        yield

        logger.info("Shutting down saltcore API server")
        await model_manager.aclose()
        app_state.clear()

    app = FastAPI(
        title="Salt Creative API",
        description="Poster, sermon and media generation over external model vendors",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_headers=["*"],
        **_cors_settings(resolved_config),
    )

    app.add_exception_handler(PipelineError, pipeline_error_handler)
    app.add_exception_handler(ModelError, model_error_handler)
    app.add_exception_handler(InvalidRequestError, invalid_request_handler)

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(poster.router, prefix="/api", tags=["poster"])
    app.include_router(sermon.router, prefix="/api", tags=["sermon"])
    app.include_router(media.router, prefix="/api", tags=["media"])
    app.include_router(writing.router, prefix="/api", tags=["writing"])

    @app.get("/")
    async def root():
        """Root endpoint with basic API information."""
        return {
            "name": "Salt Creative API",
            "version": __version__,
            "status": "operational",
            "endpoints": {
                "health": "/health",
                "api": "/api",
                "docs": "/docs",
            },
        }

    return app


# Create the FastAPI app instance
app = create_app()
