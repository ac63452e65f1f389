"""
Health check endpoints for monitoring and diagnostics.
"""

import time
from fastapi import APIRouter, Depends

from ..models.common import HealthStatus
from ..dependencies.manager import get_model_manager
from saltcore import __version__
from saltcore.models.manager import ModelManager

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


@router.get("/", response_model=HealthStatus)
async def health_check(model_manager: ModelManager = Depends(get_model_manager)):
    """
    Basic health check endpoint.

    Reports per-task call statistics collected by the model manager.
    """
    uptime = time.time() - _server_start_time

    dependencies = {}
    for task, stats in model_manager.get_stats().items():
        total = stats["total_calls"]
        ok = stats["successful_calls"]
        dependencies[task] = f"{ok}/{total} calls succeeded"

    return HealthStatus(
        status="healthy",
        version=__version__,
        uptime=uptime,
        dependencies=dependencies,
    )


@router.get("/ready")
async def readiness_check(model_manager: ModelManager = Depends(get_model_manager)):
    """Ready once the task configuration is loaded."""
    tasks = model_manager.config.get("tasks") or {}
    if not tasks:
        return {"ready": False, "reason": "No tasks configured"}
    return {"ready": True, "tasks": sorted(tasks)}
