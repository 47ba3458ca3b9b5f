"""
Health Check API Routes

Liveness, plus readiness checks for the two things every remote operation
needs: a runnable git executable and a writable secrets directory.
"""

import asyncio
import os
from datetime import datetime, timezone
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...core.service import GitService
from ..dependencies import get_git_service

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    git_version: Optional[str] = None
    components: Dict[str, str]


async def _git_version(service: GitService) -> Optional[str]:
    result = await asyncio.to_thread(service.executor.runner.run, ["--version"])
    return result.stdout.strip() if result.ok else None


def _secrets_root_writable(service: GitService) -> bool:
    # the root is created on first use, so check its nearest existing ancestor
    path = os.path.abspath(service.config.secrets.temp_root)
    while not os.path.exists(path) and os.path.dirname(path) != path:
        path = os.path.dirname(path)
    return os.path.isdir(path) and os.access(path, os.W_OK)


@router.get("/", response_model=HealthResponse)
async def health_check(service: GitService = Depends(get_git_service)):
    """Component status; degraded when git cannot be started"""
    version = await _git_version(service)
    components = {
        "api": "healthy",
        "git": "healthy" if version else "unavailable",
        "secrets": "healthy" if _secrets_root_writable(service) else "unwritable",
    }
    healthy = all(state == "healthy" for state in components.values())
    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "git_version": version,
        "components": components,
    }


@router.get("/ready")
async def readiness_check(service: GitService = Depends(get_git_service)):
    """503 until git runs and the secrets root accepts files"""
    if await _git_version(service) and _secrets_root_writable(service):
        return {"status": "ready"}
    return JSONResponse(status_code=503, content={"status": "not ready"})


@router.get("/live")
async def liveness_check():
    return {"status": "alive"}
