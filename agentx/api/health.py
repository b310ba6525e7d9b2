"""
Health and version endpoints.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends

from agentx import __version__
from agentx.api.deps import get_manager
from agentx.core.manager import CapabilityManager

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, Any]:
    return {
        "status": "ok",
        "timestamp": int(time.time() * 1000),
        "version": __version__,
    }


@router.get("/version")
async def get_version(manager: CapabilityManager = Depends(get_manager)) -> dict[str, str]:
    return {"version": manager.get_version()}
