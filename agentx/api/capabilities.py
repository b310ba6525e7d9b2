"""
Status matrix and install/remove endpoints.

Errors raised by the core are turned into TypedError payloads by the
exception handler registered in agentx.server.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from agentx.api.deps import get_manager
from agentx.core.manager import CapabilityManager

router = APIRouter()
logger = logging.getLogger(__name__)


class InstallInput(BaseModel):
    """Install a capability for one agent."""

    agent: str
    name: str
    type: Optional[str] = None
    source: Optional[str] = Field(default=None, description="Skill or plugin source")


class RemoveInput(BaseModel):
    """Remove a capability from one agent."""

    agent: str
    name: str
    type: Optional[str] = None


class InstallAllInput(BaseModel):
    """Install a capability for every applicable agent."""

    name: str
    type: Optional[str] = None
    source: Optional[str] = None


@router.get("/matrix/{capability_type}")
async def get_matrix(
    capability_type: str,
    manager: CapabilityManager = Depends(get_manager),
) -> dict[str, Any]:
    rows = await manager.get_matrix(capability_type)
    return {
        "type": capability_type,
        "rows": [r.model_dump(exclude_none=True) for r in rows],
    }


@router.post("/install")
async def install(
    body: InstallInput,
    manager: CapabilityManager = Depends(get_manager),
) -> dict[str, Any]:
    resolved = await manager.install(body.agent, body.name, body.source, body.type)
    return {"agent": body.agent, "name": body.name, "type": resolved.value, "status": "installed"}


@router.post("/remove")
async def remove(
    body: RemoveInput,
    manager: CapabilityManager = Depends(get_manager),
) -> dict[str, Any]:
    resolved = await manager.remove(body.agent, body.name, body.type)
    return {"agent": body.agent, "name": body.name, "type": resolved.value, "status": "not_installed"}


@router.post("/install-all")
async def install_all(
    body: InstallAllInput,
    manager: CapabilityManager = Depends(get_manager),
):
    """Install for every applicable agent.

    Returns 207 when some agents failed, with the failures listed.
    """
    result = await manager.install_for_all(body.name, body.source, body.type)
    content = result.model_dump()
    content["failures"] = [o.model_dump() for o in result.failures]
    if result.failures:
        logger.info(f"install-all '{body.name}': {result.failure_summary()}")
        return JSONResponse(status_code=207, content=content)
    return content
