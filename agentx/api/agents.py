"""
Agent endpoints.
"""

from typing import Any

from fastapi import APIRouter, Depends

from agentx.api.deps import get_manager
from agentx.core.manager import CapabilityManager

router = APIRouter()


@router.get("/agents")
async def list_agents(manager: CapabilityManager = Depends(get_manager)) -> dict[str, Any]:
    """Every known agent, with whether its configuration root exists."""
    agents = await manager.list_agents()
    return {"agents": [a.model_dump(by_alias=True) for a in agents]}


@router.get("/agents/{agent}/{capability_type}")
async def list_entries(
    agent: str,
    capability_type: str,
    manager: CapabilityManager = Depends(get_manager),
) -> dict[str, Any]:
    """Entries recorded in one agent's store for a capability type."""
    entries = await manager.list_entries(agent, capability_type)
    return {"agent": agent, "type": capability_type, "entries": entries}
