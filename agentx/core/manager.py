"""
CapabilityManager: the operation set presentation layers call.

Wires the agent registry, catalog, matrix builder, installer and bulk
operator together around one shared set of per-agent locks.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from agentx import __version__
from agentx.config import Settings, get_settings
from agentx.core.agents import AgentRegistry
from agentx.core.bulk import BulkOperator
from agentx.core.catalog import Catalog, load_catalog
from agentx.core.installer import AgentLocks, Installer
from agentx.core.matrix import MatrixBuilder
from agentx.lib.typed_errors import BulkInstallFailed, CapabilityNotFound
from agentx.models import Agent, BulkResult, CapabilityType, MatrixRow

logger = logging.getLogger(__name__)


def parse_type(value: "CapabilityType | str") -> CapabilityType:
    try:
        return CapabilityType.parse(value)
    except ValueError:
        raise CapabilityNotFound(f"Unknown capability type '{value}'") from None


class CapabilityManager:
    def __init__(
        self,
        registry: AgentRegistry,
        catalog: Catalog,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry
        self.catalog = catalog
        self.locks = AgentLocks()
        self.matrix = MatrixBuilder(registry, catalog, self.locks)
        self.installer = Installer(registry, catalog, self.locks, self.settings)
        self.bulk = BulkOperator(self.installer, self.settings.max_workers)

    @classmethod
    async def create(
        cls,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> "CapabilityManager":
        """Build a manager for this host, loading the skill and plugin registries."""
        settings = settings or get_settings()
        catalog = await load_catalog(settings, client)
        return cls(AgentRegistry.from_settings(settings), catalog, settings)

    def resolve_type(
        self,
        capability_name: str,
        capability_type: "CapabilityType | str | None" = None,
        source_ref: Optional[str] = None,
    ) -> CapabilityType:
        """Explicit type, else the catalog's (MCP, skill, plugin order).

        A name unknown to the catalog but given with a source is a skill.
        """
        if capability_type:
            return parse_type(capability_type)
        capability = self.catalog.find(capability_name)
        if capability is not None:
            return capability.type
        if source_ref:
            return CapabilityType.SKILL
        raise CapabilityNotFound(
            f"No capability named '{capability_name}' in the catalog",
            capability=capability_name,
        )

    async def list_agents(self) -> list[Agent]:
        return await asyncio.to_thread(self.registry.list_agents)

    async def get_matrix(self, capability_type: "CapabilityType | str") -> list[MatrixRow]:
        return await self.matrix.build(parse_type(capability_type))

    async def install(
        self,
        agent_name: str,
        capability_name: str,
        source_ref: Optional[str] = None,
        capability_type: "CapabilityType | str | None" = None,
    ) -> CapabilityType:
        """Install for one agent. Returns the resolved capability type."""
        resolved = self.resolve_type(capability_name, capability_type, source_ref)
        await self.installer.install(agent_name, capability_name, resolved, source_ref)
        return resolved

    async def remove(
        self,
        agent_name: str,
        capability_name: str,
        capability_type: "CapabilityType | str | None" = None,
    ) -> CapabilityType:
        """Remove from one agent. Returns the resolved capability type."""
        resolved = self.resolve_type(capability_name, capability_type)
        await self.installer.remove(agent_name, capability_name, resolved)
        return resolved

    async def install_for_all(
        self,
        capability_name: str,
        source_ref: Optional[str] = None,
        capability_type: "CapabilityType | str | None" = None,
    ) -> BulkResult:
        """Install for every applicable agent.

        Raises BulkInstallFailed when every attempted agent failed. Partial
        failures are returned in the result's `failures`.
        """
        resolved = self.resolve_type(capability_name, capability_type, source_ref)
        result = await self.bulk.install_for_all(capability_name, resolved, source_ref)
        if not result.ok:
            failed = [o.agent for o in result.failures]
            raise BulkInstallFailed(
                f"Failed to install '{capability_name}' for {', '.join(failed)}",
                capability=capability_name,
                details=[f"{o.agent}: {o.reason}" for o in result.failures],
            )
        return result

    def get_version(self) -> str:
        return __version__

    async def list_entries(
        self, agent_name: str, capability_type: "CapabilityType | str"
    ) -> dict[str, Any]:
        """Entries currently recorded in one agent's store."""
        resolved = parse_type(capability_type)
        descriptor = await self.installer.target(agent_name, resolved)
        async with self.locks.get(descriptor.name):
            return await asyncio.to_thread(descriptor.adapter.list_entries, resolved)
