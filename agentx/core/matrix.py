"""
Status matrix: every catalog capability of one type against every agent.

Recomputed from the stores on every call. Each agent's column is read in its
own worker thread under that agent's lock; a broken store only affects its
own cells.
"""

import asyncio
import logging
from typing import Optional

from agentx.core.agents import AgentDescriptor, AgentRegistry
from agentx.core.catalog import Catalog
from agentx.core.installer import AgentLocks
from agentx.lib.typed_errors import ConfigUnreadable
from agentx.models import CapabilityType, MatrixRow, Status

logger = logging.getLogger(__name__)


def read_column(
    descriptor: AgentDescriptor, capability_type: CapabilityType, names: list[str]
) -> list[Status]:
    """Blocking read of one agent's status for each name."""
    statuses = []
    for name in names:
        try:
            statuses.append(descriptor.adapter.read_entry(capability_type, name))
        except ConfigUnreadable as e:
            logger.debug(f"{descriptor.name}: {e}")
            statuses.append(Status.ERROR)
    return statuses


class MatrixBuilder:
    def __init__(
        self,
        registry: AgentRegistry,
        catalog: Catalog,
        locks: Optional[AgentLocks] = None,
    ):
        self.registry = registry
        self.catalog = catalog
        self.locks = locks or AgentLocks()

    async def column(
        self, descriptor: AgentDescriptor, capability_type: CapabilityType, names: list[str]
    ) -> list[Status]:
        exists, error = await asyncio.to_thread(descriptor.probe)
        if error:
            return [Status.ERROR] * len(names)
        if not exists or not descriptor.adapter.supports(capability_type):
            return [Status.NOT_APPLICABLE] * len(names)
        async with self.locks.get(descriptor.name):
            return await asyncio.to_thread(read_column, descriptor, capability_type, names)

    async def build(self, capability_type: CapabilityType) -> list[MatrixRow]:
        """One row per catalog capability, agents in registry order."""
        capabilities = self.catalog.list(capability_type)
        names = [c.name for c in capabilities]
        descriptors = self.registry.descriptors

        columns = await asyncio.gather(
            *(self.column(d, capability_type, names) for d in descriptors)
        )

        return [
            MatrixRow(
                name=capability.name,
                description=capability.description,
                source=capability.source,
                agents={d.name: columns[j][i] for j, d in enumerate(descriptors)},
            )
            for i, capability in enumerate(capabilities)
        ]
