"""
Installer / Remover: single-agent mutations.

Each call touches exactly one agent's store while holding that agent's lock.
Store I/O is blocking and runs in a worker thread. Once a write has started
it is never abandoned halfway: a cancelled caller waits for the write to
finish (lock still held) and only then sees the cancellation.
"""

import asyncio
import logging
from typing import Any, Callable, Optional

from agentx.config import Settings, get_settings
from agentx.core.agents import AgentDescriptor, AgentRegistry
from agentx.core.catalog import Catalog
from agentx.core.sources import materialize
from agentx.lib.typed_errors import (
    AgentxError,
    CapabilityNotFound,
    ConfigUnreadable,
    NotApplicable,
)
from agentx.models import CapabilityType

logger = logging.getLogger(__name__)


class AgentLocks:
    """One asyncio.Lock per agent name."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, agent_name: str) -> asyncio.Lock:
        lock = self._locks.get(agent_name)
        if lock is None:
            lock = self._locks[agent_name] = asyncio.Lock()
        return lock


async def run_mutation(lock: asyncio.Lock, func: Callable[..., Any], *args: Any) -> Any:
    """Run blocking `func` in a thread under `lock`, shielded from cancellation."""
    async with lock:
        task = asyncio.ensure_future(asyncio.to_thread(func, *args))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                try:
                    await task
                except Exception as e:
                    logger.debug(f"Mutation finished with error after cancellation: {e}")
            raise


def annotate(error: AgentxError, agent: Optional[str], capability: Optional[str]) -> AgentxError:
    """Fill in agent/capability context on an error raised by a store."""
    if error.agent is None:
        error.agent = agent
    if error.capability is None:
        error.capability = capability
    return error


class Installer:
    """Install and remove capabilities for one agent at a time."""

    def __init__(
        self,
        registry: AgentRegistry,
        catalog: Catalog,
        locks: Optional[AgentLocks] = None,
        settings: Optional[Settings] = None,
    ):
        self.registry = registry
        self.catalog = catalog
        self.locks = locks or AgentLocks()
        self.settings = settings or get_settings()

    async def target(self, agent_name: str, capability_type: CapabilityType) -> AgentDescriptor:
        """Resolve an agent that is present and supports `capability_type`."""
        descriptor = self.registry.get(agent_name)
        exists, error = await asyncio.to_thread(descriptor.probe)
        if error:
            raise ConfigUnreadable(error, agent=descriptor.name)
        if not exists:
            raise NotApplicable(
                f"{descriptor.name} is not installed ({descriptor.config_path} not found)",
                agent=descriptor.name,
            )
        if not descriptor.adapter.supports(capability_type):
            raise NotApplicable(
                f"{descriptor.name} does not support {capability_type.value} capabilities",
                agent=descriptor.name,
            )
        return descriptor

    def mcp_payload(self, name: str) -> dict[str, Any]:
        capability = self.catalog.require(CapabilityType.MCP, name)
        if not capability.config:
            raise CapabilityNotFound(f"MCP server '{name}' has no server config", capability=name)
        return capability.config

    def source_for(
        self, capability_type: CapabilityType, name: str, source_ref: Optional[str]
    ) -> str:
        """Source to materialize a skill or plugin from."""
        if source_ref:
            return source_ref
        capability = self.catalog.get(capability_type, name)
        if capability is None or not capability.source:
            raise CapabilityNotFound(
                f"No {capability_type.value} named '{name}' in the catalog and no source given",
                capability=name,
            )
        return capability.source

    async def apply(
        self,
        descriptor: AgentDescriptor,
        capability_type: CapabilityType,
        name: str,
        payload: Any,
    ) -> None:
        """Write one entry to one agent's store."""
        try:
            await run_mutation(
                self.locks.get(descriptor.name),
                descriptor.adapter.write_entry,
                capability_type, name, payload,
            )
        except AgentxError as e:
            raise annotate(e, descriptor.name, name)
        logger.info(f"Installed {capability_type.value} '{name}' for {descriptor.name}")

    async def install(
        self,
        agent_name: str,
        capability_name: str,
        capability_type: CapabilityType,
        source_ref: Optional[str] = None,
    ) -> None:
        """Install one capability for one agent.

        Content for skills and plugins is fully materialized before the
        agent's store is touched. Installing an installed capability again
        leaves the store as it is.
        """
        descriptor = await self.target(agent_name, capability_type)

        if capability_type == CapabilityType.MCP:
            await self.apply(descriptor, capability_type, capability_name,
                             self.mcp_payload(capability_name))
            return

        source = self.source_for(capability_type, capability_name, source_ref)
        try:
            async with materialize(
                source, capability_type, capability_name, self.settings.git_timeout
            ) as payload:
                await self.apply(descriptor, capability_type, capability_name, payload)
        except AgentxError as e:
            raise annotate(e, descriptor.name, capability_name)

    async def remove(
        self,
        agent_name: str,
        capability_name: str,
        capability_type: CapabilityType,
    ) -> None:
        """Remove one capability from one agent. Absent entries are a no-op."""
        descriptor = await self.target(agent_name, capability_type)
        try:
            await run_mutation(
                self.locks.get(descriptor.name),
                descriptor.adapter.remove_entry,
                capability_type, capability_name,
            )
        except AgentxError as e:
            raise annotate(e, descriptor.name, capability_name)
        logger.info(f"Removed {capability_type.value} '{capability_name}' from {descriptor.name}")
