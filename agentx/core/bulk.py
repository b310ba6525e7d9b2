"""
Bulk operator: install one capability for every applicable agent.

Agents are processed concurrently, at most `max_workers` at a time. One
agent failing never stops the others; every outcome is collected and
reported in registry order.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from typing import Any, Optional

from agentx.core.agents import AgentDescriptor
from agentx.core.installer import Installer
from agentx.core.sources import materialize
from agentx.lib.typed_errors import AgentxError, ErrorCode
from agentx.models import AgentOutcome, BulkResult, CapabilityType, OutcomeKind

logger = logging.getLogger(__name__)


class BulkOperator:
    def __init__(self, installer: Installer, max_workers: Optional[int] = None):
        self.installer = installer
        self.max_workers = max_workers or installer.settings.max_workers

    async def _probe_all(
        self, capability_type: CapabilityType
    ) -> list[tuple[AgentDescriptor, Optional[AgentOutcome]]]:
        """Pair each agent with a pre-decided outcome, or None if it should be attempted."""
        descriptors = self.installer.registry.descriptors
        probes = await asyncio.gather(*(asyncio.to_thread(d.probe) for d in descriptors))

        plan = []
        for descriptor, (exists, error) in zip(descriptors, probes):
            supported = descriptor.adapter.supports(capability_type)
            if error and supported:
                outcome = AgentOutcome(
                    agent=descriptor.name,
                    outcome=OutcomeKind.FAILED,
                    code=ErrorCode.CONFIG_UNREADABLE.value,
                    reason=error,
                )
            elif not exists or not supported:
                outcome = AgentOutcome(
                    agent=descriptor.name,
                    outcome=OutcomeKind.SKIPPED,
                    reason="not installed" if not exists else "not supported",
                )
            else:
                outcome = None
            plan.append((descriptor, outcome))
        return plan

    async def _install_one(
        self,
        semaphore: asyncio.Semaphore,
        descriptor: AgentDescriptor,
        capability_type: CapabilityType,
        name: str,
        payload: Any,
    ) -> AgentOutcome:
        async with semaphore:
            try:
                await self.installer.apply(descriptor, capability_type, name, payload)
            except AgentxError as e:
                logger.debug(f"Install of '{name}' failed for {descriptor.name}: {e}")
                return AgentOutcome(
                    agent=descriptor.name,
                    outcome=OutcomeKind.FAILED,
                    code=e.code.value,
                    reason=e.message,
                )
            except Exception as e:
                logger.debug(f"Install of '{name}' failed for {descriptor.name}", exc_info=True)
                return AgentOutcome(
                    agent=descriptor.name,
                    outcome=OutcomeKind.FAILED,
                    code=ErrorCode.UNKNOWN_ERROR.value,
                    reason=f"{type(e).__name__}: {e}",
                )
        return AgentOutcome(agent=descriptor.name, outcome=OutcomeKind.SUCCEEDED)

    async def install_for_all(
        self,
        capability_name: str,
        capability_type: CapabilityType,
        source_ref: Optional[str] = None,
    ) -> BulkResult:
        """Install for every agent that is present and supports the type.

        Catalog lookup and source materialization happen once, before any
        agent is touched; their failures raise instead of being collected.
        """
        plan = await self._probe_all(capability_type)
        attempted = [d for d, outcome in plan if outcome is None]

        results: dict[str, AgentOutcome] = {
            d.name: outcome for d, outcome in plan if outcome is not None
        }

        if attempted:
            async with AsyncExitStack() as stack:
                if capability_type == CapabilityType.MCP:
                    payload: Any = self.installer.mcp_payload(capability_name)
                else:
                    source = self.installer.source_for(capability_type, capability_name, source_ref)
                    payload = await stack.enter_async_context(materialize(
                        source, capability_type, capability_name,
                        self.installer.settings.git_timeout,
                    ))

                semaphore = asyncio.Semaphore(self.max_workers)
                outcomes = await asyncio.gather(*(
                    self._install_one(semaphore, d, capability_type, capability_name, payload)
                    for d in attempted
                ))
                for outcome in outcomes:
                    results[outcome.agent] = outcome

        result = BulkResult(
            capability=capability_name,
            type=capability_type,
            outcomes=[results[d.name] for d, _ in plan],
        )
        logger.info(
            f"Installed {capability_type.value} '{capability_name}': "
            f"{len(result.succeeded)} succeeded, {len(result.failures)} failed, "
            f"{len(result.skipped)} skipped"
        )
        return result
