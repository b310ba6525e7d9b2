"""
Capability catalog: what can be installed.

MCP servers are built in and carry their own server config. Skills and
plugins come from the registries and carry a source to materialize from.
The catalog is built once and is read-only afterwards.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from agentx.config import Settings, get_settings
from agentx.core.registry_fetch import load_registry
from agentx.lib.typed_errors import CapabilityNotFound
from agentx.models import Capability, CapabilityType

logger = logging.getLogger(__name__)

LOCAL_SKILLS_TREE = "https://github.com/agentsdance/agentskills/tree/master/skills"

BUILTIN_MCP_SERVERS: list[Capability] = [
    Capability(
        type=CapabilityType.MCP,
        name="playwright",
        description="Browser automation",
        config={"command": "npx", "args": ["@playwright/mcp@latest"]},
    ),
    Capability(
        type=CapabilityType.MCP,
        name="context7",
        description="Library documentation",
        config={"command": "npx", "args": ["-y", "@upstash/context7-mcp"]},
    ),
    Capability(
        type=CapabilityType.MCP,
        name="remix-icon",
        description="Icon library",
        config={"command": "npx", "args": ["-y", "remixicon-mcp"]},
    ),
]

# Resolution order when a caller does not name the capability type
TYPE_RESOLUTION_ORDER = (CapabilityType.MCP, CapabilityType.SKILL, CapabilityType.PLUGIN)


def skill_from_registry(entry: dict[str, Any]) -> Capability:
    source = entry.get("source") or None
    if source == "local":
        source = f"{LOCAL_SKILLS_TREE}/{entry['name']}"
    return Capability(
        type=CapabilityType.SKILL,
        name=entry["name"],
        description=entry.get("description", ""),
        source=source,
        author=entry.get("author") or None,
    )


def plugin_from_registry(entry: dict[str, Any]) -> Capability:
    components = entry.get("components") or []
    return Capability(
        type=CapabilityType.PLUGIN,
        name=entry["name"],
        description=entry.get("description", ""),
        source=entry.get("source") or None,
        author=entry.get("author") or None,
        version=entry.get("version") or None,
        components=[str(c) for c in components] if isinstance(components, list) else [],
    )


class Catalog:
    """Ordered capabilities per type."""

    def __init__(
        self,
        mcp: Optional[list[Capability]] = None,
        skills: Optional[list[Capability]] = None,
        plugins: Optional[list[Capability]] = None,
    ):
        self._entries: dict[CapabilityType, list[Capability]] = {
            CapabilityType.MCP: list(BUILTIN_MCP_SERVERS if mcp is None else mcp),
            CapabilityType.SKILL: list(skills or []),
            CapabilityType.PLUGIN: list(plugins or []),
        }

    @classmethod
    def from_registries(
        cls,
        skills: list[dict[str, Any]],
        plugins: list[dict[str, Any]],
    ) -> "Catalog":
        return cls(
            skills=_dedupe(skill_from_registry(e) for e in skills),
            plugins=_dedupe(plugin_from_registry(e) for e in plugins),
        )

    def list(self, capability_type: CapabilityType) -> list[Capability]:
        return list(self._entries[capability_type])

    def get(self, capability_type: CapabilityType, name: str) -> Optional[Capability]:
        for capability in self._entries[capability_type]:
            if capability.name == name:
                return capability
        return None

    def require(self, capability_type: CapabilityType, name: str) -> Capability:
        capability = self.get(capability_type, name)
        if capability is None:
            raise CapabilityNotFound(
                f"No {capability_type.value} named '{name}' in the catalog",
                capability=name,
            )
        return capability

    def find(self, name: str) -> Optional[Capability]:
        """First capability with this name, checking MCP, skill, then plugin."""
        for capability_type in TYPE_RESOLUTION_ORDER:
            capability = self.get(capability_type, name)
            if capability is not None:
                return capability
        return None


def _dedupe(capabilities) -> list[Capability]:
    seen: set[str] = set()
    result = []
    for capability in capabilities:
        if capability.name in seen:
            logger.debug(f"Duplicate registry entry '{capability.name}' ignored")
            continue
        seen.add(capability.name)
        result.append(capability)
    return result


async def load_catalog(
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Catalog:
    """Build the catalog, fetching both registries concurrently."""
    settings = settings or get_settings()
    skills, plugins = await asyncio.gather(
        load_registry("skills", settings, client),
        load_registry("plugins", settings, client),
    )
    return Catalog.from_registries(skills, plugins)
