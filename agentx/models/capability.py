"""
Capability, agent and status models.

These are the values the core hands to presentation layers. Wire names are
camelCase (configPath); status values are the lowercase tokens of Status.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CapabilityType(str, Enum):
    """Kind of installable capability."""

    MCP = "mcp"
    SKILL = "skill"
    PLUGIN = "plugin"

    @classmethod
    def parse(cls, value: "str | CapabilityType") -> "CapabilityType":
        """Parse a type name, accepting plurals ("skills", "plugins", "mcps")."""
        if isinstance(value, CapabilityType):
            return value
        normalized = value.strip().lower()
        if normalized.endswith("s") and normalized[:-1] in cls._value2member_map_:
            normalized = normalized[:-1]
        return cls(normalized)


class Status(str, Enum):
    """Installation status of one capability for one agent."""

    INSTALLED = "installed"
    NOT_INSTALLED = "not_installed"
    NOT_APPLICABLE = "n/a"
    ERROR = "error"


class Agent(BaseModel):
    """An agent as probed on this host during one query cycle."""

    name: str
    key: str
    config_path: str = Field(alias="configPath", serialization_alias="configPath")
    exists: bool
    error: Optional[str] = Field(
        default=None,
        description="Probe failure other than 'not found' (e.g. permission denied)",
    )

    model_config = {"frozen": True, "populate_by_name": True}


class Capability(BaseModel):
    """A catalog entry. Read-only reference data."""

    type: CapabilityType
    name: str
    description: str = ""
    source: Optional[str] = Field(
        default=None, description="Where skill/plugin content is materialized from"
    )
    config: Optional[dict[str, Any]] = Field(
        default=None, description="MCP server config (MCP servers are self-describing)"
    )
    author: Optional[str] = None
    version: Optional[str] = None
    components: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class MatrixRow(BaseModel):
    """One capability and its status for every agent, in registry order."""

    name: str
    description: str = ""
    source: Optional[str] = None
    agents: dict[str, Status] = Field(default_factory=dict)

    model_config = {"use_enum_values": True}


class OutcomeKind(str, Enum):
    """Per-agent result of a bulk operation."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class AgentOutcome(BaseModel):
    """Outcome of one agent inside a bulk operation."""

    agent: str
    outcome: OutcomeKind
    code: Optional[str] = None
    reason: Optional[str] = None

    model_config = {"use_enum_values": True}


class BulkResult(BaseModel):
    """Aggregate result of install-for-all, outcomes in registry order."""

    capability: str
    type: CapabilityType
    outcomes: list[AgentOutcome] = Field(default_factory=list)

    model_config = {"use_enum_values": True}

    @property
    def succeeded(self) -> list[AgentOutcome]:
        return [o for o in self.outcomes if o.outcome == OutcomeKind.SUCCEEDED]

    @property
    def failures(self) -> list[AgentOutcome]:
        return [o for o in self.outcomes if o.outcome == OutcomeKind.FAILED]

    @property
    def skipped(self) -> list[AgentOutcome]:
        return [o for o in self.outcomes if o.outcome == OutcomeKind.SKIPPED]

    @property
    def ok(self) -> bool:
        """False only when every applicable agent failed."""
        attempted = [o for o in self.outcomes if o.outcome != OutcomeKind.SKIPPED]
        if not attempted:
            return True
        return any(o.outcome == OutcomeKind.SUCCEEDED for o in attempted)

    def failure_summary(self) -> str:
        """Human-readable list of failed agents."""
        return "; ".join(f"{o.agent}: {o.reason}" for o in self.failures)
