"""
Pydantic models for agentx.
"""

from agentx.models.capability import (
    Agent,
    AgentOutcome,
    BulkResult,
    Capability,
    CapabilityType,
    MatrixRow,
    OutcomeKind,
    Status,
)

__all__ = [
    "Agent",
    "AgentOutcome",
    "BulkResult",
    "Capability",
    "CapabilityType",
    "MatrixRow",
    "OutcomeKind",
    "Status",
]
