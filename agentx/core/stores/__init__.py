"""
Per-agent configuration stores.

Each store owns one kind of installation record (MCP server map entries,
skill directories, plugin directories) and exposes the same small contract
so an agent adapter can dispatch on capability type.
"""

from agentx.core.stores.adapter import AgentAdapter, CapabilityStore
from agentx.core.stores.mcp import GeminiMcpStore, JsonMcpStore, TomlMcpStore
from agentx.core.stores.plugins import PluginDirStore
from agentx.core.stores.skills import SkillDirStore

__all__ = [
    "AgentAdapter",
    "CapabilityStore",
    "GeminiMcpStore",
    "JsonMcpStore",
    "TomlMcpStore",
    "PluginDirStore",
    "SkillDirStore",
]
