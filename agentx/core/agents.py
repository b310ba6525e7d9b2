"""
Agent descriptor registry.

The set of supported agents is compiled in. Each descriptor knows where the
agent keeps its configuration and which capability stores it has; whether
the agent is installed is probed from the filesystem on every query.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from agentx.config import Settings, get_settings
from agentx.core.stores import (
    AgentAdapter,
    GeminiMcpStore,
    JsonMcpStore,
    PluginDirStore,
    SkillDirStore,
    TomlMcpStore,
)
from agentx.lib.typed_errors import AgentNotFound
from agentx.models import Agent, CapabilityType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentDescriptor:
    """Static description of one agent on this host."""

    name: str
    key: str
    config_path: Path
    probe_path: Path
    adapter: AgentAdapter = field(compare=False)
    aliases: tuple[str, ...] = ()

    def probe(self) -> tuple[bool, Optional[str]]:
        """Check whether the configuration root exists.

        Returns (exists, error). "Not found" is exists=False; any other I/O
        failure (permission denied, ...) is reported as an error instead.
        """
        try:
            os.stat(self.probe_path)
        except (FileNotFoundError, NotADirectoryError):
            return False, None
        except OSError as e:
            logger.debug(f"Probe failed for {self.name} at {self.probe_path}: {e}")
            return False, f"Cannot access {self.probe_path}: {e.strerror or e}"
        return True, None

    def snapshot(self) -> Agent:
        exists, error = self.probe()
        return Agent(
            name=self.name,
            key=self.key,
            config_path=str(self.config_path),
            exists=exists,
            error=error,
        )

    def matches(self, name: str) -> bool:
        wanted = name.strip().lower()
        return wanted in {self.name.lower(), self.key, *self.aliases}


def build_descriptors(settings: Settings) -> list[AgentDescriptor]:
    """Descriptors for every supported agent, in matrix column order."""
    home = settings.home_dir
    codex = settings.codex_dir
    plugins = settings.plugins_dir

    claude_json = home / ".claude.json"
    codex_toml = codex / "config.toml"
    cursor_json = home / ".cursor" / "mcp.json"
    gemini_json = home / ".gemini" / "settings.json"
    opencode_json = home / ".opencode" / "config.json"
    droid_json = home / ".factory" / "mcp.json"

    return [
        AgentDescriptor(
            name="Claude Code",
            key="claude",
            config_path=claude_json,
            probe_path=claude_json,
            aliases=("claudecode", "claude-code", "claude_code"),
            adapter=AgentAdapter({
                CapabilityType.MCP: JsonMcpStore(claude_json),
                CapabilityType.SKILL: SkillDirStore(
                    home / ".claude" / "skills", home / ".claude" / "commands"
                ),
                CapabilityType.PLUGIN: PluginDirStore(plugins / "claude"),
            }),
        ),
        AgentDescriptor(
            name="Codex",
            key="codex",
            config_path=codex_toml,
            probe_path=codex_toml,
            aliases=("codexcli", "codex-cli", "codex_cli"),
            adapter=AgentAdapter({
                CapabilityType.MCP: TomlMcpStore(codex_toml),
                CapabilityType.SKILL: SkillDirStore(codex / "skills"),
            }),
        ),
        AgentDescriptor(
            name="Cursor",
            key="cursor",
            config_path=cursor_json,
            probe_path=cursor_json.parent,
            adapter=AgentAdapter({
                CapabilityType.MCP: JsonMcpStore(cursor_json),
            }),
        ),
        AgentDescriptor(
            name="Gemini cli",
            key="gemini",
            config_path=gemini_json,
            probe_path=gemini_json,
            aliases=("geminicli", "gemini-cli", "gemini_cli"),
            adapter=AgentAdapter({
                CapabilityType.MCP: GeminiMcpStore(gemini_json),
            }),
        ),
        AgentDescriptor(
            name="opencode",
            key="opencode",
            config_path=opencode_json,
            probe_path=opencode_json,
            aliases=("open-code", "open_code"),
            adapter=AgentAdapter({
                CapabilityType.MCP: JsonMcpStore(opencode_json),
            }),
        ),
        AgentDescriptor(
            name="Droid",
            key="droid",
            config_path=droid_json,
            probe_path=droid_json.parent,
            aliases=("factory", "factory-droid"),
            adapter=AgentAdapter({
                CapabilityType.MCP: JsonMcpStore(droid_json, entry_defaults={"type": "stdio"}),
                CapabilityType.SKILL: SkillDirStore(home / ".factory" / "skills"),
                CapabilityType.PLUGIN: PluginDirStore(plugins / "droid"),
            }),
        ),
    ]


class AgentRegistry:
    """Fixed, ordered set of agent descriptors."""

    def __init__(self, descriptors: list[AgentDescriptor]):
        self._descriptors = list(descriptors)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AgentRegistry":
        return cls(build_descriptors(settings or get_settings()))

    @property
    def descriptors(self) -> list[AgentDescriptor]:
        return list(self._descriptors)

    def list_agents(self) -> list[Agent]:
        """Probe every agent, in registry order."""
        return [d.snapshot() for d in self._descriptors]

    def get(self, name: str) -> AgentDescriptor:
        """Resolve a display name, key or alias (case-insensitive)."""
        for descriptor in self._descriptors:
            if descriptor.matches(name):
                return descriptor
        known = ", ".join(d.key for d in self._descriptors)
        raise AgentNotFound(f"Unknown agent '{name}' (known: {known})", agent=name)
