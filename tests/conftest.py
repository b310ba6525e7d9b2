"""
Pytest configuration and fixtures.

Every test gets a fake home directory; agents are "installed" in it by
creating their configuration roots with the create_agents fixture.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Callable

import pytest

# Keep the developer's real ~/.agentx/config.yaml out of Settings()
os.environ["AGENTX_DATA_DIR"] = tempfile.mkdtemp(prefix="agentx-test-")
os.environ["AGENTX_LOG_LEVEL"] = "WARNING"

from agentx.config import Settings  # noqa: E402
from agentx.core.agents import AgentRegistry  # noqa: E402
from agentx.core.catalog import Catalog  # noqa: E402
from agentx.core.manager import CapabilityManager  # noqa: E402
from agentx.models import Capability, CapabilityType  # noqa: E402

CLAUDE_JSON = {
    "numStartups": 12,
    "theme": "dark",
    "projects": {"/work/app": {"allowedTools": ["Bash"], "history": []}},
    "mcpServers": {
        "github": {"command": "npx", "args": ["-y", "@modelcontextprotocol/server-github"]},
    },
}

CODEX_TOML = """\
# Codex configuration
model = "o3"  # preferred model

[mcp_servers.other]
command = "uvx"
args = ["other-mcp"]
"""

SKILL_MD = """\
---
name: {name}
description: {description}
allowed-tools: [Read, Write]
---

# {name}

Instructions for the agent.
"""


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """A fresh, empty home directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    return home_dir


@pytest.fixture
def settings(home: Path) -> Settings:
    return Settings(
        home_dir=home,
        codex_home=home / ".codex",
        data_dir=home / ".agentx",
        max_workers=2,
        git_timeout=5.0,
    )


def _create_agent(home: Path, key: str) -> Path:
    """Create the configuration root of one agent and return its config path."""
    if key == "claude":
        path = home / ".claude.json"
        path.write_text(json.dumps(CLAUDE_JSON, indent=2))
    elif key == "codex":
        path = home / ".codex" / "config.toml"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(CODEX_TOML)
    elif key == "cursor":
        path = home / ".cursor" / "mcp.json"
        path.parent.mkdir(parents=True, exist_ok=True)
    elif key == "gemini":
        path = home / ".gemini" / "settings.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps({"theme": "GitHub"}, indent=2))
    elif key == "opencode":
        path = home / ".opencode" / "config.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("{}\n")
    elif key == "droid":
        path = home / ".factory" / "mcp.json"
        path.parent.mkdir(parents=True, exist_ok=True)
    else:
        raise ValueError(f"unknown agent key: {key}")
    return path


@pytest.fixture
def create_agents(home: Path) -> Callable[..., dict[str, Path]]:
    """Factory: create_agents("claude", "codex") -> {key: config path}."""

    def _create(*keys: str) -> dict[str, Path]:
        return {key: _create_agent(home, key) for key in keys}

    return _create


def write_skill(root: Path, name: str, description: str = "A test skill") -> Path:
    """Create a skill directory with a SKILL.md under root."""
    skill_dir = root / name
    skill_dir.mkdir(parents=True, exist_ok=True)
    (skill_dir / "SKILL.md").write_text(SKILL_MD.format(name=name, description=description))
    return skill_dir


def write_plugin(root: Path, name: str, version: str = "1.0.0") -> Path:
    """Create a plugin directory with a manifest, one command and one skill."""
    plugin_dir = root / name
    (plugin_dir / ".claude-plugin").mkdir(parents=True, exist_ok=True)
    (plugin_dir / ".claude-plugin" / "plugin.json").write_text(json.dumps({
        "name": name,
        "version": version,
        "description": f"{name} plugin",
        "author": {"name": "Test"},
    }))
    (plugin_dir / "commands").mkdir(exist_ok=True)
    (plugin_dir / "commands" / "review.md").write_text("Review the diff.\n")
    write_skill(plugin_dir / "skills", "lint")
    return plugin_dir


@pytest.fixture
def sources(tmp_path: Path) -> Path:
    """Local source tree holding one skill and one plugin."""
    root = tmp_path / "sources"
    write_skill(root, "pdf", "Work with PDF files")
    write_plugin(root, "reviewer")
    return root


@pytest.fixture
def catalog(sources: Path) -> Catalog:
    return Catalog(
        skills=[
            Capability(
                type=CapabilityType.SKILL,
                name="pdf",
                description="Work with PDF files",
                source=str(sources / "pdf"),
            ),
        ],
        plugins=[
            Capability(
                type=CapabilityType.PLUGIN,
                name="reviewer",
                description="Code review plugin",
                source=str(sources / "reviewer"),
                version="1.0.0",
            ),
        ],
    )


@pytest.fixture
def registry(settings: Settings) -> AgentRegistry:
    return AgentRegistry.from_settings(settings)


@pytest.fixture
def manager(registry: AgentRegistry, catalog: Catalog, settings: Settings) -> CapabilityManager:
    return CapabilityManager(registry, catalog, settings)


@pytest.fixture
def make_skill() -> Callable[..., Path]:
    return write_skill


@pytest.fixture
def make_plugin() -> Callable[..., Path]:
    return write_plugin
