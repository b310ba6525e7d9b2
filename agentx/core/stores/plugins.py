"""
Plugin installations on disk.

Plugins are directories with a manifest at .claude-plugin/plugin.json:

    my-plugin/
    ├── .claude-plugin/plugin.json   # name, version, description, author
    ├── commands/                    # *.md slash commands
    ├── agents/                      # *.md subagents
    ├── skills/                      # <skill>/SKILL.md
    ├── hooks/
    └── .mcp.json                    # mcpServers

Each agent that supports plugins gets its own plugins directory.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Optional

from agentx.lib.atomic import atomic_replace_dir, remove_path
from agentx.lib.typed_errors import ConfigUnreadable, SourceUnavailable, WriteFailed

logger = logging.getLogger(__name__)


def manifest_path(plugin_dir: Path) -> Path:
    return plugin_dir / ".claude-plugin" / "plugin.json"


def is_plugin_dir(path: Path) -> bool:
    return manifest_path(path).is_file()


def read_plugin_manifest(plugin_dir: Path) -> dict[str, Any]:
    """Read and validate a plugin manifest. Raises ConfigUnreadable if malformed."""
    path = manifest_path(plugin_dir)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ConfigUnreadable(f"Invalid plugin manifest {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigUnreadable(f"Invalid plugin manifest {path}: not an object")
    return data


def scan_components(plugin_dir: Path) -> dict[str, list[str]]:
    """Scan a plugin directory for what it provides."""
    components: dict[str, list[str]] = {
        "commands": [], "agents": [], "skills": [], "hooks": [], "mcp_servers": [],
    }

    for kind in ("commands", "agents"):
        d = plugin_dir / kind
        if d.is_dir():
            components[kind] = sorted(f.stem for f in d.iterdir() if f.is_file() and f.suffix == ".md")

    skills_dir = plugin_dir / "skills"
    if skills_dir.is_dir():
        components["skills"] = sorted(
            d.name for d in skills_dir.iterdir() if (d / "SKILL.md").is_file()
        )

    hooks_dir = plugin_dir / "hooks"
    if hooks_dir.is_dir():
        components["hooks"] = sorted(f.name for f in hooks_dir.iterdir() if f.is_file())

    mcp_json = plugin_dir / ".mcp.json"
    if mcp_json.is_file():
        try:
            data = json.loads(mcp_json.read_text(encoding="utf-8"))
            servers = data.get("mcpServers", {}) if isinstance(data, dict) else {}
            if isinstance(servers, dict):
                components["mcp_servers"] = sorted(servers.keys())
        except (OSError, json.JSONDecodeError):
            pass

    return components


def components_summary(components: dict[str, list[str]]) -> str:
    """Human-readable summary like '2 cmd, 1 skill'."""
    labels = {
        "commands": "cmd", "agents": "agent", "skills": "skill",
        "hooks": "hook", "mcp_servers": "mcp",
    }
    parts = [f"{len(items)} {labels[kind]}" for kind, items in components.items() if items]
    return ", ".join(parts) if parts else "empty"


class PluginDirStore:
    """Plugin directories under one agent's plugins root."""

    def __init__(self, plugins_dir: Path):
        self.plugins_dir = plugins_dir

    @property
    def location(self) -> Path:
        return self.plugins_dir

    def _iter_installed(self) -> list[Path]:
        try:
            entries = sorted(self.plugins_dir.iterdir())
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as e:
            raise ConfigUnreadable(f"Cannot list {self.plugins_dir}: {e}") from e
        return [entry for entry in entries if entry.is_dir() and is_plugin_dir(entry)]

    def _locate(self, name: str) -> Optional[Path]:
        direct = self.plugins_dir / name
        if is_plugin_dir(direct):
            read_plugin_manifest(direct)
            return direct

        # Installed by another tool under a different directory name
        for entry in self._iter_installed():
            try:
                manifest = read_plugin_manifest(entry)
            except ConfigUnreadable:
                continue
            if manifest.get("name") == name:
                return entry
        return None

    def read(self, name: str) -> bool:
        return self._locate(name) is not None

    def list(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for entry in self._iter_installed():
            try:
                manifest = read_plugin_manifest(entry)
            except ConfigUnreadable as e:
                logger.debug(f"Skipping unreadable plugin: {e}")
                continue
            name = manifest.get("name") or entry.name
            result[str(name)] = {
                "path": str(entry),
                "version": manifest.get("version", ""),
                "description": manifest.get("description", ""),
                "components": scan_components(entry),
            }
        return result

    def write(self, name: str, payload: Path) -> None:
        """Install the materialized plugin directory at `payload` under `name`."""
        if not is_plugin_dir(payload):
            raise SourceUnavailable(f"No .claude-plugin/plugin.json at {payload}")
        read_plugin_manifest(payload)
        self._locate(name)

        target = self.plugins_dir / name

        def populate(staging: Path) -> None:
            shutil.copytree(
                payload, staging, dirs_exist_ok=True,
                ignore=shutil.ignore_patterns(".git"),
            )

        try:
            atomic_replace_dir(target, populate)
        except OSError as e:
            raise WriteFailed(f"Failed to install plugin '{name}' to {target}: {e}") from e
        logger.info(f"Installed plugin '{name}' to {target}")

    def remove(self, name: str) -> None:
        path = self._locate(name)
        if path is None:
            return
        try:
            remove_path(path)
        except OSError as e:
            raise WriteFailed(f"Failed to remove plugin '{name}' at {path}: {e}") from e
        logger.info(f"Removed plugin '{name}' from {self.plugins_dir}")
