"""
MCP server entries inside an agent's configuration document.

Most agents keep their servers as a map keyed by server name:

    ~/.claude.json           {"mcpServers": {"context7": {...}}, ...}
    ~/.codex/config.toml     [mcp_servers.context7]
    ~/.gemini/settings.json  {"mcpServers": {...}} + extension-provided servers

An entry is installed when the map holds a table/object under that name.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Optional

import tomlkit

from agentx.core.stores.documents import JSON, TOML, JsonCodec, TomlCodec, read_document, write_document
from agentx.lib.typed_errors import ConfigUnreadable, NotApplicable

logger = logging.getLogger(__name__)


def _plain(value: Any) -> Any:
    """Strip tomlkit wrappers so values compare and serialize like plain data."""
    unwrap = getattr(value, "unwrap", None)
    if callable(unwrap):
        return unwrap()
    return value


class McpMapStore:
    """Server map under `servers_key` in a JSON or TOML document."""

    codec: JsonCodec | TomlCodec = JSON

    def __init__(
        self,
        path: Path,
        servers_key: str = "mcpServers",
        entry_defaults: Optional[dict[str, Any]] = None,
    ):
        self.path = path
        self.servers_key = servers_key
        self.entry_defaults = entry_defaults or {}

    @property
    def location(self) -> Path:
        return self.path

    def prepare(self, config: dict[str, Any]) -> dict[str, Any]:
        """Shape a catalog server config into this agent's entry format."""
        entry = dict(self.entry_defaults)
        entry.update(copy.deepcopy(config))
        return entry

    def _servers(self, data: dict[str, Any], create: bool = False) -> Optional[dict[str, Any]]:
        servers = data.get(self.servers_key)
        if servers is None:
            if not create:
                return None
            servers = self._new_map()
            data[self.servers_key] = servers
            return data[self.servers_key]
        if not isinstance(servers, dict):
            raise ConfigUnreadable(
                f"'{self.servers_key}' in {self.path} is {type(servers).__name__}, not an object"
            )
        return servers

    def _new_map(self) -> dict[str, Any]:
        return {}

    def read(self, name: str) -> bool:
        servers = self._servers(read_document(self.path, self.codec))
        if not servers:
            return False
        return isinstance(servers.get(name), dict)

    def list(self) -> dict[str, Any]:
        servers = self._servers(read_document(self.path, self.codec)) or {}
        return {
            name: _plain(config)
            for name, config in servers.items()
            if isinstance(config, dict)
        }

    def write(self, name: str, payload: dict[str, Any]) -> None:
        entry = self.prepare(payload)
        data = read_document(self.path, self.codec)
        servers = self._servers(data, create=True)

        if name in servers and _plain(servers[name]) == entry:
            logger.debug(f"MCP server '{name}' already up to date in {self.path}")
            return

        servers[name] = entry
        write_document(self.path, data, self.codec)
        logger.info(f"Added MCP server '{name}' to {self.path}")

    def remove(self, name: str) -> None:
        if not self.path.exists():
            return
        data = read_document(self.path, self.codec)
        servers = self._servers(data)
        if not servers or name not in servers:
            return

        del servers[name]
        write_document(self.path, data, self.codec)
        logger.info(f"Removed MCP server '{name}' from {self.path}")


class JsonMcpStore(McpMapStore):
    """`mcpServers` object in a JSON settings file."""

    codec = JSON


class TomlMcpStore(McpMapStore):
    """`[mcp_servers.<name>]` tables in a TOML config (Codex)."""

    codec = TOML

    def __init__(self, path: Path, servers_key: str = "mcp_servers", **kwargs: Any):
        super().__init__(path, servers_key=servers_key, **kwargs)

    def prepare(self, config: dict[str, Any]) -> dict[str, Any]:
        entry = super().prepare(config)
        # Codex requires args to be strings
        if isinstance(entry.get("args"), list):
            entry["args"] = [a if isinstance(a, str) else str(a) for a in entry["args"]]
        return entry

    def _new_map(self) -> dict[str, Any]:
        return tomlkit.table(is_super_table=True)


class GeminiMcpStore(JsonMcpStore):
    """Gemini cli settings.json plus servers contributed by enabled extensions.

    Extension servers count as installed but belong to the extension, so
    they cannot be removed from here.
    """

    @property
    def extensions_dir(self) -> Path:
        return self.path.parent / "extensions"

    def _enabled_extensions(self) -> Optional[set[str]]:
        path = self.extensions_dir / "extension-enablement.json"
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(raw, dict):
            return None
        return set(raw.keys())

    def extension_servers(self) -> dict[str, dict[str, Any]]:
        """MCP servers declared by enabled Gemini extensions."""
        ext_dir = self.extensions_dir
        try:
            entries = sorted(ext_dir.iterdir())
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise ConfigUnreadable(f"Cannot list {ext_dir}: {e}") from e

        enabled = self._enabled_extensions()
        result: dict[str, dict[str, Any]] = {}
        for entry in entries:
            if not entry.is_dir():
                continue
            if enabled is not None and entry.name not in enabled:
                continue
            manifest = entry / "gemini-extension.json"
            try:
                data = json.loads(manifest.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.debug(f"Skipping Gemini extension {entry.name}: {e}")
                continue
            servers = data.get("mcpServers") if isinstance(data, dict) else None
            if not isinstance(servers, dict):
                continue
            for name, config in servers.items():
                if isinstance(config, dict):
                    result.setdefault(name, config)
        return result

    def read(self, name: str) -> bool:
        if super().read(name):
            return True
        return name in self.extension_servers()

    def list(self) -> dict[str, Any]:
        result = super().list()
        for name, config in self.extension_servers().items():
            result.setdefault(name, config)
        return result

    def remove(self, name: str) -> None:
        servers = self._servers(read_document(self.path, self.codec))
        if (not servers or name not in servers) and name in self.extension_servers():
            raise NotApplicable(f"MCP server '{name}' is managed by a Gemini extension")
        super().remove(name)
