"""
Whole-document read/write for agent configuration files.

Agents keep their settings in JSON (Claude Code, Cursor, Gemini cli,
opencode, Droid) or TOML (Codex). Mutations always load the full document,
change one entry and serialize the full document back through an atomic
write. TOML goes through tomlkit so comments and layout of untouched tables
survive the round trip.
"""

import json
import logging
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError

from agentx.lib.atomic import atomic_write_text
from agentx.lib.typed_errors import ConfigUnreadable, WriteFailed

logger = logging.getLogger(__name__)


class JsonCodec:
    """JSON documents, written with 2-space indentation."""

    name = "JSON"
    errors: tuple[type[Exception], ...] = (json.JSONDecodeError,)

    def empty(self) -> dict[str, Any]:
        return {}

    def loads(self, text: str) -> Any:
        return json.loads(text)

    def dumps(self, data: dict[str, Any]) -> str:
        return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class TomlCodec:
    """TOML documents, round-tripped with tomlkit."""

    name = "TOML"
    errors: tuple[type[Exception], ...] = (TOMLKitError, ValueError)

    def empty(self) -> dict[str, Any]:
        return tomlkit.document()

    def loads(self, text: str) -> Any:
        return tomlkit.parse(text)

    def dumps(self, data: dict[str, Any]) -> str:
        return tomlkit.dumps(data)


JSON = JsonCodec()
TOML = TomlCodec()


def read_document(path: Path, codec: JsonCodec | TomlCodec = JSON) -> dict[str, Any]:
    """Load a whole configuration document.

    A missing or whitespace-only file is an empty document. Anything that
    exists but cannot be read or parsed into a mapping raises ConfigUnreadable.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return codec.empty()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigUnreadable(f"Cannot read {path}: {e}") from e

    if not text.strip():
        return codec.empty()

    try:
        data = codec.loads(text)
    except codec.errors as e:
        raise ConfigUnreadable(f"Invalid {codec.name} in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigUnreadable(
            f"Invalid {codec.name} in {path}: top level is {type(data).__name__}, not an object"
        )
    return data


def write_document(
    path: Path, data: dict[str, Any], codec: JsonCodec | TomlCodec = JSON
) -> None:
    """Serialize a whole document and atomically replace `path` with it."""
    try:
        content = codec.dumps(data)
    except (TypeError, ValueError, TOMLKitError) as e:
        raise WriteFailed(f"Cannot serialize {codec.name} for {path}: {e}") from e

    try:
        atomic_write_text(path, content)
    except OSError as e:
        raise WriteFailed(f"Failed to write {path}: {e}") from e

    logger.debug(f"Wrote {path}")
