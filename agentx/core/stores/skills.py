"""
Skill installations on disk.

Skills can be:
- Directories with SKILL.md: <skills_dir>/<name>/SKILL.md
- Single .md command files: <commands_dir>/<name>.md (Claude Code only)

The frontmatter `name` field may differ from the directory name for skills
installed by other tools, so lookups fall back to a frontmatter scan.
"""

import logging
import shutil
from pathlib import Path
from typing import Any, Optional

import frontmatter
import yaml

from agentx.lib.atomic import atomic_replace_dir, atomic_write_text, remove_path
from agentx.lib.typed_errors import ConfigUnreadable, NotApplicable, SourceUnavailable, WriteFailed

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"


def parse_skill_metadata(path: Path) -> dict[str, Any]:
    """Parse YAML frontmatter from a skill or command file.

    Expected format:
    ---
    name: my-skill
    description: What it does
    allowed-tools: [Read, Write, Bash]
    ---
    """
    try:
        post = frontmatter.load(str(path))
    except (OSError, UnicodeDecodeError, yaml.YAMLError, ValueError, TypeError, AttributeError) as e:
        raise ConfigUnreadable(f"Invalid skill file {path}: {e}") from e
    return {str(key).replace("-", "_"): value for key, value in post.metadata.items()}


def is_skill_dir(path: Path) -> bool:
    return path.is_dir() and (path / SKILL_FILE).is_file()


def is_command_file(path: Path) -> bool:
    return path.is_file() and path.suffix == ".md"


class SkillDirStore:
    """Skill directories (and optionally command files) for one agent."""

    def __init__(self, skills_dir: Path, commands_dir: Optional[Path] = None):
        self.skills_dir = skills_dir
        self.commands_dir = commands_dir

    @property
    def location(self) -> Path:
        return self.skills_dir

    def _iter_installed(self) -> list[tuple[str, Path, Path]]:
        """(dir-or-file name, installed path, metadata file) for every skill on disk."""
        found: list[tuple[str, Path, Path]] = []
        dirs = [(self.skills_dir, False)]
        if self.commands_dir is not None:
            dirs.append((self.commands_dir, True))

        for base, commands in dirs:
            try:
                entries = sorted(base.iterdir())
            except (FileNotFoundError, NotADirectoryError):
                continue
            except OSError as e:
                raise ConfigUnreadable(f"Cannot list {base}: {e}") from e

            for entry in entries:
                if commands and is_command_file(entry):
                    found.append((entry.stem, entry, entry))
                elif not commands and is_skill_dir(entry):
                    found.append((entry.name, entry, entry / SKILL_FILE))
        return found

    def _locate(self, name: str) -> Optional[Path]:
        """Installed path for `name`, or None.

        A direct hit whose SKILL.md is malformed raises ConfigUnreadable.
        """
        direct = self.skills_dir / name
        if is_skill_dir(direct):
            parse_skill_metadata(direct / SKILL_FILE)
            return direct
        if self.commands_dir is not None:
            command = self.commands_dir / f"{name}.md"
            if is_command_file(command):
                parse_skill_metadata(command)
                return command

        for _, path, meta_file in self._iter_installed():
            try:
                meta = parse_skill_metadata(meta_file)
            except ConfigUnreadable:
                continue
            if meta.get("name") == name:
                return path
        return None

    def read(self, name: str) -> bool:
        return self._locate(name) is not None

    def list(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for entry_name, path, meta_file in self._iter_installed():
            try:
                meta = parse_skill_metadata(meta_file)
            except ConfigUnreadable as e:
                logger.debug(f"Skipping unreadable skill: {e}")
                continue
            name = meta.get("name") or entry_name
            result[str(name)] = {
                "path": str(path),
                "type": "command" if path.is_file() else "skill",
                "description": meta.get("description", ""),
            }
        return result

    def write(self, name: str, payload: Path) -> None:
        """Install the materialized skill at `payload` under `name`.

        An existing skill with a malformed SKILL.md is left for the user to
        repair rather than overwritten.
        """
        self._locate(name)

        if is_skill_dir(payload):
            target = self.skills_dir / name

            def populate(staging: Path) -> None:
                shutil.copytree(
                    payload, staging, dirs_exist_ok=True,
                    ignore=shutil.ignore_patterns(".git"),
                )

            try:
                atomic_replace_dir(target, populate)
            except OSError as e:
                raise WriteFailed(f"Failed to install skill '{name}' to {target}: {e}") from e
            logger.info(f"Installed skill '{name}' to {target}")
            return

        if is_command_file(payload):
            if self.commands_dir is None:
                raise NotApplicable("Command files are not supported for this agent")
            target = self.commands_dir / f"{name}.md"
            try:
                atomic_write_text(target, payload.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                raise WriteFailed(f"Failed to install command '{name}' to {target}: {e}") from e
            logger.info(f"Installed command '{name}' to {target}")
            return

        raise SourceUnavailable(f"No SKILL.md or command file at {payload}")

    def remove(self, name: str) -> None:
        path = self._locate(name)
        if path is None:
            return
        try:
            remove_path(path)
        except OSError as e:
            raise WriteFailed(f"Failed to remove skill '{name}' at {path}: {e}") from e
        logger.info(f"Removed skill '{name}' from {path.parent}")
