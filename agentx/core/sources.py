"""
Source references for skills and plugins.

A source is one of:

    /path/to/skill                                   local directory or .md file
    https://github.com/org/repo                      git repository
    https://github.com/org/repo#skill-name           repository + entry name
    https://github.com/org/repo/tree/main/path/x     GitHub tree URL
    git@github.com:org/repo.git#skill-name           SSH

Git sources are shallow-cloned into a temporary directory that lives for the
duration of the materialize() context.
"""

import asyncio
import logging
import shutil
import tempfile
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import urlparse

from agentx.core.stores.plugins import is_plugin_dir
from agentx.core.stores.skills import is_command_file, is_skill_dir
from agentx.lib.typed_errors import SourceUnavailable
from agentx.models import CapabilityType

logger = logging.getLogger(__name__)


class SourceKind(str, Enum):
    LOCAL = "local"
    GIT = "git"


@dataclass(frozen=True)
class SourceInfo:
    kind: SourceKind
    path: Optional[Path] = None
    repo_url: Optional[str] = None
    fragment: Optional[str] = None
    subpath: Optional[str] = None

    @property
    def is_git(self) -> bool:
        return self.kind == SourceKind.GIT


def _parse_github_tree_url(source: str) -> Optional[tuple[str, str]]:
    """(repo URL, path inside repo) for github.com/org/repo/tree/<branch>/<path> URLs."""
    if "github.com" not in source:
        return None
    parsed = urlparse(source)
    parts = parsed.path.strip("/").split("/")
    if len(parts) < 4 or parts[2] != "tree":
        return None
    org, repo = parts[0], parts[1]
    subpath = "/".join(parts[4:])
    return f"https://github.com/{org}/{repo}", subpath


def parse_source(source: str) -> SourceInfo:
    """Classify a source reference. Raises SourceUnavailable if unrecognized."""
    source = source.strip()
    if not source:
        raise SourceUnavailable("Empty source reference")

    local = Path(source).expanduser()
    if local.exists():
        return SourceInfo(kind=SourceKind.LOCAL, path=local.resolve())

    tree = _parse_github_tree_url(source)
    if tree is not None:
        repo_url, subpath = tree
        return SourceInfo(kind=SourceKind.GIT, repo_url=repo_url, subpath=subpath or None)

    fragment = None
    base = source
    idx = source.rfind("#")
    if idx > 0 and "/" not in source[idx + 1:]:
        fragment = source[idx + 1:] or None
        base = source[:idx]

    scheme = urlparse(base).scheme
    if scheme in ("http", "https") or base.startswith("git@"):
        return SourceInfo(kind=SourceKind.GIT, repo_url=base, fragment=fragment)

    raise SourceUnavailable(f"Cannot determine source type for: {source}")


async def git_clone(repo_url: str, dest: Path, timeout: float) -> None:
    """Shallow-clone `repo_url` into `dest`. Raises SourceUnavailable on failure."""
    logger.info(f"Cloning {repo_url}")
    try:
        proc = await asyncio.create_subprocess_exec(
            "git", "clone", "--depth", "1", "--quiet", repo_url, str(dest),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise SourceUnavailable("git is not installed or not on PATH") from e

    try:
        _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise SourceUnavailable(f"git clone of {repo_url} timed out after {timeout:g}s")
    except asyncio.CancelledError:
        proc.kill()
        await proc.wait()
        raise

    if proc.returncode != 0:
        error_msg = stderr.decode(errors="replace").strip() if stderr else "Unknown error"
        raise SourceUnavailable(f"git clone failed for {repo_url}: {error_msg}")


def find_skill_in_repo(repo: Path, name: Optional[str]) -> Optional[Path]:
    """Skill directory or command file inside a checked-out repository."""
    if name:
        for candidate in (
            repo / name,
            repo / "skills" / name,
            repo / ".claude" / "skills" / name,
        ):
            if is_skill_dir(candidate):
                return candidate
        for candidate in (
            repo / f"{name}.md",
            repo / "commands" / f"{name}.md",
            repo / ".claude" / "commands" / f"{name}.md",
        ):
            if is_command_file(candidate):
                return candidate
        return None

    if is_skill_dir(repo):
        return repo
    skills_dir = repo / "skills"
    if skills_dir.is_dir():
        entries = list(skills_dir.iterdir())
        if len(entries) == 1 and is_skill_dir(entries[0]):
            return entries[0]
    return None


def find_plugin_in_repo(repo: Path, name: Optional[str]) -> Optional[Path]:
    """Plugin directory inside a checked-out repository."""
    if is_plugin_dir(repo):
        return repo
    if name:
        for candidate in (repo / name, repo / "plugins" / name):
            if is_plugin_dir(candidate):
                return candidate
    return None


def locate_payload(
    root: Path,
    capability_type: CapabilityType,
    info: SourceInfo,
    name: Optional[str],
) -> Path:
    """Find the skill or plugin content inside a materialized source."""
    if info.subpath:
        target = root / info.subpath
        if capability_type == CapabilityType.PLUGIN:
            if is_plugin_dir(target):
                return target
        else:
            if is_skill_dir(target):
                return target
            command = target.with_name(f"{target.name}.md")
            if is_command_file(command):
                return command
        raise SourceUnavailable(f"No {capability_type.value} found at path: {info.subpath}")

    if capability_type == CapabilityType.PLUGIN:
        found = find_plugin_in_repo(root, info.fragment or name)
        if found is None:
            raise SourceUnavailable(
                f"No plugin found in {info.repo_url or root} "
                "(missing .claude-plugin/plugin.json)"
            )
        return found

    if is_command_file(root):
        return root
    found = find_skill_in_repo(root, info.fragment)
    if found is None and not info.fragment and name:
        found = find_skill_in_repo(root, name)
    if found is None:
        where = info.repo_url or root
        target = info.fragment or name
        if target:
            raise SourceUnavailable(f"Skill '{target}' not found in {where}")
        raise SourceUnavailable(f"No skill found in {where}; use URL#skill-name to specify")
    return found


@asynccontextmanager
async def materialize(
    source: str,
    capability_type: CapabilityType,
    name: Optional[str] = None,
    git_timeout: float = 60.0,
) -> AsyncIterator[Path]:
    """Yield a local path holding the skill or plugin content for `source`.

    Git sources are cloned to a temporary directory removed on exit.
    """
    info = parse_source(source)

    if not info.is_git:
        yield locate_payload(info.path, capability_type, info, name)
        return

    tmp_dir = Path(tempfile.mkdtemp(prefix=f"agentx-{capability_type.value}-"))
    try:
        clone_dir = tmp_dir / "repo"
        await git_clone(info.repo_url, clone_dir, git_timeout)
        yield locate_payload(clone_dir, capability_type, info, name)
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)
