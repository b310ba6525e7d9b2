"""
Remote skill and plugin registries.

Registry documents are small JSON files ({"skills": [...]} or
{"plugins": [...]}). Resolution order: network, then the last good copy
cached under ~/.agentx/cache, then a bundled registry/<kind>.json.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from agentx.config import Settings, get_settings
from agentx.lib.atomic import atomic_write_text

logger = logging.getLogger(__name__)

REGISTRY_KINDS = ("skills", "plugins")

BUNDLED_REGISTRY_DIR = Path(__file__).resolve().parent.parent / "registry"


def _registry_url(kind: str, settings: Settings) -> str:
    if kind == "skills":
        return settings.skills_registry_url
    return settings.plugins_registry_url


def cache_path(kind: str, settings: Optional[Settings] = None) -> Path:
    settings = settings or get_settings()
    return settings.cache_dir / f"{kind}-registry.json"


def parse_registry(kind: str, raw: Any) -> list[dict[str, Any]]:
    """Extract the entry list from a registry document.

    Raises ValueError when the document does not have the expected shape.
    """
    if not isinstance(raw, dict):
        raise ValueError("registry document is not an object")
    entries = raw.get(kind)
    if not isinstance(entries, list):
        raise ValueError(f"registry document has no '{kind}' list")
    return [e for e in entries if isinstance(e, dict) and e.get("name")]


def _read_registry_file(kind: str, path: Path) -> Optional[list[dict[str, Any]]]:
    try:
        entries = parse_registry(kind, json.loads(path.read_text(encoding="utf-8")))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.debug(f"Ignoring registry file {path}: {e}")
        return None
    return entries or None


async def fetch_registry(
    kind: str,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> list[dict[str, Any]]:
    """Fetch a registry from the network and cache the raw document.

    Raises httpx.HTTPError or ValueError on failure.
    """
    settings = settings or get_settings()
    url = _registry_url(kind, settings)

    if client is None:
        async with httpx.AsyncClient(timeout=settings.registry_timeout) as own_client:
            response = await own_client.get(url)
    else:
        response = await client.get(url)
    response.raise_for_status()

    entries = parse_registry(kind, response.json())

    try:
        atomic_write_text(cache_path(kind, settings), response.text)
    except OSError as e:
        logger.debug(f"Could not cache {kind} registry: {e}")

    return entries


def local_registry_paths(kind: str) -> list[Path]:
    """Bundled registry locations, checked in order."""
    filename = f"{kind}.json"
    return [
        Path.cwd() / "registry" / filename,
        BUNDLED_REGISTRY_DIR / filename,
    ]


async def load_registry(
    kind: str,
    settings: Optional[Settings] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> list[dict[str, Any]]:
    """Registry entries with network, cache and bundled fallbacks.

    Never raises for an unreachable registry: the result is an empty list
    and a warning is logged.
    """
    if kind not in REGISTRY_KINDS:
        raise ValueError(f"Unknown registry kind: {kind}")
    settings = settings or get_settings()

    try:
        entries = await fetch_registry(kind, settings, client)
        if entries:
            return entries
        fetch_error: Optional[Exception] = None
    except (httpx.HTTPError, ValueError) as e:
        fetch_error = e
        logger.debug(f"Fetching {kind} registry failed: {e}")

    cached = _read_registry_file(kind, cache_path(kind, settings))
    if cached:
        logger.info(f"Using cached {kind} registry")
        return cached

    for path in local_registry_paths(kind):
        local = _read_registry_file(kind, path)
        if local:
            logger.info(f"Using bundled {kind} registry at {path}")
            return local

    if fetch_error is not None:
        logger.warning(f"{kind.capitalize()} registry unavailable: {fetch_error}")
    return []
