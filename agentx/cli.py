"""
agentx CLI.

Usage:
    agentx agents                          # Detected agents and config paths
    agentx matrix mcp [--json]             # Status matrix for a capability type
    agentx install NAME                    # Install for every applicable agent
    agentx install NAME --agent claude     # Install for one agent
    agentx install NAME --type skill --source https://github.com/org/repo#name
    agentx remove NAME --agent codex       # Remove from one agent
    agentx list claude [--type skill]      # Entries recorded in an agent's store
    agentx version                         # Show version
    agentx config show                     # Show current config
    agentx config set KEY VALUE            # Set a config value
    agentx config get KEY                  # Get a config value
    agentx serve [--host H] [--port P]     # Run the HTTP API
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any, Optional

from agentx import __version__
from agentx.config import (
    CONFIG_KEYS,
    ENV_PREFIX,
    FLOAT_KEYS,
    INT_KEYS,
    _load_yaml_config,
    get_config_path,
    get_settings,
    save_yaml_config,
)
from agentx.core.manager import CapabilityManager
from agentx.lib.logger import setup_logging
from agentx.lib.typed_errors import AgentxError, to_typed_error
from agentx.models import BulkResult, OutcomeKind

TYPE_CHOICES = ["mcp", "skill", "plugin"]


# --- Helpers ---


def _fail(error: Exception) -> None:
    """Print a typed error and exit 1."""
    typed = to_typed_error(error)
    print(f"Error: {typed.title}: {typed.message}", file=sys.stderr)
    for detail in typed.details or []:
        print(f"  - {detail}", file=sys.stderr)
    sys.exit(1)


def _run(coro) -> Any:
    try:
        return asyncio.run(coro)
    except AgentxError as e:
        _fail(e)


async def _manager() -> CapabilityManager:
    return await CapabilityManager.create(get_settings())


def _print_bulk(result: BulkResult) -> None:
    for outcome in result.outcomes:
        if outcome.outcome == OutcomeKind.SUCCEEDED:
            print(f"  ✓ {outcome.agent}")
        elif outcome.outcome == OutcomeKind.FAILED:
            print(f"  ✗ {outcome.agent}: {outcome.reason}")
        else:
            print(f"  - {outcome.agent} (skipped: {outcome.reason})")


# --- Capability commands ---


def cmd_agents(args: argparse.Namespace) -> None:
    """List known agents and whether they are installed."""

    async def run():
        manager = await _manager()
        return await manager.list_agents()

    agents = _run(run())

    if args.json:
        print(json.dumps([a.model_dump(by_alias=True) for a in agents], indent=2))
        return

    for agent in agents:
        if agent.error:
            state = f"error ({agent.error})"
        else:
            state = "installed" if agent.exists else "not found"
        print(f"  {agent.name:<12} {agent.key:<9} {state:<10} {agent.config_path}")


def cmd_matrix(args: argparse.Namespace) -> None:
    """Print the status matrix for one capability type."""

    async def run():
        manager = await _manager()
        agents = await manager.list_agents()
        return agents, await manager.get_matrix(args.type)

    agents, rows = _run(run())

    if args.json:
        print(json.dumps([r.model_dump(exclude_none=True) for r in rows], indent=2))
        return

    if not rows:
        print(f"No {args.type} capabilities available.")
        return

    width = max(len(r.name) for r in rows) + 2
    header = "".join(f"{a.key:<14}" for a in agents)
    print(f"{'':<{width}}{header}")
    for row in rows:
        cells = "".join(f"{row.agents[a.name]:<14}" for a in agents)
        print(f"{row.name:<{width}}{cells}")


def cmd_install(args: argparse.Namespace) -> None:
    """Install a capability for one agent, or for all of them."""

    async def run():
        manager = await _manager()
        if args.agent:
            return await manager.install(args.agent, args.name, args.source, args.type)
        return await manager.install_for_all(args.name, args.source, args.type)

    result = _run(run())

    if isinstance(result, BulkResult):
        print(f"Installed {result.type} '{result.capability}':")
        _print_bulk(result)
        return
    print(f"Installed {result.value} '{args.name}' for {args.agent}")


def cmd_remove(args: argparse.Namespace) -> None:
    """Remove a capability from one agent."""

    async def run():
        manager = await _manager()
        return await manager.remove(args.agent, args.name, args.type)

    resolved = _run(run())
    print(f"Removed {resolved.value} '{args.name}' from {args.agent}")


def cmd_list(args: argparse.Namespace) -> None:
    """List entries recorded in an agent's store."""

    async def run():
        manager = await _manager()
        return await manager.list_entries(args.agent, args.type)

    entries = _run(run())

    if args.json:
        print(json.dumps(entries, indent=2, default=str))
        return

    if not entries:
        print(f"No {args.type} entries for {args.agent}.")
        return
    for name, entry in entries.items():
        description = entry.get("description", "") if isinstance(entry, dict) else ""
        print(f"  {name}" + (f" - {description}" if description else ""))


def cmd_version(args: argparse.Namespace) -> None:
    print(f"agentx {__version__}")


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP API in the foreground."""
    import uvicorn

    from agentx.server import app

    settings = get_settings()
    uvicorn.run(
        app,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )


# --- Config commands ---


def cmd_config(args: argparse.Namespace) -> None:
    """Config management: show, set, get."""
    action = getattr(args, "action", None)

    if action == "show":
        _config_show()
    elif action == "set":
        _config_set(args.key, args.value)
    elif action == "get":
        _config_get(args.key)
    else:
        print("Usage: agentx config {show|set|get}")


def _config_show() -> None:
    """Show config.yaml values, noting env overrides."""
    data_dir = get_settings().agentx_dir
    config = _load_yaml_config(data_dir)

    print(f"\nConfig: {get_config_path(data_dir)}")
    print("-" * 40)

    if not config:
        print("  (empty, using defaults)")
        return

    for key, value in config.items():
        env_key = f"{ENV_PREFIX}{key.upper()}"
        override = f" (overridden by env: {env_key})" if os.environ.get(env_key) else ""
        print(f"  {key}: {value}{override}")


def _config_set(key: str, value: str) -> None:
    """Set a config value."""
    if key not in CONFIG_KEYS:
        print(f"Unknown key: {key}")
        print(f"Valid keys: {', '.join(sorted(CONFIG_KEYS))}")
        sys.exit(1)

    parsed: Any = value
    if key in INT_KEYS:
        try:
            parsed = int(value)
        except ValueError:
            print(f"Error: {key} must be an integer, got '{value}'")
            sys.exit(1)
    elif key in FLOAT_KEYS:
        try:
            parsed = float(value)
        except ValueError:
            print(f"Error: {key} must be a number, got '{value}'")
            sys.exit(1)

    data_dir = get_settings().agentx_dir
    config = _load_yaml_config(data_dir)
    config[key] = parsed
    save_yaml_config(data_dir, config)
    print(f"Set {key} = {parsed}")


def _config_get(key: str) -> None:
    """Get a single config value."""
    env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
    if env_val:
        print(env_val)
        return

    config = _load_yaml_config(get_settings().agentx_dir)
    if key in config:
        print(config[key])
    else:
        print(f"Key '{key}' not set in config.yaml")
        sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="agentx",
        description="agentx: manage MCP servers, skills and plugins across AI coding agents",
    )
    parser.add_argument("--log-level", help="Override log level (DEBUG, INFO, ...)")
    subparsers = parser.add_subparsers(dest="command")

    # agents
    agents_parser = subparsers.add_parser("agents", help="List detected agents")
    agents_parser.add_argument("--json", action="store_true", help="Output JSON")

    # matrix
    matrix_parser = subparsers.add_parser("matrix", help="Show the status matrix")
    matrix_parser.add_argument("type", choices=TYPE_CHOICES, help="Capability type")
    matrix_parser.add_argument("--json", action="store_true", help="Output JSON")

    # install
    install_parser = subparsers.add_parser("install", help="Install a capability")
    install_parser.add_argument("name", help="Capability name")
    install_parser.add_argument(
        "--agent", "-a",
        help="Agent to install for (default: every applicable agent)",
    )
    install_parser.add_argument("--type", "-t", choices=TYPE_CHOICES, help="Capability type")
    install_parser.add_argument("--source", "-s", help="Skill or plugin source (path or git URL)")

    # remove
    remove_parser = subparsers.add_parser("remove", help="Remove a capability")
    remove_parser.add_argument("name", help="Capability name")
    remove_parser.add_argument("--agent", "-a", required=True, help="Agent to remove from")
    remove_parser.add_argument("--type", "-t", choices=TYPE_CHOICES, help="Capability type")

    # list
    list_parser = subparsers.add_parser("list", help="List an agent's installed entries")
    list_parser.add_argument("agent", help="Agent name")
    list_parser.add_argument(
        "--type", "-t", choices=TYPE_CHOICES, default="mcp",
        help="Capability type (default: mcp)",
    )
    list_parser.add_argument("--json", action="store_true", help="Output JSON")

    # version
    subparsers.add_parser("version", help="Show version")

    # config subcommand
    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_sub = config_parser.add_subparsers(dest="action")
    config_sub.add_parser("show", help="Show current config")
    config_set_parser = config_sub.add_parser("set", help="Set a config value")
    config_set_parser.add_argument("key", help="Config key")
    config_set_parser.add_argument("value", help="Config value")
    config_get_parser = config_sub.add_parser("get", help="Get a config value")
    config_get_parser.add_argument("key", help="Config key")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, help="Port")

    args = parser.parse_args(argv)

    setup_logging(level=args.log_level)

    if args.command == "agents":
        cmd_agents(args)
    elif args.command == "matrix":
        cmd_matrix(args)
    elif args.command == "install":
        cmd_install(args)
    elif args.command == "remove":
        cmd_remove(args)
    elif args.command == "list":
        cmd_list(args)
    elif args.command == "version":
        cmd_version(args)
    elif args.command == "config":
        cmd_config(args)
    elif args.command == "serve":
        cmd_serve(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
