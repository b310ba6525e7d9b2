"""
Configuration management for agentx.

Precedence: env vars > .env file > config.yaml > defaults

Config file: ~/.agentx/config.yaml
Env vars use the AGENTX_ prefix (AGENTX_LOG_LEVEL, AGENTX_HOME_DIR, ...).
CODEX_HOME is honoured the same way the Codex CLI honours it.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "AGENTX_"

# Known config keys that can be set via `agentx config set`
CONFIG_KEYS = {
    "home_dir", "codex_home", "data_dir", "skills_registry_url",
    "plugins_registry_url", "registry_timeout", "git_timeout",
    "max_workers", "log_level", "log_format", "host", "port",
}

INT_KEYS = {"port", "max_workers"}
FLOAT_KEYS = {"registry_timeout", "git_timeout"}

DEFAULT_SKILLS_REGISTRY_URL = (
    "https://raw.githubusercontent.com/agentsdance/agentskills/master/skills.json"
)
DEFAULT_PLUGINS_REGISTRY_URL = (
    "https://raw.githubusercontent.com/agentsdance/agentx/master/registry/plugins.json"
)


def _resolve_data_dir() -> Path:
    """Resolve the agentx data directory from env or default, before Settings init."""
    raw = os.environ.get(f"{ENV_PREFIX}DATA_DIR", "")
    if raw:
        return Path(raw).expanduser()
    home = os.environ.get(f"{ENV_PREFIX}HOME_DIR", "")
    base = Path(home).expanduser() if home else Path.home()
    return base / ".agentx"


def _load_yaml_config(data_dir: Path) -> dict[str, Any]:
    """Load config.yaml from the data directory."""
    config_file = data_dir / "config.yaml"
    if not config_file.exists():
        return {}
    try:
        with open(config_file) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            logger.warning(f"config.yaml is not a dict, ignoring: {config_file}")
            return {}
        return data
    except Exception as e:
        logger.warning(f"Error loading config.yaml: {e}")
        return {}


def save_yaml_config(data_dir: Path, data: dict[str, Any]) -> Path:
    """Write config values to <data_dir>/config.yaml."""
    config_file = data_dir / "config.yaml"
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w") as f:
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    return config_file


def get_config_path(data_dir: Path) -> Path:
    """Get the config.yaml path for a data directory."""
    return data_dir / "config.yaml"


class Settings(BaseSettings):
    """agentx configuration. Precedence: env vars > .env > config.yaml > defaults."""

    # Filesystem roots
    home_dir: Path = Field(
        default_factory=Path.home,
        description="Home directory used to locate agent configuration stores",
    )
    codex_home: Optional[Path] = Field(
        default=None,
        description="Codex home directory (defaults to $CODEX_HOME or ~/.codex)",
    )
    data_dir: Optional[Path] = Field(
        default=None,
        description="agentx data directory (defaults to ~/.agentx)",
    )

    # Capability registries
    skills_registry_url: str = Field(
        default=DEFAULT_SKILLS_REGISTRY_URL,
        description="URL of the skills registry document",
    )
    plugins_registry_url: str = Field(
        default=DEFAULT_PLUGINS_REGISTRY_URL,
        description="URL of the plugins registry document",
    )
    registry_timeout: float = Field(default=10.0, description="Registry fetch timeout (s)")

    # Installation
    git_timeout: float = Field(default=60.0, description="git clone timeout (s)")
    max_workers: int = Field(
        default=4,
        ge=1,
        description="Maximum agents processed concurrently by bulk operations",
    )

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    # HTTP API
    host: str = Field(default="127.0.0.1", description="API bind address")
    port: int = Field(default=3737, description="API port")

    model_config = {
        "env_prefix": ENV_PREFIX,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="before")
    @classmethod
    def _inject_yaml_config(cls, data: Any) -> Any:
        """Inject config.yaml values as fallbacks below env vars and .env."""
        if not isinstance(data, dict):
            data = {}

        yaml_config = _load_yaml_config(_resolve_data_dir())

        for key, value in yaml_config.items():
            if key not in data or data[key] is None:
                env_val = os.environ.get(f"{ENV_PREFIX}{key.upper()}")
                if env_val is None:
                    data[key] = value

        if not data.get("codex_home"):
            codex_home = os.environ.get("CODEX_HOME")
            if codex_home:
                data["codex_home"] = codex_home

        return data

    @property
    def codex_dir(self) -> Path:
        """Codex home, defaulting to ~/.codex under the configured home."""
        if self.codex_home:
            return Path(self.codex_home).expanduser()
        return self.home_dir / ".codex"

    @property
    def agentx_dir(self) -> Path:
        """agentx data directory, defaulting to ~/.agentx under the configured home."""
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return self.home_dir / ".agentx"

    @property
    def cache_dir(self) -> Path:
        """Registry cache directory."""
        return self.agentx_dir / "cache"

    @property
    def plugins_dir(self) -> Path:
        """Root of per-agent plugin installations."""
        return self.agentx_dir / "plugins"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
