"""Tests for CLI commands."""

import json
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from agentx import __version__
from agentx.cli import _config_get, _config_set, main


@pytest.fixture
def use_manager(manager):
    """Route every CLI command to the test manager."""
    with patch("agentx.cli._manager", new=AsyncMock(return_value=manager)):
        yield manager


class TestCapabilityCommands:
    def test_version(self, capsys):
        main(["version"])
        assert capsys.readouterr().out.strip() == f"agentx {__version__}"

    def test_agents_json(self, use_manager, create_agents, capsys):
        create_agents("codex")
        main(["agents", "--json"])
        agents = json.loads(capsys.readouterr().out)
        assert [a["key"] for a in agents] == ["claude", "codex", "cursor", "gemini", "opencode", "droid"]
        assert agents[1]["exists"] is True
        assert agents[1]["configPath"].endswith("config.toml")

    def test_agents_table(self, use_manager, create_agents, capsys):
        create_agents("claude")
        main(["agents"])
        out = capsys.readouterr().out
        assert "Claude Code" in out
        assert "installed" in out
        assert "not found" in out

    def test_matrix_json(self, use_manager, create_agents, capsys):
        create_agents("cursor")
        main(["matrix", "mcp", "--json"])
        rows = json.loads(capsys.readouterr().out)
        assert [r["name"] for r in rows] == ["playwright", "context7", "remix-icon"]
        assert rows[0]["agents"]["Cursor"] == "not_installed"
        assert rows[0]["agents"]["Codex"] == "n/a"

    def test_matrix_table(self, use_manager, capsys):
        main(["matrix", "skill"])
        out = capsys.readouterr().out
        assert "pdf" in out
        assert "n/a" in out

    def test_install_for_one_agent(self, use_manager, create_agents, capsys):
        paths = create_agents("claude")
        main(["install", "context7", "--agent", "claude"])
        assert "Installed mcp 'context7' for claude" in capsys.readouterr().out
        assert "context7" in json.loads(paths["claude"].read_text())["mcpServers"]

    def test_install_for_all(self, use_manager, create_agents, capsys):
        create_agents("claude", "opencode")
        main(["install", "playwright"])
        out = capsys.readouterr().out
        assert "✓ Claude Code" in out
        assert "✓ opencode" in out
        assert "- Cursor (skipped: not installed)" in out

    def test_install_for_all_reports_failures(self, use_manager, create_agents, capsys):
        paths = create_agents("claude", "cursor")
        paths["cursor"].write_text("{bad")
        main(["install", "context7"])
        out = capsys.readouterr().out
        assert "✓ Claude Code" in out
        assert "✗ Cursor" in out

    def test_remove(self, use_manager, create_agents, capsys):
        create_agents("claude")
        main(["install", "pdf", "--agent", "claude"])
        main(["remove", "pdf", "--agent", "claude"])
        assert "Removed skill 'pdf' from claude" in capsys.readouterr().out

    def test_list(self, use_manager, create_agents, capsys):
        create_agents("claude")
        main(["list", "claude", "--json"])
        entries = json.loads(capsys.readouterr().out)
        assert "github" in entries


class TestCommandErrors:
    def test_unknown_agent_exits_1(self, use_manager, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["install", "context7", "--agent", "emacs"])
        assert exc_info.value.code == 1
        assert "Unknown Agent" in capsys.readouterr().err

    def test_absent_agent_exits_1(self, use_manager, capsys):
        with pytest.raises(SystemExit):
            main(["remove", "context7", "--agent", "gemini"])
        assert "Not Applicable" in capsys.readouterr().err

    def test_bulk_total_failure_lists_details(self, use_manager, create_agents, capsys):
        paths = create_agents("cursor")
        paths["cursor"].write_text("{bad")
        with pytest.raises(SystemExit):
            main(["install", "context7"])
        err = capsys.readouterr().err
        assert "Install Failed For All Agents" in err
        assert "  - Cursor:" in err

    def test_invalid_type_rejected_by_parser(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["matrix", "themes"])
        assert exc_info.value.code == 2


class TestConfigCommands:
    @pytest.fixture(autouse=True)
    def patched_settings(self, settings):
        with patch("agentx.cli.get_settings", return_value=settings):
            yield settings

    def test_set_and_get(self, patched_settings, capsys):
        _config_set("max_workers", "8")
        _config_get("max_workers")

        out = capsys.readouterr().out
        assert "Set max_workers = 8" in out
        assert out.strip().endswith("8")

        saved = yaml.safe_load((patched_settings.agentx_dir / "config.yaml").read_text())
        assert saved == {"max_workers": 8}

    def test_log_format_key(self, patched_settings):
        _config_set("log_format", "%(levelname)s %(message)s")
        saved = yaml.safe_load((patched_settings.agentx_dir / "config.yaml").read_text())
        assert saved["log_format"] == "%(levelname)s %(message)s"

    def test_float_key(self, patched_settings):
        _config_set("git_timeout", "2.5")
        saved = yaml.safe_load((patched_settings.agentx_dir / "config.yaml").read_text())
        assert saved["git_timeout"] == 2.5

    def test_set_unknown_key(self, capsys):
        with pytest.raises(SystemExit):
            _config_set("colour", "blue")
        assert "Unknown key: colour" in capsys.readouterr().out

    def test_set_bad_integer(self, capsys):
        with pytest.raises(SystemExit):
            _config_set("port", "eighty")
        assert "must be an integer" in capsys.readouterr().out

    def test_get_missing_key(self, capsys):
        with pytest.raises(SystemExit):
            _config_get("host")
        assert "not set" in capsys.readouterr().out

    def test_show_empty(self, capsys):
        main(["config", "show"])
        assert "(empty, using defaults)" in capsys.readouterr().out
