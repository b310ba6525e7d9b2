"""Tests for install-for-all."""

import json
from unittest.mock import patch

import pytest
import tomlkit

from agentx.core import bulk
from agentx.core.agents import AgentDescriptor
from agentx.lib.typed_errors import BulkInstallFailed, CapabilityNotFound, SourceUnavailable
from agentx.models import CapabilityType, OutcomeKind, Status

AGENT_ORDER = ["Claude Code", "Codex", "Cursor", "Gemini cli", "opencode", "Droid"]


def _by_agent(result):
    return {o.agent: o for o in result.outcomes}


class TestInstallForAll:
    @pytest.mark.asyncio
    async def test_partial_failure_is_collected(self, manager, create_agents, home):
        paths = create_agents("claude", "codex", "cursor")
        paths["cursor"].write_text("{not json")

        result = await manager.install_for_all("context7")

        assert result.ok
        outcomes = _by_agent(result)
        assert outcomes["Claude Code"].outcome == OutcomeKind.SUCCEEDED
        assert outcomes["Codex"].outcome == OutcomeKind.SUCCEEDED
        assert outcomes["Cursor"].outcome == OutcomeKind.FAILED
        assert outcomes["Cursor"].code == "config_unreadable"
        assert [o.agent for o in result.failures] == ["Cursor"]
        assert len(result.succeeded) == 2

        claude = json.loads(paths["claude"].read_text())
        assert "context7" in claude["mcpServers"]
        codex = tomlkit.parse(paths["codex"].read_text())
        assert "context7" in codex["mcp_servers"]
        assert paths["cursor"].read_text() == "{not json"

        rows = await manager.get_matrix(CapabilityType.MCP)
        row = next(r for r in rows if r.name == "context7")
        assert row.agents["Cursor"] == Status.ERROR
        assert row.agents["Claude Code"] == Status.INSTALLED

    @pytest.mark.asyncio
    async def test_outcomes_in_registry_order(self, manager, create_agents):
        create_agents("droid", "claude", "gemini")
        result = await manager.install_for_all("playwright")
        assert [o.agent for o in result.outcomes] == AGENT_ORDER

    @pytest.mark.asyncio
    async def test_absent_agents_are_skipped(self, manager, create_agents):
        create_agents("opencode")
        result = await manager.install_for_all("context7")

        outcomes = _by_agent(result)
        assert outcomes["opencode"].outcome == OutcomeKind.SUCCEEDED
        for agent in ("Claude Code", "Codex", "Cursor", "Gemini cli", "Droid"):
            assert outcomes[agent].outcome == OutcomeKind.SKIPPED
            assert outcomes[agent].reason == "not installed"

    @pytest.mark.asyncio
    async def test_no_applicable_agents_is_ok(self, manager):
        result = await manager.install_for_all("context7")
        assert result.ok
        assert len(result.skipped) == len(AGENT_ORDER)
        assert result.failures == []

    @pytest.mark.asyncio
    async def test_every_attempt_failing_raises(self, manager, create_agents):
        paths = create_agents("cursor", "droid")
        paths["cursor"].write_text("[]")
        paths["droid"].write_text("{broken")

        with pytest.raises(BulkInstallFailed) as exc_info:
            await manager.install_for_all("context7")

        assert exc_info.value.capability == "context7"
        assert len(exc_info.value.details) == 2
        assert exc_info.value.details[0].startswith("Cursor:")

    @pytest.mark.asyncio
    async def test_reinstall_for_all_is_idempotent(self, manager, create_agents):
        paths = create_agents("claude", "codex")
        await manager.install_for_all("remix-icon")
        before = {k: p.read_bytes() for k, p in paths.items()}

        await manager.install_for_all("remix-icon")

        assert {k: p.read_bytes() for k, p in paths.items()} == before

    @pytest.mark.asyncio
    async def test_skill_installed_for_skill_capable_agents(self, manager, create_agents, home):
        create_agents("claude", "codex", "cursor", "droid")

        result = await manager.install_for_all("pdf")

        outcomes = _by_agent(result)
        assert outcomes["Cursor"].outcome == OutcomeKind.SKIPPED
        assert outcomes["Cursor"].reason == "not supported"
        for skills_dir in (
            home / ".claude" / "skills",
            home / ".codex" / "skills",
            home / ".factory" / "skills",
        ):
            assert (skills_dir / "pdf" / "SKILL.md").is_file()

    @pytest.mark.asyncio
    async def test_source_materialized_once(self, manager, create_agents, sources):
        create_agents("claude", "codex", "droid")
        calls = []

        real = bulk.materialize

        def counting(*args, **kwargs):
            calls.append(args)
            return real(*args, **kwargs)

        with patch.object(bulk, "materialize", side_effect=counting):
            result = await manager.install_for_all("pdf")

        assert len(calls) == 1
        assert len(result.succeeded) == 3

    @pytest.mark.asyncio
    async def test_unavailable_source_raises_before_any_write(
        self, manager, create_agents, home, tmp_path
    ):
        create_agents("claude", "codex")
        empty = tmp_path / "empty"
        empty.mkdir()

        with pytest.raises(SourceUnavailable):
            await manager.install_for_all("ghost", source_ref=str(empty))

        assert not (home / ".claude" / "skills").exists()
        assert not (home / ".codex" / "skills").exists()

    @pytest.mark.asyncio
    async def test_unknown_capability(self, manager, create_agents):
        create_agents("claude")
        with pytest.raises(CapabilityNotFound):
            await manager.install_for_all("not-in-catalog", capability_type="mcp")

    @pytest.mark.asyncio
    async def test_probe_error_counts_as_failure(self, manager, create_agents):
        create_agents("claude")
        real_probe = AgentDescriptor.probe

        def probe(descriptor):
            if descriptor.key == "codex":
                return False, "Permission denied"
            return real_probe(descriptor)

        with patch("agentx.core.agents.AgentDescriptor.probe", probe):
            result = await manager.install_for_all("context7")

        outcomes = _by_agent(result)
        assert outcomes["Codex"].outcome == OutcomeKind.FAILED
        assert outcomes["Codex"].code == "config_unreadable"
        assert outcomes["Claude Code"].outcome == OutcomeKind.SUCCEEDED
