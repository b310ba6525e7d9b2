"""Tests for skill and plugin directory stores."""

import json

import pytest

from agentx.core.stores import PluginDirStore, SkillDirStore
from agentx.core.stores.plugins import components_summary, scan_components
from agentx.core.stores.skills import parse_skill_metadata
from agentx.lib.typed_errors import ConfigUnreadable, NotApplicable, SourceUnavailable
from agentx.models import CapabilityType, Status


@pytest.fixture
def skill_store(home):
    return SkillDirStore(home / ".claude" / "skills", home / ".claude" / "commands")


class TestSkillDirStore:
    def test_install_skill_directory(self, skill_store, sources):
        skill_store.write("pdf", sources / "pdf")

        installed = skill_store.skills_dir / "pdf" / "SKILL.md"
        assert installed.is_file()
        assert skill_store.read("pdf") is True
        assert skill_store.list()["pdf"]["type"] == "skill"
        assert skill_store.list()["pdf"]["description"] == "Work with PDF files"

    def test_reinstall_replaces_content(self, skill_store, sources):
        skill_store.write("pdf", sources / "pdf")
        (skill_store.skills_dir / "pdf" / "stale.txt").write_text("stale")

        skill_store.write("pdf", sources / "pdf")

        assert not (skill_store.skills_dir / "pdf" / "stale.txt").exists()
        assert [p.name for p in skill_store.skills_dir.iterdir()] == ["pdf"]

    def test_install_command_file(self, skill_store, tmp_path):
        command = tmp_path / "deploy.md"
        command.write_text("---\ndescription: Deploy the app\n---\nRun the deploy.\n")

        skill_store.write("deploy", command)

        assert (skill_store.commands_dir / "deploy.md").read_text() == command.read_text()
        assert skill_store.read("deploy") is True
        assert skill_store.list()["deploy"]["type"] == "command"

    def test_command_file_without_commands_dir_is_not_applicable(self, home, tmp_path):
        store = SkillDirStore(home / ".codex" / "skills")
        command = tmp_path / "deploy.md"
        command.write_text("Run the deploy.\n")
        with pytest.raises(NotApplicable):
            store.write("deploy", command)

    def test_payload_without_skill_is_source_unavailable(self, skill_store, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(SourceUnavailable):
            skill_store.write("empty", empty)

    def test_lookup_by_frontmatter_name(self, skill_store, make_skill):
        skill_dir = make_skill(skill_store.skills_dir, "renamed-dir")
        (skill_dir / "SKILL.md").write_text("---\nname: pdf\ndescription: x\n---\n")

        assert skill_store.read("pdf") is True
        skill_store.remove("pdf")
        assert not skill_dir.exists()

    def test_remove_absent_is_noop(self, skill_store):
        skill_store.remove("pdf")
        assert not skill_store.skills_dir.exists()

    def test_malformed_skill_is_unreadable(self, skill_store):
        broken = skill_store.skills_dir / "broken"
        broken.mkdir(parents=True)
        (broken / "SKILL.md").write_text("---\nname: [unclosed\n---\nbody\n")

        with pytest.raises(ConfigUnreadable):
            skill_store.read("broken")
        with pytest.raises(ConfigUnreadable):
            skill_store.remove("broken")
        assert broken.exists()

    def test_malformed_skill_is_skipped_in_list(self, skill_store, sources):
        skill_store.write("pdf", sources / "pdf")
        broken = skill_store.skills_dir / "broken"
        broken.mkdir()
        (broken / "SKILL.md").write_text("---\nname: [unclosed\n---\n")

        assert list(skill_store.list()) == ["pdf"]

    def test_non_string_frontmatter_key_is_unreadable(self, skill_store):
        odd = skill_store.skills_dir / "other"
        odd.mkdir(parents=True)
        (odd / "SKILL.md").write_text("---\nname: other\n2024: released\n---\nbody\n")

        with pytest.raises(ConfigUnreadable):
            parse_skill_metadata(odd / "SKILL.md")
        assert skill_store.read("pdf") is False
        assert skill_store.list() == {}

    @pytest.mark.asyncio
    async def test_odd_sibling_skill_does_not_break_matrix(self, manager, create_agents, home):
        create_agents("claude", "codex")
        odd = home / ".claude" / "skills" / "other"
        odd.mkdir(parents=True)
        (odd / "SKILL.md").write_text("---\nname: other\n2024: released\n---\n")

        rows = await manager.get_matrix(CapabilityType.SKILL)
        assert rows[0].agents["Claude Code"] == Status.NOT_INSTALLED
        assert rows[0].agents["Codex"] == Status.NOT_INSTALLED

        await manager.install("claude", "pdf")
        rows = await manager.get_matrix(CapabilityType.SKILL)
        assert rows[0].agents["Claude Code"] == Status.INSTALLED

    def test_metadata_keys_are_normalized(self, sources):
        meta = parse_skill_metadata(sources / "pdf" / "SKILL.md")
        assert meta["name"] == "pdf"
        assert meta["allowed_tools"] == ["Read", "Write"]


@pytest.fixture
def plugin_store(settings):
    return PluginDirStore(settings.plugins_dir / "claude")


class TestPluginDirStore:
    def test_install_and_list(self, plugin_store, sources):
        plugin_store.write("reviewer", sources / "reviewer")

        assert plugin_store.read("reviewer") is True
        entry = plugin_store.list()["reviewer"]
        assert entry["version"] == "1.0.0"
        assert entry["components"]["commands"] == ["review"]
        assert entry["components"]["skills"] == ["lint"]

    def test_remove(self, plugin_store, sources):
        plugin_store.write("reviewer", sources / "reviewer")
        plugin_store.remove("reviewer")
        assert plugin_store.read("reviewer") is False
        assert list(plugin_store.plugins_dir.iterdir()) == []

    def test_non_plugin_payload_is_source_unavailable(self, plugin_store, sources):
        with pytest.raises(SourceUnavailable):
            plugin_store.write("pdf", sources / "pdf")
        assert not plugin_store.plugins_dir.exists()

    def test_malformed_manifest_is_unreadable(self, plugin_store):
        broken = plugin_store.plugins_dir / "broken" / ".claude-plugin"
        broken.mkdir(parents=True)
        (broken / "plugin.json").write_text("{not json")
        with pytest.raises(ConfigUnreadable):
            plugin_store.read("broken")

    def test_git_metadata_not_copied(self, plugin_store, sources):
        (sources / "reviewer" / ".git").mkdir()
        (sources / "reviewer" / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        plugin_store.write("reviewer", sources / "reviewer")
        assert not (plugin_store.plugins_dir / "reviewer" / ".git").exists()


class TestComponents:
    def test_scan_components(self, make_plugin, tmp_path):
        plugin = make_plugin(tmp_path, "full")
        (plugin / "agents").mkdir()
        (plugin / "agents" / "planner.md").write_text("plan")
        (plugin / "hooks").mkdir()
        (plugin / "hooks" / "hooks.json").write_text("{}")
        (plugin / ".mcp.json").write_text(json.dumps({"mcpServers": {"db": {}, "api": {}}}))

        components = scan_components(plugin)

        assert components == {
            "commands": ["review"],
            "agents": ["planner"],
            "skills": ["lint"],
            "hooks": ["hooks.json"],
            "mcp_servers": ["api", "db"],
        }
        assert components_summary(components) == "1 cmd, 1 agent, 1 skill, 1 hook, 2 mcp"

    def test_empty_summary(self, tmp_path):
        assert components_summary(scan_components(tmp_path)) == "empty"
