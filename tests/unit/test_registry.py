"""Tests for the registry catalog."""

import json
import logging

import pytest

from conftest import REGISTRY
from ghostgate import MemoryHost, RegistryCatalog, ToolDefinition
from ghostgate.registry import EXAMPLE_DEFINITION, EXAMPLE_FILENAME


class TestToolDefinition:
    """Tests for ToolDefinition."""

    def test_extra_fields_preserved(self):
        definition = ToolDefinition.model_validate(
            {"name": "x", "description": "d", "parameters": {}, "version": 2}
        )
        assert definition.to_schema()["version"] == 2

    def test_compact_json(self):
        definition = ToolDefinition(name="x", description="d", parameters={"a": "string"})
        assert definition.compact_json() == (
            '{"name":"x","description":"d","parameters":{"a":"string"}}'
        )

    def test_matches_is_case_insensitive(self):
        definition = ToolDefinition(name="sys_info", description="Retrieves System metrics")
        assert definition.matches("SYS")
        assert definition.matches("system")
        assert not definition.matches("network")

    def test_name_required(self):
        with pytest.raises(ValueError):
            ToolDefinition.model_validate({"description": "no name"})


class TestRegistryCatalog:
    """Tests for RegistryCatalog.load and search."""

    @pytest.mark.asyncio
    async def test_load_keys_by_declared_name(self, memory_host):
        memory_host.add_file(
            f"{REGISTRY}/renamed.json",
            json.dumps({"name": "web_fetch", "description": "Fetch a URL"}),
        )
        catalog = await RegistryCatalog(memory_host, REGISTRY).load()
        assert set(catalog) == {"sys_info", "git_log", "web_fetch"}
        assert catalog["web_fetch"].description == "Fetch a URL"

    @pytest.mark.asyncio
    async def test_missing_directory_is_empty(self):
        catalog = await RegistryCatalog(MemoryHost(), "/nowhere").load()
        assert catalog == {}

    @pytest.mark.asyncio
    async def test_disabled_is_empty(self, memory_host):
        catalog = await RegistryCatalog(memory_host, REGISTRY, enabled=False).load()
        assert catalog == {}

    @pytest.mark.asyncio
    async def test_bad_files_skipped(self, memory_host):
        memory_host.add_file(f"{REGISTRY}/broken.json", "{not json")
        memory_host.add_file(f"{REGISTRY}/list.json", "[1, 2, 3]")
        memory_host.add_file(f"{REGISTRY}/nameless.json", '{"description": "x"}')
        memory_host.add_file(f"{REGISTRY}/notes.txt", "ignored")
        catalog = await RegistryCatalog(memory_host, REGISTRY).load()
        assert set(catalog) == {"sys_info", "git_log"}

    @pytest.mark.asyncio
    async def test_name_collision_last_enumerated_wins(self, memory_host, caplog):
        memory_host.add_file(
            f"{REGISTRY}/sys_info_v2.json",
            json.dumps({"name": "sys_info", "description": "second"}),
        )
        with caplog.at_level(logging.WARNING):
            catalog = await RegistryCatalog(memory_host, REGISTRY, debug=True).load()
        assert catalog["sys_info"].description == "second"
        assert "Duplicate tool name" in caplog.text

    @pytest.mark.asyncio
    async def test_reread_picks_up_changes(self, memory_host):
        catalog = RegistryCatalog(memory_host, REGISTRY)
        assert "web_fetch" not in await catalog.load()
        memory_host.add_file(f"{REGISTRY}/web.json", json.dumps({"name": "web_fetch"}))
        assert "web_fetch" in await catalog.load()

    @pytest.mark.asyncio
    async def test_search_matches_name_and_description(self, memory_host):
        catalog = RegistryCatalog(memory_host, REGISTRY)
        assert await catalog.search("git") == ["git_log"]
        assert await catalog.search("commit") == ["git_log"]
        assert await catalog.search("METRICS") == ["sys_info"]
        assert await catalog.search("nothing") == []


class TestSeed:
    """Tests for registry bootstrap."""

    @pytest.mark.asyncio
    async def test_seed_creates_example(self):
        host = MemoryHost()
        catalog = RegistryCatalog(host, "/p/registry")
        assert await catalog.seed() is True
        assert json.loads(host.files[f"/p/registry/{EXAMPLE_FILENAME}"]) == EXAMPLE_DEFINITION
        assert set(await catalog.load()) == {"sys_info"}

    @pytest.mark.asyncio
    async def test_seed_skips_existing_directory(self):
        host = MemoryHost()
        await host.mkdir(REGISTRY)
        assert await RegistryCatalog(host, REGISTRY).seed() is False
        assert host.files == {}

    @pytest.mark.asyncio
    async def test_seed_leaves_populated_registry_alone(self, memory_host):
        before = dict(memory_host.files)
        assert await RegistryCatalog(memory_host, REGISTRY).seed() is False
        assert memory_host.files == before

    @pytest.mark.asyncio
    async def test_seed_failure_is_swallowed(self, caplog):
        host = MemoryHost(read_only=True)
        with caplog.at_level(logging.WARNING):
            assert await RegistryCatalog(host, "/p/registry", debug=True).seed() is False
        assert "Setup failed" in caplog.text

    @pytest.mark.asyncio
    async def test_seed_failure_silent_without_debug(self, caplog):
        host = MemoryHost(read_only=True)
        with caplog.at_level(logging.WARNING):
            assert await RegistryCatalog(host, "/p/registry").seed() is False
        assert caplog.text == ""
