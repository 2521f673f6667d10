"""
ApiKeysPlugin 与插件管理器测试
"""

import asyncio

import pytest
import pytest_asyncio

from keyvault.config import Config
from keyvault.plugins import ApiKeysPlugin, PluginManager, create_plugin_manager, initialize_plugins
from keyvault.plugins.api_keys import MemoryClipboard
from keyvault import runtime


@pytest_asyncio.fixture
async def plugin(store_path, clipboard):
    plugin = ApiKeysPlugin(clipboard_backend=clipboard)
    await plugin.initialize({"storage_path": str(store_path), "clear_after_seconds": 0.05})
    yield plugin
    await plugin.shutdown()


class TestApiKeysPlugin:

    @pytest.mark.asyncio
    async def test_add_and_list_masks_secret(self, plugin):
        result = await plugin.add_key("GitHub", "ci", "ghp_abcdefghijkl", "work, ci")
        assert result["success"]
        assert result["key"]["categories"] == ["work", "ci"]
        assert "ghp_abcdefghijkl" not in str(result)

        listing = await plugin.list_keys()
        assert listing["count"] == 1
        assert listing["keys"][0]["key"].startswith("ghp_")
        assert "ghp_abcdefghijkl" not in str(listing)

    @pytest.mark.asyncio
    async def test_duplicate_reported(self, plugin):
        await plugin.add_key("GitHub", "ci", "first")
        result = await plugin.add_key("GitHub", "ci", "second")
        assert result["success"] is False
        assert result["code"] == "duplicate_key"
        assert "second" not in result["error"]

    @pytest.mark.asyncio
    async def test_reveal_touches_last_used(self, plugin):
        added = await plugin.add_key("GitHub", "ci", "ghp_abcdefghijkl")
        key_id = added["key"]["id"]

        masked = await plugin.get_key(key_id)
        assert masked["key"]["key"] != "ghp_abcdefghijkl"
        assert (await plugin.store.get(key_id)).last_used_at is None

        revealed = await plugin.get_key(key_id, reveal=True)
        assert revealed["key"]["key"] == "ghp_abcdefghijkl"
        stored = await plugin.store.get(key_id)
        assert stored.last_used_at is not None
        assert revealed["key"]["last_used_at"] == stored.last_used_at
        assert revealed["key"]["last_used"] != "Never"

    @pytest.mark.asyncio
    async def test_copy_sets_clipboard_and_clears(self, plugin, clipboard):
        added = await plugin.add_key("GitHub", "ci", "ghp_abcdefghijkl")
        key_id = added["key"]["id"]

        result = await plugin.copy_key(key_id)
        assert result["success"]
        assert result["clears_in"] == 0.05
        assert clipboard.text == "ghp_abcdefghijkl"
        assert (await plugin.store.get(key_id)).last_used_at is not None

        await asyncio.sleep(0.2)
        assert clipboard.text == ""

    @pytest.mark.asyncio
    async def test_copy_missing_key(self, plugin, clipboard):
        result = await plugin.copy_key("missing")
        assert result["code"] == "not_found"
        assert clipboard.text == ""

    @pytest.mark.asyncio
    async def test_update_and_delete(self, plugin):
        added = await plugin.add_key("GitHub", "ci", "a", ["work"])
        key_id = added["key"]["id"]

        updated = await plugin.update_key(key_id, notes="rotated")
        assert updated["key"]["notes"] == "rotated"
        assert updated["key"]["categories"] == ["work"]

        assert (await plugin.delete_key(key_id))["success"]
        assert (await plugin.delete_key(key_id))["code"] == "not_found"

    @pytest.mark.asyncio
    async def test_list_filters_and_categories(self, plugin):
        await plugin.add_key("GitHub", "ci", "a", ["work"])
        await plugin.add_key("Netflix", "home", "b", ["personal"])

        work = await plugin.list_keys(category="work")
        assert [k["service"] for k in work["keys"]] == ["GitHub"]
        assert work["total"] == 2

        categories = await plugin.list_categories()
        assert categories["categories"] == ["personal", "work"]

    @pytest.mark.asyncio
    async def test_corrupt_store_reported(self, plugin, store_path):
        store_path.parent.mkdir(parents=True, exist_ok=True)
        store_path.write_text("{oops", encoding="utf-8")
        result = await plugin.list_keys()
        assert result["success"] is False
        assert result["code"] == "corrupt_store"

    @pytest.mark.asyncio
    async def test_undecodable_store_reported(self, plugin, store_path):
        store_path.parent.mkdir(parents=True, exist_ok=True)
        store_path.write_bytes(b"\xff[]")
        result = await plugin.handle_tool("api_key_list", {})
        assert result["success"] is False
        assert result["code"] == "corrupt_store"

    @pytest.mark.asyncio
    async def test_malformed_categories_reported(self, plugin):
        result = await plugin.add_key("GitHub", "ci", "x", 5)
        assert result["code"] == "invalid_field"

    @pytest.mark.asyncio
    async def test_handle_tool_dispatch(self, plugin):
        added = await plugin.handle_tool("api_key_add", {
            "service": "OpenAI", "name": "prod", "secret": "sk-abcdefghijkl", "categories": ["ai"]
        })
        key_id = added["key"]["id"]

        listing = await plugin.handle_tool("api_key_list", {"query": "open"})
        assert listing["count"] == 1

        updated = await plugin.handle_tool("api_key_update", {"key_id": key_id, "name": "staging"})
        assert updated["key"]["name"] == "staging"

        services = await plugin.handle_tool("api_key_services", {})
        assert any(s["name"] == "OpenAI" for s in services["services"])

        unknown = await plugin.handle_tool("api_key_rotate", {})
        assert unknown["success"] is False

    def test_tool_definitions(self):
        names = ApiKeysPlugin().tool_names()
        assert names == [
            "api_key_add", "api_key_list", "api_key_get", "api_key_copy",
            "api_key_update", "api_key_delete", "api_key_categories", "api_key_services",
        ]

    @pytest.mark.asyncio
    async def test_health_check(self, plugin, store_path):
        status = plugin.health_check()
        assert status["status"] == "healthy"
        assert status["storage_path"] == str(store_path)
        assert status["clipboard_clear_pending"] is False

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending_clear(self, store_path, clipboard):
        plugin = ApiKeysPlugin(clipboard_backend=clipboard)
        await plugin.initialize({"storage_path": str(store_path), "clear_after_seconds": 0.05})
        added = await plugin.add_key("GitHub", "ci", "secret123")
        await plugin.copy_key(added["key"]["id"])

        await plugin.shutdown()
        await asyncio.sleep(0.2)
        assert clipboard.text == "secret123"


class TestPluginManager:

    @pytest.mark.asyncio
    async def test_dispatch_through_manager(self, store_path):
        manager = create_plugin_manager([ApiKeysPlugin(clipboard_backend=MemoryClipboard())])
        results = await initialize_plugins(manager, {"api_keys": {"storage_path": str(store_path)}})
        assert results["success"] == 1

        result = await manager.handle_tool("api_key_add", {"service": "GitHub", "name": "ci", "secret": "x"})
        assert result["success"]
        assert (await manager.handle_tool("nope", {}))["success"] is False
        await manager.shutdown_all()

    @pytest.mark.asyncio
    async def test_disabled_plugin_skipped(self):
        manager = create_plugin_manager()
        results = await initialize_plugins(manager, {"api_keys": {"enabled": False}})
        assert results["skipped"] == 1
        result = await manager.handle_tool("api_key_list", {})
        assert result["success"] is False

    def test_duplicate_registration(self):
        manager = PluginManager()
        manager.register(ApiKeysPlugin())
        with pytest.raises(ValueError):
            manager.register(ApiKeysPlugin())

    def test_unregister_removes_tools(self):
        manager = PluginManager()
        manager.register(ApiKeysPlugin())
        manager.unregister("api_keys")
        assert manager.list_plugins() == []
        assert manager.get_all_tools() == []


class TestRuntime:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, store_path):
        config = Config(plugins={"api_keys": {"storage_path": str(store_path),
                                              "clipboard_backend": "memory"}})
        manager = await runtime.start(config)
        plugin = manager.get("api_keys")
        assert plugin.initialized
        assert plugin.store.path == store_path

        await runtime.stop(manager)
        assert not plugin.initialized
