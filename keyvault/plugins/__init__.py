"""
keyvault 插件系统

导出内置插件，提供插件管理器的创建与批量初始化
"""

from typing import Any, Dict, List, Type

from loguru import logger

from .base import Plugin, PluginManager
from .api_keys import ApiKeysPlugin


__all__ = [
    "Plugin",
    "PluginManager",
    "ApiKeysPlugin",
    "BUILTIN_PLUGINS",
    "create_plugin_manager",
    "initialize_plugins",
]


# 内置插件列表
BUILTIN_PLUGINS: List[Type[Plugin]] = [
    ApiKeysPlugin,
]


def create_plugin_manager(plugins: List[Plugin] = None) -> PluginManager:
    """创建插件管理器并注册插件

    Args:
        plugins: 插件实例列表 (默认实例化所有内置插件)

    Returns:
        PluginManager 实例
    """
    manager = PluginManager()
    if plugins is None:
        plugins = [plugin_class() for plugin_class in BUILTIN_PLUGINS]

    for plugin in plugins:
        manager.register(plugin)

    return manager


async def initialize_plugins(
    manager: PluginManager,
    configs: Dict[str, Dict[str, Any]] = None
) -> Dict[str, Any]:
    """初始化所有插件

    配置中 enabled 为 False 的插件会被跳过，单个插件失败不影响其他插件。

    Args:
        manager: 插件管理器
        configs: 插件配置 {plugin_name: config}

    Returns:
        初始化结果统计
    """
    configs = configs or {}
    results = {
        "total": 0,
        "success": 0,
        "failed": 0,
        "skipped": 0,
        "errors": {}
    }

    for name in manager.list_plugins():
        results["total"] += 1
        plugin = manager.get(name)

        plugin_config = configs.get(name, {})
        if plugin_config.get("enabled", True) is False:
            results["skipped"] += 1
            continue

        try:
            await plugin.initialize(plugin_config)
            results["success"] += 1
        except Exception as e:
            logger.error(f"Failed to initialize plugin '{name}': {e}")
            results["failed"] += 1
            results["errors"][name] = str(e)

    return results
