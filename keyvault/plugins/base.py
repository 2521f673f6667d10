"""
插件基类与插件管理器

插件通过 get_tools() 声明工具 (OpenAI Function Calling 格式)，
通过 handle_tool() 处理调用。
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from loguru import logger


class Plugin(ABC):
    """插件基类"""

    def __init__(self):
        self._initialized = False
        self._config: Dict[str, Any] = {}
        self._metadata = {
            "version": "1.0.0",
            "created_at": datetime.now().isoformat()
        }

    @property
    @abstractmethod
    def name(self) -> str:
        """插件名称 (唯一标识)"""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """插件描述"""
        pass

    @property
    def version(self) -> str:
        return self._metadata.get("version", "1.0.0")

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, config: Dict[str, Any] = None):
        """初始化插件

        Args:
            config: 插件配置字典
        """
        self._config = config or {}
        await self._setup()
        self._initialized = True

    @abstractmethod
    async def _setup(self):
        """子类实现的具体初始化逻辑"""
        pass

    async def shutdown(self):
        """关闭插件，释放资源"""
        await self._cleanup()
        self._initialized = False

    async def _cleanup(self):
        pass

    def get_tools(self) -> List[Dict]:
        """返回插件提供的工具定义"""
        return []

    def tool_names(self) -> List[str]:
        return [t.get("function", {}).get("name") for t in self.get_tools()]

    async def handle_tool(self, tool_name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """处理工具调用

        Args:
            tool_name: 工具名称
            params: 工具参数

        Returns:
            执行结果 {"success": bool, ...}
        """
        return {
            "success": False,
            "error": f"Tool '{tool_name}' not implemented in plugin '{self.name}'"
        }

    def get_config(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self._initialized else "not_initialized",
            "plugin": self.name,
            "version": self.version
        }


class PluginManager:
    """插件管理器: 注册插件并按工具名分发调用"""

    def __init__(self):
        self._plugins: Dict[str, Plugin] = {}
        self._tool_map: Dict[str, str] = {}  # tool_name -> plugin_name

    def register(self, plugin: Plugin):
        """注册插件

        Raises:
            ValueError: 同名插件已注册
        """
        if plugin.name in self._plugins:
            raise ValueError(f"Plugin '{plugin.name}' already registered")

        self._plugins[plugin.name] = plugin
        for tool_name in plugin.tool_names():
            if tool_name:
                self._tool_map[tool_name] = plugin.name
        logger.debug(f"Plugin registered: {plugin.name}")

    def unregister(self, plugin_name: str):
        if plugin_name not in self._plugins:
            return

        self._tool_map = {
            tool: owner for tool, owner in self._tool_map.items()
            if owner != plugin_name
        }
        del self._plugins[plugin_name]

    def get(self, name: str) -> Optional[Plugin]:
        return self._plugins.get(name)

    def list_plugins(self) -> List[str]:
        return list(self._plugins.keys())

    def get_all_tools(self) -> List[Dict]:
        tools = []
        for plugin in self._plugins.values():
            tools.extend(plugin.get_tools())
        return tools

    async def handle_tool(self, tool_name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """按工具名找到插件并转发调用"""
        plugin_name = self._tool_map.get(tool_name)
        if not plugin_name:
            return {
                "success": False,
                "error": f"Unknown tool: {tool_name}"
            }

        plugin = self._plugins[plugin_name]
        if not plugin.initialized:
            return {
                "success": False,
                "error": f"Plugin '{plugin_name}' is not initialized"
            }

        return await plugin.handle_tool(tool_name, params or {})

    async def shutdown_all(self):
        """关闭所有插件"""
        for name, plugin in self._plugins.items():
            if not plugin.initialized:
                continue
            try:
                await plugin.shutdown()
            except Exception as e:
                logger.error(f"Error shutting down plugin '{name}': {e}")
