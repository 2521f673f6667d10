"""
启动与关闭

加载配置、配置日志、注册并初始化插件。
"""

from typing import Optional

from loguru import logger

from .config import Config
from .log import setup_logging
from .plugins import PluginManager, create_plugin_manager, initialize_plugins


async def start(config: Optional[Config] = None) -> PluginManager:
    """启动插件运行时

    Args:
        config: 配置 (默认 Config.load())

    Returns:
        已初始化的 PluginManager
    """
    config = config or Config.load()
    setup_logging("DEBUG" if config.debug else config.logging.level, config.logging.file)

    manager = create_plugin_manager()
    results = await initialize_plugins(manager, config.plugin_configs())

    logger.info(
        f"{config.name} started: {results['success']} plugins initialized, "
        f"{results['failed']} failed, {results['skipped']} skipped"
    )
    return manager


async def stop(manager: PluginManager):
    """关闭所有插件 (取消待执行的剪贴板清除)"""
    await manager.shutdown_all()
    logger.info("Plugins shut down")
