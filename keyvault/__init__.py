"""
keyvault - 本地 API 密钥管理插件

密钥以明文 JSON 保存在用户目录下，复制到剪贴板后自动清除
"""

__version__ = "0.1.0"

from .config import Config
from .plugins.api_keys import ApiKeysPlugin, KeyRecord, KeyStore, ClipboardGuard

__all__ = ["Config", "ApiKeysPlugin", "KeyRecord", "KeyStore", "ClipboardGuard", "__version__"]
