"""
API 密钥插件错误类型

每个错误带有稳定的 code，供展示层做程序化处理。
错误消息中永远不包含密钥值。
"""

from typing import Any, Dict, Optional


class KeyVaultError(Exception):
    """所有密钥库错误的基类"""

    code: str = "internal_error"
    message: str = "An internal error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.__class__.message
        self.details = details or {}
        super().__init__(self.message)


class DuplicateKey(KeyVaultError):
    """(service, name) 已存在"""

    code = "duplicate_key"
    message = "An API key with this service and name already exists"


class NotFound(KeyVaultError):
    """指定 id 的记录不存在"""

    code = "not_found"
    message = "API key not found"


class CorruptStore(KeyVaultError):
    """存储文件存在但无法解析"""

    code = "corrupt_store"
    message = "API key store is corrupted"


class StorageUnavailable(KeyVaultError):
    """存储目录或文件无法创建、读取或写入"""

    code = "storage_unavailable"
    message = "API key storage is unavailable"


class ClipboardUnavailable(KeyVaultError):
    """写入系统剪贴板失败"""

    code = "clipboard_unavailable"
    message = "System clipboard is unavailable"


class InvalidField(KeyVaultError):
    """字段为空、不可修改或未知"""

    code = "invalid_field"
    message = "Invalid field"
