"""
API Keys Plugin

本地 JSON 存储的 API 密钥管理，复制后自动清除剪贴板
"""

from .plugin import ApiKeysPlugin
from .storage import KeyRecord, KeyStore, SCHEMA_VERSION
from .clipboard import ClipboardGuard, MemoryClipboard, PyperclipBackend
from .query import ALL_CATEGORIES, apply_view, collect_categories, filter_by_category, search, sort_by_last_used
from .display import SERVICE_PRESETS, describe, format_last_used, mask_secret, parse_categories
from .errors import (
    KeyVaultError,
    DuplicateKey,
    NotFound,
    CorruptStore,
    StorageUnavailable,
    ClipboardUnavailable,
    InvalidField,
)

__all__ = [
    "ApiKeysPlugin",
    "KeyRecord",
    "KeyStore",
    "SCHEMA_VERSION",
    "ClipboardGuard",
    "MemoryClipboard",
    "PyperclipBackend",
    "ALL_CATEGORIES",
    "apply_view",
    "collect_categories",
    "filter_by_category",
    "search",
    "sort_by_last_used",
    "SERVICE_PRESETS",
    "describe",
    "format_last_used",
    "mask_secret",
    "parse_categories",
    "KeyVaultError",
    "DuplicateKey",
    "NotFound",
    "CorruptStore",
    "StorageUnavailable",
    "ClipboardUnavailable",
    "InvalidField",
]
