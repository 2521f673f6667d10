"""
API 密钥管理插件

功能:
- 添加、编辑、删除 API 密钥 (本地 JSON 文件，明文存储)
- 搜索与分类过滤，按最近使用排序
- 复制到剪贴板并自动清除
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from ..base import Plugin
from .clipboard import ClipboardGuard, MemoryClipboard, PyperclipBackend, DEFAULT_CLEAR_DELAY
from .display import SERVICE_PRESETS, describe, parse_categories
from .errors import KeyVaultError
from .query import ALL_CATEGORIES, apply_view
from .storage import DEFAULT_STORAGE_PATH, KeyStore


def _categories_arg(value: Union[str, List[str], None]) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return parse_categories(value)
    return value


class ApiKeysPlugin(Plugin):
    """API 密钥管理插件"""

    def __init__(self, clipboard_backend=None):
        """
        Args:
            clipboard_backend: 剪贴板后端，不指定时按配置 clipboard_backend 选择
        """
        super().__init__()
        self._clipboard_backend = clipboard_backend

    @property
    def name(self) -> str:
        return "api_keys"

    @property
    def description(self) -> str:
        return "API 密钥管理: 本地存储、搜索分类、复制后自动清除剪贴板"

    async def _setup(self):
        """初始化插件"""
        storage_path = Path(self.get_config("storage_path", DEFAULT_STORAGE_PATH)).expanduser()
        self.store = KeyStore(storage_path)

        backend = self._clipboard_backend
        if backend is None:
            if self.get_config("clipboard_backend", "system") == "memory":
                backend = MemoryClipboard()
            else:
                backend = PyperclipBackend()
        self.clipboard = ClipboardGuard(
            backend=backend,
            default_delay=float(self.get_config("clear_after_seconds", DEFAULT_CLEAR_DELAY)),
        )

        logger.info(f"API keys plugin initialized: storage={storage_path}")

    async def _cleanup(self):
        """清理资源"""
        self.clipboard.cancel()
        logger.info("API keys plugin shutdown")

    @staticmethod
    def _failure(error: KeyVaultError) -> Dict[str, Any]:
        return {"success": False, "error": error.message, "code": error.code}

    async def add_key(self, service: str, name: str, secret: str,
                      categories: Union[str, List[str], None] = None,
                      notes: str = "") -> Dict[str, Any]:
        """添加 API 密钥

        Args:
            service: 服务名称
            name: 密钥名称
            secret: 密钥值
            categories: 分类列表或逗号分隔字符串
            notes: 备注

        Returns:
            操作结果 (密钥已遮罩)
        """
        try:
            record = await self.store.add(
                service, name, secret, _categories_arg(categories) or [], notes or ""
            )
        except KeyVaultError as e:
            return self._failure(e)

        return {
            "success": True,
            "key": describe(record),
            "message": f"Successfully added {record.name} for {record.service}"
        }

    async def list_keys(self, query: str = "", category: str = ALL_CATEGORIES) -> Dict[str, Any]:
        """列出密钥 (搜索 + 分类过滤 + 最近使用排序)，密钥值遮罩"""
        try:
            records = await self.store.list()
        except KeyVaultError as e:
            return self._failure(e)

        view = apply_view(records, query, category or ALL_CATEGORIES)
        return {
            "success": True,
            "keys": [describe(r) for r in view],
            "count": len(view),
            "total": len(records),
            "category": category or ALL_CATEGORIES,
        }

    async def get_key(self, key_id: str, reveal: bool = False) -> Dict[str, Any]:
        """获取密钥详情

        Args:
            key_id: 记录 id
            reveal: 是否显示完整密钥 (会更新最近使用时间)
        """
        try:
            record = await self.store.get(key_id)
        except KeyVaultError as e:
            return self._failure(e)

        if reveal:
            stamped = await self.store.touch_last_used(key_id)
            if stamped:
                record.last_used_at = stamped
        return {"success": True, "key": describe(record, reveal=reveal)}

    async def copy_key(self, key_id: str, delay: Optional[float] = None) -> Dict[str, Any]:
        """复制密钥到剪贴板，延迟后自动清除"""
        try:
            record = await self.store.get(key_id)
            await self.clipboard.copy_with_expiry(record.secret, delay)
        except KeyVaultError as e:
            return self._failure(e)

        await self.store.touch_last_used(key_id)
        clears_in = self.clipboard.default_delay if delay is None else delay
        return {
            "success": True,
            "id": key_id,
            "clears_in": clears_in,
            "message": f"Copied to clipboard, will be cleared after {clears_in:g} seconds"
        }

    async def update_key(self, key_id: str, service: Optional[str] = None,
                         name: Optional[str] = None, secret: Optional[str] = None,
                         categories: Union[str, List[str], None] = None,
                         notes: Optional[str] = None) -> Dict[str, Any]:
        """更新密钥，只修改传入的字段"""
        changes = {
            "service": service,
            "name": name,
            "secret": secret,
            "categories": _categories_arg(categories),
            "notes": notes,
        }
        changes = {k: v for k, v in changes.items() if v is not None}

        try:
            record = await self.store.update(key_id, **changes)
        except KeyVaultError as e:
            return self._failure(e)

        return {
            "success": True,
            "key": describe(record),
            "message": f"Successfully updated {record.name}"
        }

    async def delete_key(self, key_id: str) -> Dict[str, Any]:
        """删除密钥"""
        try:
            await self.store.remove(key_id)
        except KeyVaultError as e:
            return self._failure(e)
        return {"success": True, "deleted": key_id}

    async def list_categories(self) -> Dict[str, Any]:
        """列出所有分类"""
        try:
            categories = await self.store.categories()
        except KeyVaultError as e:
            return self._failure(e)
        return {"success": True, "categories": categories, "count": len(categories)}

    async def list_services(self) -> Dict[str, Any]:
        """常用服务列表"""
        return {"success": True, "services": [dict(p) for p in SERVICE_PRESETS]}

    def health_check(self) -> Dict[str, Any]:
        status = super().health_check()
        if self._initialized:
            status["storage_path"] = str(self.store.path)
            status["clipboard_clear_pending"] = self.clipboard.pending
        return status

    def get_tools(self) -> List[Dict]:
        """返回工具定义"""
        id_param = {
            "key_id": {
                "type": "string",
                "description": "密钥记录 ID"
            }
        }
        return [
            {
                "type": "function",
                "function": {
                    "name": "api_key_add",
                    "description": "添加新的 API 密钥，(服务, 名称) 必须唯一",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "service": {"type": "string", "description": "服务名称 (如 'OpenAI')"},
                            "name": {"type": "string", "description": "密钥名称 (如 'PRODUCTION_API_KEY')"},
                            "secret": {"type": "string", "description": "API 密钥值"},
                            "categories": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "分类标签 (如 ['work', 'personal'])"
                            },
                            "notes": {"type": "string", "description": "备注信息"}
                        },
                        "required": ["service", "name", "secret"]
                    }
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_list",
                    "description": "搜索并列出 API 密钥 (密钥值已遮罩)，按最近使用排序",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            "query": {"type": "string", "description": "搜索名称、服务、分类或备注"},
                            "category": {
                                "type": "string",
                                "description": "分类过滤，'All' 表示全部",
                                "default": ALL_CATEGORIES
                            }
                        }
                    }
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_get",
                    "description": "查看 API 密钥详情",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            **id_param,
                            "reveal": {
                                "type": "boolean",
                                "description": "是否显示完整密钥",
                                "default": False
                            }
                        },
                        "required": ["key_id"]
                    }
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_copy",
                    "description": "复制 API 密钥到剪贴板，一段时间后自动清除",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            **id_param,
                            "delay": {"type": "number", "description": "清除延迟 (秒)"}
                        },
                        "required": ["key_id"]
                    }
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_update",
                    "description": "更新 API 密钥，未提供的字段保持不变",
                    "parameters": {
                        "type": "object",
                        "properties": {
                            **id_param,
                            "service": {"type": "string"},
                            "name": {"type": "string"},
                            "secret": {"type": "string"},
                            "categories": {"type": "array", "items": {"type": "string"}},
                            "notes": {"type": "string"}
                        },
                        "required": ["key_id"]
                    }
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_delete",
                    "description": "删除指定的 API 密钥",
                    "parameters": {
                        "type": "object",
                        "properties": id_param,
                        "required": ["key_id"]
                    }
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_categories",
                    "description": "列出所有分类",
                    "parameters": {"type": "object", "properties": {}}
                }
            },
            {
                "type": "function",
                "function": {
                    "name": "api_key_services",
                    "description": "列出常用服务及建议分类",
                    "parameters": {"type": "object", "properties": {}}
                }
            }
        ]

    async def handle_tool(self, tool_name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """处理工具调用"""
        if tool_name == "api_key_add":
            return await self.add_key(
                params.get("service"),
                params.get("name"),
                params.get("secret"),
                params.get("categories"),
                params.get("notes", "")
            )

        elif tool_name == "api_key_list":
            return await self.list_keys(
                params.get("query", ""),
                params.get("category", ALL_CATEGORIES)
            )

        elif tool_name == "api_key_get":
            return await self.get_key(params.get("key_id"), params.get("reveal", False))

        elif tool_name == "api_key_copy":
            return await self.copy_key(params.get("key_id"), params.get("delay"))

        elif tool_name == "api_key_update":
            return await self.update_key(
                params.get("key_id"),
                service=params.get("service"),
                name=params.get("name"),
                secret=params.get("secret"),
                categories=params.get("categories"),
                notes=params.get("notes")
            )

        elif tool_name == "api_key_delete":
            return await self.delete_key(params.get("key_id"))

        elif tool_name == "api_key_categories":
            return await self.list_categories()

        elif tool_name == "api_key_services":
            return await self.list_services()

        return await super().handle_tool(tool_name, params)
