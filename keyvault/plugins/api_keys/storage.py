"""
API 密钥存储

单个 JSON 文件保存全部密钥记录，每次修改都读取并重写整个文件。
不做进程内缓存，也不加锁：多个进程同时写同一文件时后写者覆盖先写者。
密钥以明文保存。
"""

import json
import os
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiofiles
from loguru import logger

from .errors import CorruptStore, DuplicateKey, InvalidField, NotFound, StorageUnavailable

SCHEMA_VERSION = 1

DEFAULT_STORAGE_PATH = Path.home() / ".keyvault" / "api-keys.json"

# 旧版文件使用 camelCase 字段名
_LEGACY_FIELDS = {
    "key": "secret",
    "lastUsed": "last_used_at",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

_MUTABLE_FIELDS = ("service", "name", "secret", "categories", "notes", "last_used_at")


@dataclass
class KeyRecord:
    """API 密钥记录"""
    id: str
    service: str
    name: str
    secret: str = field(repr=False)
    categories: List[str] = field(default_factory=list)
    notes: str = ""
    last_used_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeyRecord":
        values = {_LEGACY_FIELDS.get(k, k): v for k, v in data.items()}
        known = {k: values[k] for k in cls.__dataclass_fields__ if k in values}
        record = cls(**known)
        if record.categories is None:
            record.categories = []
        if record.notes is None:
            record.notes = ""
        record._check_types()
        return record

    def _check_types(self):
        """字段类型不符时抛出 TypeError"""
        for name in ("id", "service", "name", "secret", "notes", "created_at", "updated_at"):
            if not isinstance(getattr(self, name), str):
                raise TypeError(f"'{name}' must be a string")
        if self.last_used_at is not None and not isinstance(self.last_used_at, str):
            raise TypeError("'last_used_at' must be a string or null")
        if not isinstance(self.categories, list) or not all(isinstance(c, str) for c in self.categories):
            raise TypeError("'categories' must be a list of strings")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_label(field_name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidField(f"'{field_name}' must be a non-empty string")
    return value.strip()


def _clean_categories(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)) or not all(isinstance(c, str) for c in value):
        raise InvalidField("'categories' must be a list of strings")
    return list(value)


class KeyStore:
    """
    API 密钥存储

    用法：
        store = KeyStore(Path("~/.keyvault/api-keys.json").expanduser())
        record = await store.add("OpenAI", "prod", "sk-...", ["work"])
        await store.update(record.id, notes="rotated monthly")
        keys = await store.list()
    """

    def __init__(self, path: Optional[Path] = None, clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            path: JSON 文件路径，默认 ~/.keyvault/api-keys.json
            clock: 返回当前时间的函数 (测试用)
        """
        self.path = Path(path) if path else DEFAULT_STORAGE_PATH
        self._clock = clock or _utcnow

    def _now(self) -> str:
        return self._clock().isoformat()

    def _ensure_dir(self):
        """确保存储目录存在"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create storage directory {self.path.parent}: {e}")
            raise StorageUnavailable(
                f"Could not create storage directory {self.path.parent}"
            ) from e

    async def _read(self) -> List[KeyRecord]:
        """读取整个集合"""
        self._ensure_dir()
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except FileNotFoundError:
            return []
        except UnicodeDecodeError as e:
            logger.error(f"API key store {self.path} is not valid UTF-8 (byte {e.start}). File may be corrupted.")
            raise CorruptStore(
                f"API key store at {self.path} is not valid UTF-8 text",
                details={"position": e.start},
            ) from e
        except OSError as e:
            logger.error(f"Failed to read API key store {self.path}: {e}")
            raise StorageUnavailable(f"Could not read API key store at {self.path}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error(f"JSON parse error in {self.path} (line {e.lineno}). File may be corrupted.")
            raise CorruptStore(
                f"API key store at {self.path} is not valid JSON",
                details={"line": e.lineno, "column": e.colno},
            ) from e

        return self._decode(data)

    def _decode(self, data: Any) -> List[KeyRecord]:
        """解析文档，兼容旧版裸数组格式"""
        if isinstance(data, list):
            items = data
        elif isinstance(data, dict):
            version = data.get("version")
            if not isinstance(version, int) or isinstance(version, bool):
                raise CorruptStore(f"API key store at {self.path} has no valid schema version")
            if version > SCHEMA_VERSION:
                raise CorruptStore(
                    f"API key store at {self.path} uses schema version {version}, "
                    f"newer than supported version {SCHEMA_VERSION}",
                    details={"version": version},
                )
            items = data.get("keys")
            if not isinstance(items, list):
                raise CorruptStore(f"API key store at {self.path} has no 'keys' array")
        else:
            raise CorruptStore(f"API key store at {self.path} has an unexpected layout")

        records = []
        for index, item in enumerate(items):
            if not isinstance(item, dict):
                raise CorruptStore(
                    f"Entry {index} in {self.path} is not an object",
                    details={"index": index},
                )
            try:
                records.append(KeyRecord.from_dict(item))
            except TypeError as e:
                raise CorruptStore(
                    f"Entry {index} in {self.path} has missing or invalid fields",
                    details={"index": index},
                ) from e
        return records

    async def _write(self, records: List[KeyRecord]):
        """重写整个集合 (先写临时文件再替换)"""
        self._ensure_dir()
        payload = json.dumps(
            {"version": SCHEMA_VERSION, "keys": [r.to_dict() for r in records]},
            indent=2,
            ensure_ascii=False,
        )
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save API keys to {self.path}: {e}")
            raise StorageUnavailable(f"Could not write API key store at {self.path}") from e

    @staticmethod
    def _find(records: List[KeyRecord], key_id: str) -> Tuple[int, Optional[KeyRecord]]:
        for idx, record in enumerate(records):
            if record.id == key_id:
                return idx, record
        return -1, None

    async def list(self) -> List[KeyRecord]:
        """列出所有密钥记录 (文件不存在时返回空列表)"""
        return await self._read()

    async def get(self, key_id: str) -> KeyRecord:
        """按 id 获取记录

        Raises:
            NotFound: 记录不存在
        """
        _, record = self._find(await self._read(), key_id)
        if record is None:
            raise NotFound(f"API key with ID {key_id} not found")
        return record

    async def add(self, service: str, name: str, secret: str,
                  categories: Optional[List[str]] = None, notes: str = "") -> KeyRecord:
        """添加 API 密钥

        Args:
            service: 服务名称
            name: 密钥名称，同一服务下唯一
            secret: 密钥值
            categories: 分类标签
            notes: 备注

        Returns:
            新创建的记录

        Raises:
            DuplicateKey: (service, name) 已存在
            InvalidField: 必填字段为空
        """
        service = _clean_label("service", service)
        name = _clean_label("name", name)
        if not isinstance(secret, str) or not secret:
            raise InvalidField("'secret' must be a non-empty string")

        records = await self._read()
        if any(r.service == service and r.name == name for r in records):
            raise DuplicateKey(
                f"API key for service '{service}' with name '{name}' already exists.",
                details={"service": service, "name": name},
            )

        now = self._now()
        record = KeyRecord(
            id=str(uuid.uuid4()),
            service=service,
            name=name,
            secret=secret,
            categories=_clean_categories(categories),
            notes=notes or "",
            created_at=now,
            updated_at=now,
        )
        records.append(record)
        await self._write(records)

        logger.info(f"API key added: {service}/{name} ({record.id})")
        return record

    async def update(self, key_id: str, **changes) -> KeyRecord:
        """合并更新记录字段

        未出现在 changes 中的字段保持不变，updated_at 总是刷新。

        Raises:
            InvalidField: 字段不可修改或未知
            NotFound: 记录不存在
            DuplicateKey: 新的 (service, name) 与其他记录冲突
        """
        for key in changes:
            if key not in _MUTABLE_FIELDS:
                raise InvalidField(f"Field '{key}' cannot be updated", details={"field": key})
        if "service" in changes:
            changes["service"] = _clean_label("service", changes["service"])
        if "name" in changes:
            changes["name"] = _clean_label("name", changes["name"])
        if "secret" in changes and (not isinstance(changes["secret"], str) or not changes["secret"]):
            raise InvalidField("'secret' must be a non-empty string")
        if "categories" in changes:
            changes["categories"] = _clean_categories(changes["categories"])
        if "notes" in changes and changes["notes"] is None:
            changes["notes"] = ""

        records = await self._read()
        idx, record = self._find(records, key_id)
        if record is None:
            raise NotFound(f"API key with ID {key_id} not found")

        service = changes.get("service", record.service)
        name = changes.get("name", record.name)
        if any(r.id != key_id and r.service == service and r.name == name for r in records):
            raise DuplicateKey(
                f"API key for service '{service}' with name '{name}' already exists.",
                details={"service": service, "name": name},
            )

        for key, value in changes.items():
            setattr(record, key, value)
        record.updated_at = self._now()
        records[idx] = record
        await self._write(records)

        logger.info(f"API key updated: {record.service}/{record.name} ({key_id}) fields={sorted(changes)}")
        return record

    async def touch_last_used(self, key_id: str) -> Optional[str]:
        """记录最近使用时间 (尽力而为，找不到或失败时静默)

        Returns:
            写入的时间戳，未写入时为 None
        """
        try:
            records = await self._read()
            _, record = self._find(records, key_id)
            if record is None:
                return None
            record.last_used_at = self._now()
            await self._write(records)
            return record.last_used_at
        except Exception as e:
            logger.error(f"Error updating last used timestamp for {key_id}: {e}")
            return None

    async def remove(self, key_id: str):
        """删除记录

        Raises:
            NotFound: 记录不存在
        """
        records = await self._read()
        remaining = [r for r in records if r.id != key_id]
        if len(remaining) == len(records):
            raise NotFound(f"API key with ID {key_id} not found")

        await self._write(remaining)
        logger.info(f"API key deleted: {key_id}")

    async def categories(self) -> List[str]:
        """所有分类 (去重、排序)"""
        from .query import collect_categories

        return collect_categories(await self._read())

    async def by_category(self, category: str) -> List[KeyRecord]:
        """属于指定分类的记录"""
        return [r for r in await self._read() if category in r.categories]
