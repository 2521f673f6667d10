"""
密钥列表查询

对已加载的记录做纯函数式的搜索、分类过滤与排序，不访问存储。
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .storage import KeyRecord

ALL_CATEGORIES = "All"

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """解析 ISO 时间戳，无时区时按 UTC 处理，无法解析返回 None"""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def search(records: Iterable[KeyRecord], text: Optional[str]) -> List[KeyRecord]:
    """按名称、服务、分类、备注做不区分大小写的子串匹配

    空查询返回全部记录；查询不去除空白。
    """
    records = list(records)
    needle = (text or "").lower()
    if not needle:
        return records

    def matches(record: KeyRecord) -> bool:
        return (
            needle in record.name.lower()
            or needle in record.service.lower()
            or any(needle in cat.lower() for cat in record.categories)
            or needle in (record.notes or "").lower()
        )

    return [r for r in records if matches(r)]


def filter_by_category(records: Iterable[KeyRecord], category: Optional[str]) -> List[KeyRecord]:
    """按分类精确过滤，ALL_CATEGORIES 或 None 表示不过滤"""
    if category is None or category == ALL_CATEGORIES:
        return list(records)
    return [r for r in records if category in r.categories]


def sort_by_last_used(records: Iterable[KeyRecord]) -> List[KeyRecord]:
    """按最近使用时间降序，从未使用的排在最后"""
    return sorted(
        records,
        key=lambda r: parse_timestamp(r.last_used_at) or _NEVER,
        reverse=True,
    )


def collect_categories(records: Iterable[KeyRecord]) -> List[str]:
    """所有分类的并集，去重排序"""
    categories = set()
    for record in records:
        categories.update(record.categories)
    return sorted(categories)


def apply_view(records: Iterable[KeyRecord], text: Optional[str] = "",
               category: Optional[str] = ALL_CATEGORIES) -> List[KeyRecord]:
    """搜索 -> 分类过滤 -> 排序"""
    return sort_by_last_used(filter_by_category(search(records, text), category))
