"""
展示辅助

密钥遮罩、分类输入解析、最近使用时间格式化、常用服务列表。
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .query import parse_timestamp
from .storage import KeyRecord

MASK_CHAR = "•"
MASK_LENGTH = 8
VISIBLE_CHARS = 4

CUSTOM_SERVICE = "Custom"

# 常用服务及建议分类
SERVICE_PRESETS: List[Dict[str, str]] = [
    {"name": "ElevenLabs", "category": "Text-to-Speech"},
    {"name": "Operative", "category": "Web Evaluation Agent"},
    {"name": "OpenAI", "category": "Image Generation"},
    {"name": "Everart Forge", "category": "Image Generation"},
    {"name": "Brave Search", "category": "Web Search"},
    {"name": "Figma", "category": "Design Tool Integration"},
    {"name": "Perplexity", "category": "AI Search & Research"},
    {"name": "Firecrawl", "category": "Web Scraping"},
    {"name": "Resend", "category": "Email Sending"},
    {"name": CUSTOM_SERVICE, "category": "Other"},
]


def mask_secret(value: str) -> str:
    """遮罩密钥，只显示首尾各 4 个字符

    8 个字符及以下的值完全遮罩。
    """
    if len(value) <= MASK_LENGTH:
        return MASK_CHAR * MASK_LENGTH
    return f"{value[:VISIBLE_CHARS]}{MASK_CHAR * MASK_LENGTH}{value[-VISIBLE_CHARS:]}"


def parse_categories(text: Optional[str]) -> List[str]:
    """解析逗号分隔的分类输入，如 "work, personal, project-x" """
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def format_last_used(value: Optional[str], now: Optional[datetime] = None) -> str:
    """最近使用时间的相对描述"""
    used_at = parse_timestamp(value)
    if used_at is None:
        return "Never"

    now = now or datetime.now(timezone.utc)
    seconds = (now - used_at).total_seconds()

    if seconds < 60:
        return "just now"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''} ago"
    if seconds < 86400:
        hours = int(seconds // 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if seconds < 30 * 86400:
        days = int(seconds // 86400)
        return f"{days} day{'s' if days != 1 else ''} ago"
    return used_at.date().isoformat()


def describe(record: KeyRecord, reveal: bool = False) -> Dict[str, Any]:
    """记录的展示视图，默认遮罩密钥"""
    return {
        "id": record.id,
        "service": record.service,
        "name": record.name,
        "key": record.secret if reveal else mask_secret(record.secret),
        "categories": list(record.categories),
        "notes": record.notes,
        "last_used": format_last_used(record.last_used_at),
        "last_used_at": record.last_used_at,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
    }
