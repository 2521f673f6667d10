"""
剪贴板守卫

复制密钥到系统剪贴板，并在延迟后自动清除。
每个守卫实例最多只有一个待执行的清除任务，新的复制会替换旧任务。
"""

import asyncio
from typing import Optional

import pyperclip
from loguru import logger

from .errors import ClipboardUnavailable

DEFAULT_CLEAR_DELAY = 30.0


class MemoryClipboard:
    """进程内剪贴板 (无图形环境或测试时使用)"""

    def __init__(self, text: str = ""):
        self.text = text

    async def write(self, text: str):
        self.text = text

    async def read_text(self) -> str:
        return self.text

    async def clear(self):
        self.text = ""


class PyperclipBackend:
    """系统剪贴板，基于 pyperclip

    pyperclip 的调用是阻塞的，放到默认线程池中执行。
    """

    async def _run(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    async def write(self, text: str):
        await self._run(pyperclip.copy, text)

    async def read_text(self) -> str:
        return await self._run(pyperclip.paste) or ""

    async def clear(self):
        await self._run(pyperclip.copy, "")


class ClipboardGuard:
    """
    剪贴板守卫

    用法：
        guard = ClipboardGuard()
        await guard.copy_with_expiry(secret)       # 30 秒后清除
        await guard.copy_with_expiry(other, 5)     # 取消上一个清除任务，5 秒后清除
        guard.cancel()                             # 放弃清除，剪贴板保持不变
    """

    def __init__(self, backend=None, default_delay: float = DEFAULT_CLEAR_DELAY):
        """
        Args:
            backend: 剪贴板后端 (write / read_text / clear)，默认 PyperclipBackend
            default_delay: 默认清除延迟 (秒)
        """
        self.backend = backend or PyperclipBackend()
        self.default_delay = default_delay
        self._pending: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        """是否有待执行的清除任务"""
        return self._pending is not None and not self._pending.done()

    async def copy_with_expiry(self, value: str, delay: Optional[float] = None):
        """复制到剪贴板并安排自动清除

        Args:
            value: 要复制的文本
            delay: 清除延迟 (秒)，默认 default_delay

        Raises:
            ClipboardUnavailable: 写入剪贴板失败
        """
        delay = self.default_delay if delay is None else delay

        try:
            await self.backend.write(value)
        except Exception as e:
            logger.error(f"Failed to copy to clipboard: {type(e).__name__}")
            raise ClipboardUnavailable("Failed to copy to clipboard") from e

        self.cancel()
        self._pending = asyncio.create_task(self._clear_later(value, delay))
        logger.debug(f"Clipboard clear scheduled in {delay}s")

    def cancel(self):
        """取消待执行的清除任务，不触碰剪贴板"""
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    async def _clear_later(self, value: str, delay: float):
        """延迟后清除剪贴板 (仅当内容仍是复制的值)"""
        try:
            await asyncio.sleep(delay)
            current = await self.backend.read_text()
            if current == value:
                await self.backend.clear()
                logger.info("Clipboard cleared")
            else:
                logger.debug("Clipboard changed since copy, leaving it untouched")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Failed to clear clipboard: {type(e).__name__}")
        finally:
            if self._pending is asyncio.current_task():
                self._pending = None
