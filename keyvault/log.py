"""
日志配置

所有模块通过 loguru.logger 输出，这里只负责配置输出目标。
"""

import sys
from typing import Optional

from loguru import logger


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """配置日志输出

    Args:
        level: 日志级别
        log_file: 日志文件路径 (可选，按大小轮转)
    """
    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
