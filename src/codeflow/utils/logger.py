"""
日志配置工具

控制台输出带颜色，文件输出按大小轮转；级别和文件位置来自配置的 log_level / log_file
"""

import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .config import Config

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = True
) -> List[int]:
    """
    替换 loguru 的全部处理器

    Args:
        log_level: 日志级别
        log_file: 日志文件路径，为None时不写文件
        enable_console: 是否输出到 stderr
        enable_file: 是否写日志文件

    Returns:
        新增处理器的ID列表
    """
    logger.remove()
    handler_ids = []

    if enable_console:
        handler_ids.append(logger.add(sys.stderr, level=log_level, format=CONSOLE_FORMAT, colorize=True))

    if enable_file and log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler_ids.append(logger.add(
            str(log_path),
            level=log_level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="7 days",
            compression="zip",
        ))

    logger.info(f"codeflow 日志已初始化，级别: {log_level}")
    return handler_ids


def setup_logger_from_config(config: Config, enable_console: bool = True) -> List[int]:
    """按配置项 log_level / log_file 初始化日志"""
    return setup_logger(
        log_level=str(config.get('log_level', 'INFO')).upper(),
        log_file=config.get('log_file'),
        enable_console=enable_console,
    )
