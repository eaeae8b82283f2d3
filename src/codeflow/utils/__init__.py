"""
工具模块

提供配置管理、日志设置和错误类型
"""

from .config import Config
from .logger import setup_logger, setup_logger_from_config
from .errors import CodeFlowError, StructuralError, GraphIntegrityError

__all__ = ["Config", "setup_logger", "setup_logger_from_config", "CodeFlowError", "StructuralError", "GraphIntegrityError"]
