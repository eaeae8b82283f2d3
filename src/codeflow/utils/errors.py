"""
错误类型

图构建只有两类错误，均为致命错误，直接终止整个构建：
- StructuralError: 源码结构不满足前提（缺少函数体、初始化表达式、外层声明语句等）
- GraphIntegrityError: 序列化时发现图本身不一致（构建逻辑缺陷）
"""
from __future__ import annotations

from typing import Optional


class CodeFlowError(Exception):
    """codeflow 错误基类"""


class StructuralError(CodeFlowError):
    """源码结构前提不成立"""

    def __init__(self, message: str, location: Optional[str] = None) -> None:
        self.location = location
        if location:
            message = f"{message} ({location})"
        super().__init__(message)


class GraphIntegrityError(CodeFlowError):
    """图完整性校验失败"""
