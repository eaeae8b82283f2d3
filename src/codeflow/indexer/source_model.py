"""
源码模型接口

图构建器只通过这个接口访问源码：声明枚举、标识符解析、引用查找、
文本与位置。具体实现见 ts_source_model（Tree-sitter），测试中可替换为假实现。

构造体（construct）对构建器来说是不透明的句柄，只要求可哈希，
且相等性表示“同一个语法元素”而不是结构相同。
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Hashable, List


class ConstructKind(str, Enum):
    """构建器关心的语法元素种类（封闭集合）"""
    VARIABLE_DECLARATION = "variable_declaration"
    FUNCTION_DECLARATION = "function_declaration"
    METHOD_DECLARATION = "method_declaration"
    CLASS_DECLARATION = "class_declaration"
    FUNCTION_EXPRESSION = "function_expression"
    ARROW_FUNCTION = "arrow_function"
    CALL_EXPRESSION = "call_expression"
    ARGUMENT = "argument"
    IDENTIFIER = "identifier"
    PROPERTY_ACCESS = "property_access"
    OTHER = "other"


FUNCTION_LIKE_KINDS = frozenset({ConstructKind.FUNCTION_EXPRESSION, ConstructKind.ARROW_FUNCTION})

Construct = Hashable


class SourceModel(ABC):
    """源码语义模型（声明、调用、解析、引用）"""

    # --------------------------
    # 声明枚举
    # --------------------------

    @abstractmethod
    def source_files(self) -> List[Any]:
        """已加载的源文件"""

    @abstractmethod
    def variable_declarations(self, source_file: Any) -> List[Construct]:
        """文件顶层的变量声明（每个声明符一个）"""

    @abstractmethod
    def function_declarations(self, source_file: Any) -> List[Construct]:
        """文件顶层的函数声明"""

    @abstractmethod
    def class_declarations(self, source_file: Any) -> List[Construct]:
        """文件顶层的类声明"""

    @abstractmethod
    def methods(self, class_declaration: Construct) -> List[Construct]:
        """类中的方法声明"""

    @abstractmethod
    def file_name(self, source_file: Any) -> str:
        """源文件路径（用于日志）"""

    # --------------------------
    # 结构查询
    # --------------------------

    @abstractmethod
    def kind(self, construct: Construct) -> ConstructKind:
        """构造体种类"""

    @abstractmethod
    def parent(self, construct: Construct) -> Construct:
        """父节点，不存在时抛出 StructuralError"""

    @abstractmethod
    def enclosing_statement(self, declaration: Construct) -> Construct:
        """变量声明所在的声明语句，不存在时抛出 StructuralError"""

    @abstractmethod
    def statement_declarations(self, statement: Construct) -> List[Construct]:
        """声明语句中的全部变量声明"""

    @abstractmethod
    def initializer(self, declaration: Construct) -> Construct:
        """变量的初始化表达式，不存在时抛出 StructuralError"""

    @abstractmethod
    def is_exported(self, declaration: Construct) -> bool:
        """变量是否导出"""

    @abstractmethod
    def body(self, function_like: Construct) -> Construct:
        """函数、方法或函数表达式的函数体，不存在时抛出 StructuralError"""

    @abstractmethod
    def nested_calls(self, construct: Construct) -> List[Construct]:
        """构造体内部（不含自身）的全部调用表达式，按文档顺序"""

    @abstractmethod
    def callee(self, call: Construct) -> Construct:
        """调用表达式的被调用部分"""

    @abstractmethod
    def arguments(self, call: Construct) -> List[Construct]:
        """调用表达式的实参位置（每个实参一个构造体，区别于实参表达式本身）"""

    @abstractmethod
    def argument_expression(self, argument: Construct) -> Construct:
        """实参位置上的表达式"""

    # --------------------------
    # 语义查询
    # --------------------------

    @abstractmethod
    def definitions(self, identifier: Construct) -> List[Construct]:
        """标识符解析到的声明（可以为空）"""

    @abstractmethod
    def references(self, declaration: Construct) -> List[Construct]:
        """变量在全部已分析文件中的引用标识符（包含声明处自身）"""

    # --------------------------
    # 文本与位置
    # --------------------------

    @abstractmethod
    def text(self, construct: Construct) -> str:
        """构造体源码文本"""

    @abstractmethod
    def file_path(self, construct: Construct) -> str:
        """构造体所在文件的绝对路径"""

    @abstractmethod
    def start_line(self, construct: Construct) -> int:
        """起始行号（从 1 开始）"""

    @abstractmethod
    def symbol_name(self, construct: Construct) -> str:
        """声明的符号名，不存在时抛出 StructuralError"""

    def is_function_like(self, construct: Construct) -> bool:
        return self.kind(construct) in FUNCTION_LIKE_KINDS
