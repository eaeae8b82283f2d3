"""
代码流图构建器

对每个遇到的声明和调用点决定：创建（或复用）哪个节点、画哪些边、递归展开哪些子构造体。

约定：所有 process_* 方法返回代表该构造体的节点，刻意跳过的构造体返回 None。
节点注册表是唯一的递归守卫：构造体已有节点时直接返回，不再展开，
因此相互递归、自引用的代码也能终止。
"""
from __future__ import annotations

from typing import Callable, Dict, Hashable, Optional

from loguru import logger

from ..api.models import NodeType, EdgeType
from ..storage.graph_store import GraphStore, NodeInfo
from .source_model import ConstructKind, SourceModel


class FlowGraphBuilder:
    """基于源码模型的代码流图构建器"""

    def __init__(self, model: SourceModel, store: Optional[GraphStore] = None, export_only: bool = True) -> None:
        self.model = model
        self.store = store if store is not None else GraphStore()
        self.export_only = export_only

        # 标识符解析出的声明按种类分派；未列出的种类一律作为 Any 叶子节点
        self._definition_handlers: Dict[ConstructKind, Callable[[Hashable], Optional[NodeInfo]]] = {
            ConstructKind.VARIABLE_DECLARATION: lambda d: self.process_variable_declaration(d, export_only=False),
            ConstructKind.FUNCTION_DECLARATION: self.process_function_declaration,
        }

    def build(self) -> GraphStore:
        """遍历全部源文件，饱和节点和边"""
        for source_file in self.model.source_files():
            logger.info(f"Processing: {self.model.file_name(source_file)}")
            self.process_variables(source_file)
            self.process_functions(source_file)
            self.process_classes(source_file)

        stats = self.store.stats()
        logger.info(f"代码流图构建完成，节点 {stats['nodes']} 个，边 {stats['edges']} 条")
        return self.store

    # --------------------------
    # 文件级入口
    # --------------------------

    def process_variables(self, source_file) -> None:
        for variable in self.model.variable_declarations(source_file):
            statement = self.model.enclosing_statement(variable)
            for declaration in self.model.statement_declarations(statement):
                self.process_variable_declaration(declaration, export_only=self.export_only)

    def process_functions(self, source_file) -> None:
        for func in self.model.function_declarations(source_file):
            self.process_function_declaration(func)

    def process_classes(self, source_file) -> None:
        for class_ in self.model.class_declarations(source_file):
            self.process_class(class_)

    def process_class(self, class_) -> None:
        for method in self.model.methods(class_):
            self.process_method_declaration(method)

    # --------------------------
    # 构造体处理
    # --------------------------

    def process_variable_declaration(self, declaration, export_only: bool = True) -> Optional[NodeInfo]:
        """
        处理变量声明：

        1. `const f = () => {...}` / `const f = function () {...}`：函数节点，
           函数体内的每个调用作为子节点。
        2. `const a = <object>`：对象节点，查找所有形如 `a.thing(...args)` 的使用处，
           画 `a -> a.thing(...args)` 的 Call 边并处理该调用。
        """
        if export_only and not self.model.is_exported(declaration):
            return None

        init = self.model.initializer(declaration)
        function_like = self.model.is_function_like(init)
        node_type = NodeType.FUNCTION if function_like else NodeType.OBJECT

        source, is_new = self.store.get_or_create_node(declaration, node_type)
        if not is_new:
            return source

        if function_like:
            self._link_calls_within(source, self.model.body(init))
            return source

        # 对象：检查所有引用
        for reference in self.model.references(declaration):
            # 必须是调用表达式的 callee，例如 `a.thing` 之于 `a.thing(...)`
            member = self.model.parent(reference)
            call = self.model.parent(member)
            if self.model.kind(call) != ConstructKind.CALL_EXPRESSION:
                continue
            if self.model.callee(call) != member:
                continue
            call_info = self.process_call_expression(call)
            self.store.add_edge(source, call_info, EdgeType.CALL)

        return source

    def process_function_declaration(self, func) -> NodeInfo:
        source, is_new = self.store.get_or_create_node(func, NodeType.FUNCTION)
        if not is_new:
            return source
        self._link_calls_within(source, self.model.body(func))
        return source

    def process_method_declaration(self, method) -> NodeInfo:
        source, is_new = self.store.get_or_create_node(method, NodeType.FUNCTION)
        if not is_new:
            return source
        self._link_calls_within(source, self.model.body(method))
        return source

    def process_call_expression(self, call) -> NodeInfo:
        """
        处理 `thing(...args)` 或 `a.thing(...args)`。

        callee 是裸标识符时跳转到其定义并处理，再把定义节点的 Child 出边
        直接接到本调用节点上（展平一层声明间接）。属性访问形式的 callee 不做解析。
        """
        source, is_new = self.store.get_or_create_node(call, NodeType.CALL)
        if not is_new:
            return source

        callee = self.model.callee(call)
        if self.model.kind(callee) == ConstructKind.IDENTIFIER:
            for definition in self.model.definitions(callee):
                definition_info = self.process_definition(definition)
                if definition_info is None:
                    continue
                # 定义节点可能仍在展开中（递归），此时只拼接已有的边
                for edge in list(definition_info.outgoing_of_type(EdgeType.CHILD)):
                    self.store.add_edge(source, edge.destination, EdgeType.CHILD)

        for argument in self.model.arguments(call):
            arg_info = self.process_argument(argument)
            self.store.add_edge(source, arg_info, EdgeType.ARGUMENT)

        return source

    def process_argument(self, argument) -> NodeInfo:
        source, is_new = self.store.get_or_create_node(argument, NodeType.ARGUMENT)
        if not is_new:
            return source
        self._link_calls_within(source, self.model.argument_expression(argument))
        return source

    def process_definition(self, definition) -> Optional[NodeInfo]:
        handler = self._definition_handlers.get(self.model.kind(definition))
        if handler is None:
            return self.store.add_node(definition, NodeType.ANY)
        return handler(definition)

    # --------------------------
    # 工具方法
    # --------------------------

    def _link_calls_within(self, source: NodeInfo, construct) -> None:
        """construct 自身及其内部的每个调用表达式作为 source 的子节点"""
        calls = list(self.model.nested_calls(construct))
        if self.model.kind(construct) == ConstructKind.CALL_EXPRESSION:
            calls.insert(0, construct)
        for call in calls:
            call_info = self.process_call_expression(call)
            self.store.add_edge(source, call_info, EdgeType.CHILD)
