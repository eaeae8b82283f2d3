"""
代码流图构建模块

基于 Tree-sitter 的 TypeScript/JavaScript 源码模型与调用/数据流图构建
"""

from .source_model import ConstructKind, SourceModel
from .flow_graph_builder import FlowGraphBuilder
from .ts_source_model import TSSourceModel
from .code_flow_indexer import CodeFlowIndexer

__all__ = ["ConstructKind", "SourceModel", "FlowGraphBuilder", "TSSourceModel", "CodeFlowIndexer"]
