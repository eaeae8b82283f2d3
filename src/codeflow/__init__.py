"""
codeflow

把 TypeScript/JavaScript 源码转换为去重的有向调用/数据流图
"""

from .indexer import CodeFlowIndexer, FlowGraphBuilder, TSSourceModel
from .storage import GraphStore, GraphSerializer
from .utils import Config, setup_logger

__version__ = "0.1.0"

__all__ = [
    "CodeFlowIndexer", "FlowGraphBuilder", "TSSourceModel",
    "GraphStore", "GraphSerializer", "Config", "setup_logger",
]
