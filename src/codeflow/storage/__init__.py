"""
存储模块导出
"""

from .graph_store import GraphStore, NodeInfo, EdgeInfo
from .graph_serializer import GraphSerializer

__all__ = ["GraphStore", "NodeInfo", "EdgeInfo", "GraphSerializer"]
