"""
图文档模块

导出 JSON 文档的数据模型与节点/边类型
"""

from .models import NodeType, EdgeType, NodeRecord, EdgeRecord, GraphDocument

__all__ = ["NodeType", "EdgeType", "NodeRecord", "EdgeRecord", "GraphDocument"]
