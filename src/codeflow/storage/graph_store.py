"""
代码流图存储

- 节点注册表：每个语法构造体（按身份）对应唯一节点，ID 按创建顺序递增
- 边注册表：每个（源节点, 目标节点）对对应唯一边，ID 按创建顺序递增
- 维护每个节点的入边/出边邻接表

节点注册表同时是构建器的递归守卫：构造体已存在时构建器必须停止展开。
"""
from __future__ import annotations

from typing import Dict, Hashable, List, Optional, Tuple
import json

from loguru import logger

from ..api.models import NodeType, EdgeType


class NodeInfo:
    """图节点"""

    def __init__(self, construct: Hashable, node_id: int, node_type: NodeType) -> None:
        # 源码模型中的构造体句柄
        self.construct = construct
        self.id = node_id
        self.type = node_type
        self.incoming: List[EdgeInfo] = []
        self.outgoing: List[EdgeInfo] = []

    def add_incoming(self, edge: EdgeInfo) -> None:
        self.incoming.append(edge)

    def add_outgoing(self, edge: EdgeInfo) -> None:
        self.outgoing.append(edge)

    def outgoing_of_type(self, edge_type: EdgeType) -> List[EdgeInfo]:
        return [edge for edge in self.outgoing if edge.type == edge_type]

    def __repr__(self) -> str:
        return f"NodeInfo(id={self.id}, type={self.type.value})"


class EdgeInfo:
    """图边（引用两端节点，但不拥有它们）"""

    def __init__(self, source: NodeInfo, destination: NodeInfo, edge_id: int, edge_type: EdgeType) -> None:
        self.source = source
        self.destination = destination
        self.id = edge_id
        self.type = edge_type

    def __repr__(self) -> str:
        return f"EdgeInfo(id={self.id}, {self.source.id} -{self.type.value}-> {self.destination.id})"


class GraphStore:
    def __init__(self, edge_key_includes_type: bool = False) -> None:
        self.nodes: Dict[int, NodeInfo] = {}
        self.edges: Dict[int, EdgeInfo] = {}
        self._construct_to_node: Dict[Hashable, NodeInfo] = {}
        self._edge_index: Dict[Tuple, EdgeInfo] = {}
        self.edge_key_includes_type = edge_key_includes_type
        self.next_node_id = 0
        self.next_edge_id = 0

    # --------------------------
    # 节点注册表
    # --------------------------

    def get_or_create_node(self, construct: Hashable, node_type: NodeType) -> Tuple[NodeInfo, bool]:
        """返回 (节点, 是否新建)。已存在时原样返回，忽略请求的类型。"""
        existing = self._construct_to_node.get(construct)
        if existing is not None:
            return existing, False

        node = NodeInfo(construct, self.next_node_id, node_type)
        self.nodes[node.id] = node
        self._construct_to_node[construct] = node
        self.next_node_id += 1
        return node, True

    def add_node(self, construct: Hashable, node_type: NodeType) -> NodeInfo:
        return self.get_or_create_node(construct, node_type)[0]

    def find_node(self, construct: Hashable) -> Optional[NodeInfo]:
        return self._construct_to_node.get(construct)

    # --------------------------
    # 边注册表
    # --------------------------

    def _edge_key(self, source: NodeInfo, destination: NodeInfo, edge_type: EdgeType) -> Tuple:
        if self.edge_key_includes_type:
            return (source.id, destination.id, edge_type)
        return (source.id, destination.id)

    def get_or_create_edge(
        self, source: NodeInfo, destination: NodeInfo, edge_type: EdgeType
    ) -> Tuple[EdgeInfo, bool]:
        """
        返回 (边, 是否新建)。

        默认按 (源, 目标) 去重：同一对节点之间已有边时，
        即使请求的类型不同也返回已有的边。
        """
        key = self._edge_key(source, destination, edge_type)
        existing = self._edge_index.get(key)
        if existing is not None:
            if existing.type != edge_type:
                logger.debug(
                    f"边 {source.id}->{destination.id} 已存在（{existing.type.value}），"
                    f"丢弃 {edge_type.value} 请求"
                )
            return existing, False

        edge = EdgeInfo(source, destination, self.next_edge_id, edge_type)
        self.edges[edge.id] = edge
        self._edge_index[key] = edge
        source.add_outgoing(edge)
        destination.add_incoming(edge)
        self.next_edge_id += 1
        return edge, True

    def add_edge(self, source: NodeInfo, destination: NodeInfo, edge_type: EdgeType) -> EdgeInfo:
        return self.get_or_create_edge(source, destination, edge_type)[0]

    # --------------------------
    # 查询与调试输出
    # --------------------------

    def stats(self) -> Dict[str, int]:
        return {"nodes": len(self.nodes), "edges": len(self.edges)}

    def describe_node(self, node: NodeInfo, text: str = "") -> str:
        """节点的调试描述：文本、入边来源节点、出边目标节点"""
        info = {
            "id": node.id,
            "text": text,
            "incoming": [edge.source.id for edge in node.incoming],
            "outgoing": [edge.destination.id for edge in node.outgoing],
        }
        return json.dumps(info, ensure_ascii=False, indent=2)

    def log_nodes(self, text_of=None) -> None:
        """以 debug 级别输出所有节点"""
        logger.debug("All nodes:")
        # 惰性求值：未启用 DEBUG 时不生成描述
        for node in self.nodes.values():
            logger.opt(lazy=True).debug(
                "{}", lambda node=node: self.describe_node(node, text_of(node.construct) if text_of else "")
            )
