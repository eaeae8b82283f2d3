"""
图序列化

把节点/边注册表投影为交换文档 { nodes: [...], edges: [...] }，并写出 JSON。
节点的位置与源码文本通过源码模型获取。
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import os

from loguru import logger

from ..api.models import NodeType, EdgeType, NodeRecord, EdgeRecord, GraphDocument
from ..indexer.source_model import SourceModel
from ..utils.errors import GraphIntegrityError
from .graph_store import GraphStore, NodeInfo


class GraphSerializer:
    def __init__(self, store: GraphStore, model: SourceModel, root: Optional[Path] = None) -> None:
        self.store = store
        self.model = model
        self.root = Path(root) if root is not None else Path.cwd()

    def location(self, node: NodeInfo) -> str:
        file_path = self.model.file_path(node.construct)
        rel_path = Path(os.path.relpath(file_path, self.root)).as_posix()
        return f"{rel_path}:{self.model.start_line(node.construct)}"

    def _outgoing_ids(self, node: NodeInfo) -> List[int]:
        """出边ID（不含实参边）；非调用节点上出现实参边视为图损坏"""
        ids = []
        for edge in node.outgoing:
            if edge.type == EdgeType.ARGUMENT:
                if node.type != NodeType.CALL:
                    raise GraphIntegrityError(
                        f"cannot have argument edges in non-Call nodes: "
                        f"node {node.id} ({node.type.value}) edge {edge.id}"
                    )
                continue
            ids.append(edge.id)
        return ids

    def _node_data(self, node: NodeInfo) -> Dict[str, Any]:
        if node.type in (NodeType.FUNCTION, NodeType.OBJECT):
            return {"name": self.model.symbol_name(node.construct)}
        if node.type == NodeType.CALL:
            return {"args": [edge.id for edge in node.outgoing_of_type(EdgeType.ARGUMENT)]}
        return {}

    def node_records(self) -> List[NodeRecord]:
        records = []
        for node in self.store.nodes.values():
            records.append(NodeRecord(
                id=node.id,
                node_class=node.type,
                location=self.location(node),
                raw_source=self.model.text(node.construct),
                incoming=[edge.id for edge in node.incoming],
                outgoing=self._outgoing_ids(node),
                node_data=self._node_data(node),
            ))
        return records

    def edge_records(self) -> List[EdgeRecord]:
        return [
            EdgeRecord(
                id=edge.id,
                type=edge.type,
                source_node_id=edge.source.id,
                destination_node_id=edge.destination.id,
                label="",
            )
            for edge in self.store.edges.values()
        ]

    def to_document(self) -> GraphDocument:
        return GraphDocument(nodes=self.node_records(), edges=self.edge_records())

    def write_json(self, output_path: Path) -> GraphDocument:
        """序列化并写入文件（先完整生成文档，再落盘）"""
        document = self.to_document()
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(
            json.dumps(document.to_json_dict(), ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.info(f"图数据已写入 {output_path}：{len(document.nodes)} 个节点，{len(document.edges)} 条边")
        return document
