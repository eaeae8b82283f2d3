"""
Shared fixtures: 在临时目录中写入 TypeScript 源码并构建代码流图
"""

from pathlib import Path
from typing import Dict

import pytest

from codeflow.api.models import EdgeType, GraphDocument, NodeType
from codeflow.indexer.code_flow_indexer import CodeFlowIndexer
from codeflow.utils.config import Config


class BuiltProject:
    """构建结果与查询辅助"""

    def __init__(self, indexer: CodeFlowIndexer) -> None:
        self.indexer = indexer
        self.store = indexer.store
        self.document: GraphDocument = indexer.to_document()

    def nodes(self, node_type: NodeType):
        return [n for n in self.document.nodes if n.node_class == node_type]

    def node(self, node_type: NodeType, raw_source: str):
        matches = [n for n in self.nodes(node_type) if n.raw_source == raw_source]
        assert len(matches) == 1, f"expected one {node_type.value} node for {raw_source!r}, got {len(matches)}"
        return matches[0]

    def named(self, node_type: NodeType, name: str):
        matches = [n for n in self.nodes(node_type) if n.node_data.get("name") == name]
        assert len(matches) == 1, f"expected one {node_type.value} node named {name!r}, got {len(matches)}"
        return matches[0]

    def edges(self, source, destination):
        return [
            e for e in self.document.edges
            if e.source_node_id == source.id and e.destination_node_id == destination.id
        ]

    def has_edge(self, source, destination, edge_type: EdgeType) -> bool:
        return any(e.type == edge_type for e in self.edges(source, destination))


@pytest.fixture
def write_project(tmp_path: Path):
    """写入文件并构建；返回 BuiltProject"""

    def _build(files: Dict[str, str], globs=("**/*.ts",), **options) -> BuiltProject:
        for name, text in files.items():
            path = tmp_path / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")

        config = Config()
        config.update({"project_root": str(tmp_path), "source_globs": list(globs), **options})
        indexer = CodeFlowIndexer(config)
        indexer.add_source_files(config.get_source_globs())
        indexer.build()
        return BuiltProject(indexer)

    return _build
