"""
代码流图索引器

加载源文件 -> 构建代码流图 -> 导出 JSON 文档
"""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional, Union

from loguru import logger

from ..api.models import GraphDocument
from ..storage.graph_serializer import GraphSerializer
from ..storage.graph_store import GraphStore
from ..utils.config import Config
from ..utils.logger import setup_logger_from_config
from .flow_graph_builder import FlowGraphBuilder
from .ts_source_model import TSSourceModel


class CodeFlowIndexer:
    """代码流图索引器（Tree-sitter）"""

    def __init__(self, config: Optional[Config] = None, setup_logging: bool = False):
        """
        初始化索引器

        Args:
            config: 配置，为None时使用默认配置
            setup_logging: 是否按配置的 log_level / log_file 重新初始化日志
        """
        self.config = config or Config()
        if setup_logging:
            setup_logger_from_config(self.config)
        self.model = TSSourceModel()
        self.root = self.config.get_project_root()
        self.store: Optional[GraphStore] = None

        logger.info(f"代码流图索引器初始化完成，根目录: {self.root}")

    def set_root(self, root: Union[str, Path]) -> None:
        """设置节点位置的相对根目录，同时作为 glob 的基准目录"""
        self.root = Path(root).resolve()

    def add_source_files(self, globs: Union[str, Iterable[str]]) -> List[Path]:
        """
        按 glob 模式添加源文件

        Args:
            globs: glob 模式（相对于根目录，支持 **）

        Returns:
            新加载的文件列表
        """
        if isinstance(globs, str):
            globs = [globs]

        matched = set()
        for pattern in globs:
            if Path(pattern).is_absolute():
                anchor = Path(Path(pattern).anchor)
                candidates = anchor.glob(str(Path(pattern).relative_to(anchor)))
            else:
                candidates = self.root.glob(pattern)
            for file_path in candidates:
                if self.config.is_supported_file(file_path):
                    matched.add(file_path.resolve())

        loaded = []
        for file_path in sorted(matched):
            if self.model.add_file(file_path) is not None:
                loaded.append(file_path)

        logger.info(f"加载 {len(loaded)} 个源文件（模式: {', '.join(globs)}）")
        return loaded

    def build(self) -> GraphStore:
        """构建代码流图（每次构建使用新的注册表）"""
        start_time = time.time()
        limit = int(self.config.get('recursion_limit', 0) or 0)
        if limit > sys.getrecursionlimit():
            sys.setrecursionlimit(limit)

        store = GraphStore(edge_key_includes_type=bool(self.config.get('edge_key_includes_type', False)))
        builder = FlowGraphBuilder(self.model, store, export_only=bool(self.config.get('export_only', True)))
        self.store = builder.build()
        self.store.log_nodes(self.model.text)

        logger.info(f"构建耗时 {time.time() - start_time:.2f}s")
        return self.store

    def serializer(self) -> GraphSerializer:
        if self.store is None:
            raise RuntimeError("尚未构建代码流图，请先调用 build()")
        return GraphSerializer(self.store, self.model, self.root)

    def to_document(self) -> GraphDocument:
        return self.serializer().to_document()

    def write_json(self, output_path: Optional[Union[str, Path]] = None) -> GraphDocument:
        output = Path(output_path) if output_path is not None else self.config.get_output_path()
        return self.serializer().write_json(output)

    def index(
        self,
        globs: Optional[Union[str, Iterable[str]]] = None,
        output_path: Optional[Union[str, Path]] = None,
    ) -> GraphDocument:
        """
        完整流程：加载文件、构建、写出 JSON

        Args:
            globs: glob 模式，为None时使用配置中的 source_globs
            output_path: 输出文件，为None时使用配置中的 output_file

        Returns:
            导出的图文档
        """
        self.add_source_files(globs if globs is not None else self.config.get_source_globs())
        self.build()
        return self.write_json(output_path)
