"""
图文档数据模型

定义节点/边类型和导出 JSON 文档的数据结构
"""

from typing import List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum


class NodeType(str, Enum):
    """节点类型枚举"""
    FUNCTION = "Function"
    CALL = "Call"
    ARGUMENT = "Argument"
    OBJECT = "Object"
    ANY = "Any"


class EdgeType(str, Enum):
    """边类型枚举"""
    CHILD = "Child"        # 结构包含 / 展平后的调用目标
    ARGUMENT = "Argument"  # 调用 -> 实参
    CALL = "Call"          # 绑定 -> 使用处的调用


class NodeRecord(BaseModel):
    """节点记录模型"""
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="节点ID（按创建顺序从0开始）")
    node_class: NodeType = Field(..., alias="class", description="节点类型")
    location: str = Field(..., description="相对路径:起始行号")
    raw_source: str = Field("", description="源码文本")
    incoming: List[int] = Field(default_factory=list, description="入边ID列表")
    outgoing: List[int] = Field(default_factory=list, description="出边ID列表（不含实参边）")
    node_data: Dict[str, Any] = Field(default_factory=dict, description="类型相关数据")


class EdgeRecord(BaseModel):
    """边记录模型"""
    id: int = Field(..., description="边ID（按创建顺序从0开始）")
    type: EdgeType = Field(..., description="边类型")
    source_node_id: int = Field(..., description="源节点ID")
    destination_node_id: int = Field(..., description="目标节点ID")
    label: str = Field("", description="标注（预留）")


class GraphDocument(BaseModel):
    """导出文档模型"""
    nodes: List[NodeRecord] = Field(default_factory=list, description="节点列表")
    edges: List[EdgeRecord] = Field(default_factory=list, description="边列表")

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
