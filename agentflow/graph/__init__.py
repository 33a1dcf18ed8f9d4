"""
图模块
======

提供编排图的构建与遍历功能。

核心组件：
- Graph: 图引擎
- START / END: 起止哨兵节点
- State: 生命周期钩子使用的可变状态容器
- route_by_router: Supervisor 的路由函数
"""

from agentflow.graph.nodes import END, START, NodeKind
from agentflow.graph.state import State, get_path, has_path, set_path, snapshot
from agentflow.graph.edges import (
    ConditionalEdge,
    DirectEdge,
    Edge,
    ParallelEdge,
    route_by_router,
)
from agentflow.graph.errors import (
    CircularDependencyError,
    DuplicateEdgeError,
    GraphCapacityError,
    GraphConstructionError,
    GraphError,
    InvalidInvocationError,
    InvalidNodeError,
    InvalidWorkerResultError,
    RoutingError,
    UnknownNodeError,
    WorkerInvocationError,
)
from agentflow.graph.graph import Graph

__all__ = [
    # Nodes
    "START",
    "END",
    "NodeKind",
    # State
    "State",
    "get_path",
    "has_path",
    "set_path",
    "snapshot",
    # Edges
    "Edge",
    "DirectEdge",
    "ConditionalEdge",
    "ParallelEdge",
    "route_by_router",
    # Errors
    "GraphError",
    "GraphConstructionError",
    "InvalidNodeError",
    "DuplicateEdgeError",
    "GraphCapacityError",
    "InvalidInvocationError",
    "RoutingError",
    "UnknownNodeError",
    "InvalidWorkerResultError",
    "CircularDependencyError",
    "WorkerInvocationError",
    # Graph
    "Graph",
]
