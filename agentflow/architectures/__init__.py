"""
组合架构模块
============

用 Graph 搭建常见的多 Worker 协作结构：

- Pipe: 线性链
- Supervisor / Team: 由 supervisor 路由的星形结构
- Vote: 并行投票后汇总
- Planner: 由模型动态设计的图
"""

from agentflow.architectures.base import Architecture, validate_workers
from agentflow.architectures.pipe import Pipe
from agentflow.architectures.supervisor import Supervisor, Team
from agentflow.architectures.vote import Vote
from agentflow.architectures.planner import (
    EdgeDesign,
    GraphDesign,
    OutputProperty,
    Planner,
    RouteRule,
    WorkerDefinition,
)

__all__ = [
    "Architecture",
    "validate_workers",
    "Pipe",
    "Supervisor",
    "Team",
    "Vote",
    "Planner",
    "GraphDesign",
    "EdgeDesign",
    "RouteRule",
    "WorkerDefinition",
    "OutputProperty",
]
