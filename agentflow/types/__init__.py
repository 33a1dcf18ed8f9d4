"""
类型模块
========

导出系统共享的数据类型。
"""

from agentflow.types.types import (
    ActionResult,
    InvocationResult,
    MergeStrategy,
    Message,
    OutputType,
    ParallelMerge,
    Role,
    StateReducer,
    Worker,
)

__all__ = [
    "ActionResult",
    "InvocationResult",
    "MergeStrategy",
    "Message",
    "OutputType",
    "ParallelMerge",
    "Role",
    "StateReducer",
    "Worker",
]
