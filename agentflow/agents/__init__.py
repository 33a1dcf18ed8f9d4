"""
智能体模块
==========

提供直接调用模型的 Agent。组合多个 Worker 的结构见 agentflow.architectures。
"""

from agentflow.agents.base import Agent

__all__ = [
    "Agent",
]
