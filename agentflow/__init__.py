"""
agentflow
=========

基于有向图的 LLM Agent 编排库。

主要特性：
- 直接边、条件边、并行边组成的执行图
- 带生命周期（提示注入、结果评估、状态写回）的 Agent
- Pipe / Supervisor / Vote / Planner 组合架构
- 可注入的事件日志

使用示例：
    >>> from agentflow import Agent, Pipe
    >>> pipe = Pipe("weather", [fetcher, reporter])
    >>> result = await pipe.invoke({"city": "Berlin"}, "写一份天气报告")
    >>> print(result.state)
"""

__version__ = "1.0.0"
__author__ = "agentflow Team"

from agentflow.config.settings import Settings, get_settings
from agentflow.types import InvocationResult, Message, OutputType, ParallelMerge
from agentflow.graph import END, START, Graph, State
from agentflow.lifecycles import Lifecycle
from agentflow.agents import Agent
from agentflow.architectures import Pipe, Planner, Supervisor, Team, Vote

__all__ = [
    "Graph",
    "START",
    "END",
    "State",
    "Agent",
    "Pipe",
    "Supervisor",
    "Team",
    "Vote",
    "Planner",
    "Lifecycle",
    "Message",
    "InvocationResult",
    "OutputType",
    "ParallelMerge",
    "Settings",
    "get_settings",
    "__version__",
]
