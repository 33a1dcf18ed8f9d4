"""
组合架构基础模块
================

组合架构只负责"搭边"：根据给定的 Worker 构建一种固定形状的 Graph，
遍历与状态传递全部交给 Graph 完成。每次 invoke 都会构建新的 Graph。
"""

from typing import Any, List, Optional, Sequence

from agentflow.config.settings import Settings, get_settings
from agentflow.graph.graph import Graph
from agentflow.graph.nodes import is_worker
from agentflow.types import InvocationResult, MergeStrategy
from agentflow.utils.logger import EventLogger, get_logger

logger = get_logger(__name__)


def validate_workers(owner: str, workers: Sequence[Any]) -> List[Any]:
    """
    校验 Worker 列表

    Args:
        owner: 所属架构名称（用于错误信息）
        workers: Worker 列表

    Returns:
        Worker 列表副本

    Raises:
        ValueError: 列表为空、包含非 Worker 或重复的 Worker
    """
    if isinstance(workers, (str, bytes)) or not isinstance(workers, Sequence) or not workers:
        raise ValueError(f'"{owner}" 需要非空的 Worker 列表')
    for worker in workers:
        if not is_worker(worker):
            raise ValueError(f'"{owner}" 的 Worker 必须实现 invoke，收到: {type(worker).__name__}')
    if len({id(w) for w in workers}) != len(workers):
        raise ValueError(f'"{owner}" 的 Worker 列表中存在重复的实例')
    return list(workers)


class Architecture:
    """
    组合架构基类

    子类实现 build_graph，返回本次调用使用的 Graph。
    """

    def __init__(
        self,
        name: str,
        description: str = "",
        *,
        merge: Optional[MergeStrategy] = None,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        if not isinstance(name, str) or not name:
            raise ValueError(f"{self.__class__.__name__} 名称必须是非空字符串")
        self._name = name
        self._description = description or ""
        self.merge = merge
        self.event_logger = event_logger
        self.settings = settings or get_settings()

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def new_graph(self) -> Graph:
        return Graph(
            name=self.name,
            description=self.description,
            merge=self.merge,
            event_logger=self.event_logger,
            settings=self.settings,
        )

    def build_graph(self) -> Graph:
        raise NotImplementedError

    async def invoke(self, state: Any, task: str) -> InvocationResult:
        """
        构建 Graph 并从 START 开始执行

        Args:
            state: 初始状态
            task: 任务描述

        Returns:
            Graph 的执行结果
        """
        logger.info(f"[{self.__class__.__name__}:{self.name}] 开始执行")
        graph = self.build_graph()
        return await graph.invoke(state, task)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
