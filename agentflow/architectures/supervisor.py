"""
Supervisor 架构
===============

星形拓扑：START -> supervisor，supervisor 根据状态中的 router 字段
（{"done": bool, "next": "<worker 名称>"}）选择下一个 Worker 或 END，
每个 Worker 执行完后回到 supervisor。

supervisor 通常是一个 json 输出的 Agent，用 set_value("router") 把
决策写入状态。
"""

from typing import Any, Optional, Sequence

from agentflow.architectures.base import Architecture, validate_workers
from agentflow.config.settings import Settings
from agentflow.graph.edges import route_by_router
from agentflow.graph.graph import Graph
from agentflow.graph.nodes import START, is_worker
from agentflow.utils.logger import EventLogger


class Supervisor(Architecture):
    """
    由 supervisor 决定调用顺序的团队

    Example:
        >>> team = Supervisor(
        ...     name="research_team",
        ...     supervisor=router_agent,
        ...     workers=[search_agent, writer_agent],
        ... )
        >>> result = await team.invoke({"topic": "LLM"}, "写一篇综述")
    """

    def __init__(
        self,
        name: str,
        supervisor: Any,
        workers: Sequence[Any],
        description: str = "",
        *,
        router_field: str = "router",
        event_logger: Optional[EventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(name, description, event_logger=event_logger, settings=settings)
        if not is_worker(supervisor):
            raise ValueError(f'"{name}" 的 supervisor 必须实现 invoke')
        self.supervisor = supervisor
        self.workers = validate_workers(name, workers)
        if any(w is supervisor for w in self.workers):
            raise ValueError(f'"{name}" 的 supervisor 不能同时作为 Worker')
        self.router_field = router_field

    def build_graph(self) -> Graph:
        graph = self.new_graph()
        graph.add_edge(START, self.supervisor)
        graph.add_conditional_edge(self.supervisor, route_by_router(self.workers, self.router_field))
        for worker in self.workers:
            graph.add_edge(worker, self.supervisor)
        return graph


Team = Supervisor
