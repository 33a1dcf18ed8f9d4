"""
Pipe 架构
=========

线性链：START -> w1 -> w2 -> ... -> wn -> END
"""

from typing import Any, Optional, Sequence

from agentflow.architectures.base import Architecture, validate_workers
from agentflow.config.settings import Settings
from agentflow.graph.graph import Graph
from agentflow.graph.nodes import END, START
from agentflow.utils.logger import EventLogger


class Pipe(Architecture):
    """按顺序依次调用 Worker，前一个的状态传给后一个"""

    def __init__(
        self,
        name: str,
        workers: Sequence[Any],
        description: str = "",
        *,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(name, description, event_logger=event_logger, settings=settings)
        self.workers = validate_workers(name, workers)

    def build_graph(self) -> Graph:
        graph = self.new_graph()
        previous: Any = START
        for worker in self.workers:
            graph.add_edge(previous, worker)
            previous = worker
        graph.add_edge(previous, END)
        return graph
