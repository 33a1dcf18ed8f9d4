"""
Vote 架构
=========

扇出/扇入：START 并行调用所有 Worker，全部完成后交给 synthesizer 汇总，
synthesizer -> END。
"""

from typing import Any, Optional, Sequence

from agentflow.architectures.base import Architecture, validate_workers
from agentflow.config.settings import Settings
from agentflow.graph.graph import Graph
from agentflow.graph.nodes import END, START, is_worker
from agentflow.types import MergeStrategy
from agentflow.utils.logger import EventLogger


class Vote(Architecture):
    """
    并行投票后汇总

    各分支收到相同的状态；分支结束后的状态按 merge 策略选择
    （默认取最后完成的分支）。需要保留所有分支结果时，可以传入 reducer。
    """

    def __init__(
        self,
        name: str,
        workers: Sequence[Any],
        synthesizer: Any,
        description: str = "",
        *,
        merge: Optional[MergeStrategy] = None,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(name, description, merge=merge, event_logger=event_logger, settings=settings)
        self.workers = validate_workers(name, workers)
        if synthesizer is None or not is_worker(synthesizer):
            raise ValueError(f'Vote "{name}" 必须提供 synthesizer')
        if any(w is synthesizer for w in self.workers):
            raise ValueError(f'Vote "{name}" 的 synthesizer 不能同时作为投票 Worker')
        self.synthesizer = synthesizer

    def build_graph(self) -> Graph:
        graph = self.new_graph()
        graph.add_parallel_edges(START, self.workers, self.synthesizer)
        graph.add_edge(self.synthesizer, END)
        return graph
