"""
图引擎模块
==========

Graph 是编排的核心：节点之间用直接边、条件边和并行边连接，invoke 从起始
节点出发依次调用 Worker，直到到达 END 或没有可用的出边。

遍历规则：
- 每个节点按边的添加顺序依次解析，第一个给出目标的边生效
- 条件边返回 None 表示"无路由"，继续尝试下一条边
- 所有边都没有给出目标时视为到达 END
- 没有任何出边的节点是死胡同，遍历静默结束
- 并行边并发调用所有目标 Worker，全部完成后跳转到 next

同一个 Graph 实例同时只允许一个 invoke 运行；同一调用链内的嵌套调用
（包括并行分支中的调用）可以重入。
"""

import asyncio
import inspect
from contextvars import ContextVar
from typing import Any, Dict, FrozenSet, Hashable, List, Mapping, Optional, Sequence, Tuple

from pydantic import ValidationError

from agentflow.config.settings import Settings, get_settings
from agentflow.graph.edges import (
    ConditionalEdge,
    DirectEdge,
    Edge,
    ParallelEdge,
    describe,
    edges_equal,
    resolve,
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
from agentflow.graph.nodes import (
    END,
    START,
    NodeKind,
    classify,
    is_valid_node,
    node_key,
    node_name,
)
from agentflow.types import InvocationResult, MergeStrategy, Message, ParallelMerge
from agentflow.utils.logger import EventLogger, NullEventLogger, emit_event, get_logger

logger = get_logger(__name__)

# 当前调用链已持有的图（按 id），子任务会继承这份上下文
_held_graphs: ContextVar[FrozenSet[int]] = ContextVar("agentflow_held_graphs", default=frozenset())

_SCALAR_TYPES = (str, bytes, int, float, bool)


def _is_structured(value: Any) -> bool:
    return value is not None and not isinstance(value, _SCALAR_TYPES)


def _describe_target(target: Any) -> str:
    if isinstance(target, list):
        return "[" + ", ".join(node_name(n) for n in target) + "]"
    return node_name(target) if target is not None else END


class Graph:
    """
    编排图

    Graph 本身也满足 Worker 协议，可以作为节点嵌入到另一个 Graph 中。

    Example:
        >>> graph = Graph("weather")
        >>> graph.add_edge(START, researcher)
        >>> graph.add_edge(researcher, writer)
        >>> result = await graph.invoke({"city": "Berlin"}, "写一份天气报告")
    """

    def __init__(
        self,
        name: str = "graph",
        description: str = "",
        *,
        max_nodes: Optional[int] = None,
        max_edges_per_node: Optional[int] = None,
        max_invocations: Optional[int] = None,
        merge: Optional[MergeStrategy] = None,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        """
        初始化图

        Args:
            name: 图名称
            description: 图描述
            max_nodes: 最大源节点数，None 使用配置
            max_edges_per_node: 单个节点的最大出边数，None 使用配置
            max_invocations: 单次 invoke 的最大调用次数，None 使用配置
            merge: 并行分支的状态合并策略，None 使用配置
            event_logger: 事件日志器，默认不输出
            settings: 配置对象，None 使用全局配置
        """
        settings = settings or get_settings()

        self._name = name
        self._description = description
        self.max_nodes = max_nodes if max_nodes is not None else settings.graph_max_nodes
        self.max_edges_per_node = (
            max_edges_per_node if max_edges_per_node is not None else settings.graph_max_edges_per_node
        )
        self.max_invocations = (
            max_invocations if max_invocations is not None else settings.graph_max_invocations
        )
        self.merge: MergeStrategy = merge if merge is not None else settings.parallel_merge
        self.event_logger: EventLogger = event_logger or NullEventLogger()

        self._edges: Dict[Hashable, List[Edge]] = {}
        self._sources: Dict[Hashable, Any] = {}
        self._lock = asyncio.Lock()

        logger.debug(f"创建图: {name}")

    # ==================== 属性 ====================

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def nodes(self) -> List[Any]:
        """所有源节点（按注册顺序）"""
        return list(self._sources.values())

    def get_edges(self, node: Any) -> List[Edge]:
        """获取节点的出边（副本）"""
        if not is_valid_node(node):
            return []
        return list(self._edges.get(node_key(node), []))

    def has_node(self, node: Any) -> bool:
        """
        判断节点是否可以作为遍历目标

        START / END 与任意 Worker 实例总是有效；其他字符串必须已经作为源节点注册过。
        """
        if not is_valid_node(node):
            return False
        kind = classify(node)
        if kind is NodeKind.LABEL:
            return node_key(node) in self._edges
        return True

    # ==================== 构建 ====================

    def add_edge(self, source: Any, target: Any) -> "Graph":
        """
        添加直接边

        Args:
            source: 源节点
            target: 目标节点

        Returns:
            self，支持链式调用

        Raises:
            InvalidNodeError: 节点无效
            GraphCapacityError: 超出容量
            DuplicateEdgeError: 重复的边
        """
        self._validate_node(source, "源")
        self._validate_node(target, "目标")
        return self._append(source, DirectEdge(to=target))

    def add_conditional_edge(self, source: Any, fn: Any) -> "Graph":
        """
        添加条件边

        fn 接收当前状态，返回下一个节点；返回 None 表示本条边不给出路由。

        Args:
            source: 源节点
            fn: 条件函数

        Returns:
            self
        """
        self._validate_node(source, "源")
        if not callable(fn):
            raise GraphConstructionError(f"条件边需要一个可调用对象，收到: {type(fn).__name__}")
        return self._append(source, ConditionalEdge(fn=fn))

    def add_parallel_edges(self, source: Any, targets: Sequence[Any], next: Any = END) -> "Graph":
        """
        添加并行边

        Args:
            source: 源节点
            targets: 并发调用的目标节点
            next: 所有分支完成后的下一个节点，默认 END

        Returns:
            self
        """
        self._validate_node(source, "源")
        if isinstance(targets, (str, bytes)) or not isinstance(targets, Sequence) or not targets:
            raise InvalidNodeError("并行边的目标必须是非空的节点列表")
        for target in targets:
            self._validate_node(target, "并行目标")

        if next is None:
            next = END
        self._validate_node(next, "next")
        if isinstance(next, str) and not self.has_node(next):
            logger.warning(f'并行边的 next 节点 "{next}" 尚未注册，遍历时必须存在')

        return self._append(source, ParallelEdge(to=tuple(targets), next=next))

    def _validate_node(self, node: Any, role: str) -> None:
        if node is None:
            raise InvalidNodeError(f"{role}节点不能为 None")
        if not is_valid_node(node):
            raise InvalidNodeError(f"{role}节点必须是字符串或 Worker，收到: {type(node).__name__}")

    def _append(self, source: Any, edge: Edge) -> "Graph":
        key = node_key(source)
        existing = self._edges.get(key)

        if existing is None and len(self._edges) >= self.max_nodes:
            raise GraphCapacityError(f"节点数超出上限 {self.max_nodes}")
        if existing is not None and len(existing) >= self.max_edges_per_node:
            raise GraphCapacityError(
                f'节点 "{node_name(source)}" 的出边数超出上限 {self.max_edges_per_node}'
            )
        if existing is not None and any(edges_equal(e, edge) for e in existing):
            raise DuplicateEdgeError(f'节点 "{node_name(source)}" 已存在相同的边: {describe(edge)}')

        if existing is None:
            existing = self._edges[key] = []
            self._sources[key] = source
        existing.append(edge)

        logger.debug(f"[{self._name}] 添加边 {node_name(source)}: {describe(edge)}")
        return self

    # ==================== 调用 ====================

    async def invoke(self, state: Any, task: str, start_node: Any = START) -> InvocationResult:
        """
        从起始节点开始遍历图

        Args:
            state: 初始状态（结构化值，不能是 None 或标量）
            task: 任务描述
            start_node: 起始节点，默认 START

        Returns:
            InvocationResult，包含最终状态与按执行顺序拼接的消息历史

        Raises:
            InvalidInvocationError: 输入无效
            WorkerInvocationError: Worker 调用失败
            CircularDependencyError: 调用次数超出上限

        同一调用链内重入不会再次加锁（持有记录保存在 ContextVar 中）。
        Worker 用 asyncio.create_task 启动却不等待的调用同样继承这份记录，
        会与当前遍历并发执行，这种用法不受互斥保护。
        """
        held = _held_graphs.get()
        if id(self) in held:
            return await self._run(state, task, start_node)

        async with self._lock:
            token = _held_graphs.set(held | {id(self)})
            try:
                return await self._run(state, task, start_node)
            finally:
                _held_graphs.reset(token)

    def _validate_invocation(self, state: Any, task: Any, start_node: Any) -> None:
        if not _is_structured(state):
            raise InvalidInvocationError(f"state 必须是结构化的值，收到: {type(state).__name__}")
        if not isinstance(task, str) or not task:
            raise InvalidInvocationError("task 必须是非空字符串")
        if start_node is None:
            raise InvalidInvocationError("start_node 不能为 None")
        if not self.has_node(start_node):
            raise InvalidInvocationError(f'起始节点 "{node_name(start_node)}" 在图中不存在')

    async def _run(self, state: Any, task: str, start_node: Any) -> InvocationResult:
        self._validate_invocation(state, task, start_node)

        history: List[Message] = []
        visited: List[str] = []
        current = start_node
        invocations = 0

        logger.info(f"[{self._name}] 开始执行，起始节点: {node_name(start_node)}")

        while True:
            kind = classify(current)
            if kind is NodeKind.END:
                break

            invocations += 1
            if invocations > self.max_invocations:
                raise CircularDependencyError(
                    f"[{self._name}] 调用次数超过上限 {self.max_invocations}，可能存在循环依赖"
                )
            visited.append(node_name(current))

            if kind is NodeKind.WORKER:
                result = await self._call_worker(current, state, task)
                if result.state is not None:
                    state = result.state
                history.extend(result.history)

            edges = self._edges.get(node_key(current))
            if not edges:
                logger.debug(f'[{self._name}] 节点 "{node_name(current)}" 没有出边，结束遍历')
                break

            edge, target = self._pick_next(current, edges, state)
            self._log_edge(current, target)

            if target is None:
                current = END
                continue

            if isinstance(edge, ParallelEdge):
                for node in target:
                    self._ensure_exists(node)
                state, branch_history = await self._run_parallel(target, state, task)
                history.extend(branch_history)
                target = edge.next

            self._ensure_exists(target)
            current = target

        logger.info(f"[{self._name}] 执行完成: {' -> '.join(visited)}")
        return InvocationResult(state=state, history=history)

    def _pick_next(self, current: Any, edges: List[Edge], state: Any) -> Tuple[Optional[Edge], Any]:
        for edge in edges:
            try:
                target = resolve(edge, state)
            except GraphError:
                raise
            except Exception as e:
                raise RoutingError(
                    f'[{self._name}] 节点 "{node_name(current)}" 的条件函数出错: {e}'
                ) from e

            if target is None:
                continue
            if isinstance(edge, ConditionalEdge) and not is_valid_node(target):
                raise UnknownNodeError(
                    f'[{self._name}] 条件函数返回了无效节点: {target!r}'
                )
            return edge, target

        return None, None

    def _ensure_exists(self, node: Any) -> None:
        if not self.has_node(node):
            raise UnknownNodeError(f'[{self._name}] 下一个节点 "{node_name(node)}" 在图中不存在')

    async def _call_worker(self, worker: Any, state: Any, task: str) -> InvocationResult:
        name = node_name(worker)
        logger.debug(f"[{self._name}] 调用 Worker: {name}")
        try:
            raw = worker.invoke(state, task)
            if inspect.isawaitable(raw):
                raw = await raw
        except Exception as e:
            raise WorkerInvocationError(name, e) from e
        return self._validate_result(name, raw)

    def _validate_result(self, name: str, raw: Any) -> InvocationResult:
        if isinstance(raw, InvocationResult):
            new_state, history = raw.state, raw.history
        elif isinstance(raw, Mapping):
            new_state, history = raw.get("state"), raw.get("history")
        else:
            raise InvalidWorkerResultError(
                f'Worker "{name}" 返回了无效结果，应包含 state 与 history，收到: {type(raw).__name__}'
            )

        if new_state is not None and not _is_structured(new_state):
            raise InvalidWorkerResultError(f'Worker "{name}" 返回的 state 不是结构化的值')
        if history is None:
            history = []
        if isinstance(history, (str, bytes)) or not isinstance(history, Sequence):
            raise InvalidWorkerResultError(f'Worker "{name}" 返回的 history 必须是消息列表')

        try:
            messages = [m if isinstance(m, Message) else Message.model_validate(m) for m in history]
        except ValidationError as e:
            raise InvalidWorkerResultError(f'Worker "{name}" 返回的 history 格式错误: {e}') from e

        return InvocationResult(state=new_state, history=messages)

    async def _run_parallel(
        self, targets: Sequence[Any], state: Any, task: str
    ) -> Tuple[Any, List[Message]]:
        """
        并发调用所有 Worker 目标

        目标中的字符串节点已由调用方校验存在，不会被调用。消息按分支完成的先后顺序拼接。

        Returns:
            (合并后的状态, 消息历史)
        """
        branches = [(index, node) for index, node in enumerate(targets) if classify(node) is NodeKind.WORKER]
        if not branches:
            return state, []

        completed: List[Tuple[int, InvocationResult]] = []

        async def run_branch(index: int, node: Any) -> None:
            result = await self._call_worker(node, state, task)
            completed.append((index, result))

        tasks = [
            asyncio.create_task(run_branch(index, node), name=f"{self._name}:{node_name(node)}")
            for index, node in branches
        ]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        history = [message for _, result in completed for message in result.history]
        return self._merge_states(state, completed), history

    def _merge_states(self, state: Any, completed: List[Tuple[int, InvocationResult]]) -> Any:
        if isinstance(self.merge, ParallelMerge) or isinstance(self.merge, str):
            strategy = ParallelMerge(self.merge)
            if strategy is ParallelMerge.FIRST_BRANCH:
                ordered = sorted(completed, key=lambda item: item[0])
            else:
                ordered = list(reversed(completed))
            for _, result in ordered:
                if result.state is not None:
                    return result.state
            return state

        branch_states = [result.state for _, result in sorted(completed, key=lambda item: item[0])]
        merged = self.merge(state, branch_states)
        return state if merged is None else merged

    def _log_edge(self, current: Any, target: Any) -> None:
        logger.debug(f"[{self._name}] {node_name(current)} => {_describe_target(target)}")
        emit_event(self.event_logger, "edge", current, target)

    def __repr__(self) -> str:
        return f"Graph(name={self._name!r}, nodes={len(self._sources)})"
