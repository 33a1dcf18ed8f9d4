"""
边与路由模块
============

定义图中的三种边以及组合架构使用的路由函数。

- DirectEdge：无条件跳转到单个后继节点
- ConditionalEdge：根据当前状态计算后继节点，返回 None 表示"无路由"
- ParallelEdge：并发调用多个节点，全部完成后汇合到 next（默认 END）
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Tuple, Union

from agentflow.graph.nodes import END, node_name, same_node
from agentflow.graph.state import get_path, snapshot
from agentflow.utils.logger import get_logger

logger = get_logger(__name__)

ConditionFunction = Callable[[Any], Any]


@dataclass(frozen=True, eq=False)
class DirectEdge:
    """直接边"""
    to: Any
    kind: str = "direct"


@dataclass(frozen=True, eq=False)
class ConditionalEdge:
    """条件边"""
    fn: ConditionFunction
    kind: str = "conditional"


@dataclass(frozen=True, eq=False)
class ParallelEdge:
    """并行边"""
    to: Tuple[Any, ...]
    next: Any = END
    kind: str = "parallel"


Edge = Union[DirectEdge, ConditionalEdge, ParallelEdge]


def edges_equal(a: Edge, b: Edge) -> bool:
    """
    判断两条边是否重复

    - 直接边：目标相同
    - 条件边：同一个函数对象
    - 并行边：目标序列（有序）与 next 都相同

    Args:
        a: 边
        b: 边

    Returns:
        是否重复
    """
    if type(a) is not type(b):
        return False
    if isinstance(a, DirectEdge):
        return same_node(a.to, b.to)
    if isinstance(a, ConditionalEdge):
        return a.fn is b.fn
    if isinstance(a, ParallelEdge):
        return (
            len(a.to) == len(b.to)
            and all(same_node(x, y) for x, y in zip(a.to, b.to))
            and same_node(a.next, b.next)
        )
    return False


def resolve(edge: Edge, state: Any) -> Union[Any, Sequence[Any], None]:
    """
    解析边的目标

    Args:
        edge: 边
        state: 当前状态（条件函数读取它）

    Returns:
        单个节点、并行边的节点列表，或条件边的 None
    """
    if isinstance(edge, DirectEdge):
        return edge.to
    if isinstance(edge, ConditionalEdge):
        return edge.fn(state)
    if isinstance(edge, ParallelEdge):
        return list(edge.to)
    raise TypeError(f"未知的边类型: {type(edge).__name__}")


def describe(edge: Edge) -> str:
    """边的可读描述"""
    if isinstance(edge, DirectEdge):
        return f"direct -> {node_name(edge.to)}"
    if isinstance(edge, ConditionalEdge):
        return f"conditional ({getattr(edge.fn, '__name__', 'fn')})"
    targets = ", ".join(node_name(n) for n in edge.to)
    return f"parallel -> [{targets}] -> {node_name(edge.next)}"


def route_by_router(workers: Sequence[Any], field: str = "router") -> ConditionFunction:
    """
    Supervisor 的路由函数

    从状态的 router 字段读取 {done, next}：
    - done 为真：END
    - next 与某个 Worker 名称相同：该 Worker
    - 其他情况：END

    状态中没有 router 字段时返回 None，交由后续边或 END 处理。

    Args:
        workers: 可被路由到的 Worker 列表
        field: router 字段路径

    Returns:
        条件函数
    """

    def route_from_supervisor(state: Any) -> Optional[Any]:
        router = get_path(snapshot(state), field)
        if not router:
            logger.debug("[Route] supervisor -> 无 router 字段")
            return None

        if _read(router, "done"):
            logger.debug("[Route] supervisor -> END (done)")
            return END

        next_name = _read(router, "next")
        for worker in workers:
            if getattr(worker, "name", None) == next_name:
                logger.debug(f"[Route] supervisor -> {next_name}")
                return worker

        logger.debug(f"[Route] supervisor -> END (未找到 {next_name})")
        return END

    return route_from_supervisor


def _read(obj: Any, key: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)
