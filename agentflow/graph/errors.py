"""
图错误模块
==========

定义图构建与遍历过程中抛出的错误类型。

- 构建期错误：无效节点、重复边、超出容量
- 调用期错误：无效的 state / task / start_node
- 遍历期错误：未知节点、Worker 返回值格式错误、疑似循环依赖
- Worker 内部错误：包装后重新抛出，并附带 Worker 名称
"""

from typing import Optional


class GraphError(Exception):
    """所有图错误的基类"""


class GraphConstructionError(GraphError, ValueError):
    """构建图时违反约束"""


class InvalidNodeError(GraphConstructionError):
    """节点为 None 或不是合法的节点值"""


class DuplicateEdgeError(GraphConstructionError):
    """同一源节点上添加了重复的边"""


class GraphCapacityError(GraphConstructionError):
    """节点数或单节点边数超出上限"""


class InvalidInvocationError(GraphError, ValueError):
    """invoke 的输入参数无效"""


class RoutingError(GraphError):
    """条件函数在选择下一个节点时抛出异常"""


class UnknownNodeError(GraphError):
    """边解析出的节点在图中不存在"""


class InvalidWorkerResultError(GraphError):
    """Worker 返回值不是 {state, history} 结构"""


class CircularDependencyError(GraphError):
    """调用次数超过上限，疑似存在循环"""


class WorkerInvocationError(GraphError):
    """
    Worker 调用失败

    Attributes:
        worker_name: 出错的 Worker 名称
        cause: 原始异常
    """

    def __init__(self, worker_name: str, cause: Optional[BaseException] = None):
        self.worker_name = worker_name
        self.cause = cause
        super().__init__(f'调用 Worker "{worker_name}" 失败: {cause!r}')
