"""
节点模块
========

定义图中的节点种类。

节点要么是 START / END 哨兵字符串，要么是 Worker 实例（Agent 或组合架构）。
Worker 按身份区分：两个同名的 Worker 是两个不同的节点。遍历逻辑统一基于
NodeKind 进行分派，而不是在各处做类型判断。
"""

from enum import Enum
from typing import Any, Hashable

START = "START"
END = "END"


class NodeKind(str, Enum):
    """节点种类"""
    START = "start"
    END = "end"
    LABEL = "label"
    WORKER = "worker"


def is_worker(node: Any) -> bool:
    """判断对象是否满足 Worker 协议（具有可调用的 invoke）"""
    if node is None or isinstance(node, str):
        return False
    return callable(getattr(node, "invoke", None))


def is_valid_node(node: Any) -> bool:
    """节点只能是字符串或 Worker 实例"""
    return isinstance(node, str) or is_worker(node)


def classify(node: Any) -> NodeKind:
    """
    对节点进行分类

    Args:
        node: 节点

    Returns:
        NodeKind

    Raises:
        TypeError: 既不是字符串也不是 Worker
    """
    if node == START:
        return NodeKind.START
    if node == END:
        return NodeKind.END
    if isinstance(node, str):
        return NodeKind.LABEL
    if is_worker(node):
        return NodeKind.WORKER
    raise TypeError(f"无效的节点类型: {type(node).__name__}")


def node_key(node: Any) -> Hashable:
    """边表使用的键：字符串按值，Worker 按身份"""
    if isinstance(node, str):
        return node
    return ("worker", id(node))


def same_node(a: Any, b: Any) -> bool:
    """判断两个节点是否相同"""
    if isinstance(a, str) or isinstance(b, str):
        return a == b
    return a is b


def node_name(node: Any) -> str:
    """节点的可读名称"""
    if node is None:
        return "None"
    if isinstance(node, str):
        return node
    return str(getattr(node, "name", None) or type(node).__name__)
