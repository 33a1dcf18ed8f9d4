"""
状态定义模块
============

定义在图中流转的状态容器与路径工具。

图引擎并不关心状态的结构，只把它当作调用方持有的结构化值整体传递。
State 是 Agent 生命周期钩子使用的可变容器，支持用点路径读写嵌套字段，
例如 "weather.humidity" 或 "items.0.name"。
"""

import re
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T", bound=Dict[str, Any])

_MISSING = object()
_PATH_TOKEN = re.compile(r"[^.\[\]]+")

PathKey = Union[str, int]


def split_path(path: str) -> List[PathKey]:
    """
    拆分点路径

    "a.b[0].c" 与 "a.b.0.c" 均拆分为 ["a", "b", 0, "c"]。

    Args:
        path: 点路径

    Returns:
        路径片段列表，纯数字片段转为 int
    """
    if not isinstance(path, str) or not path:
        raise ValueError(f"无效的路径: {path!r}")
    parts: List[PathKey] = []
    for token in _PATH_TOKEN.findall(path):
        parts.append(int(token) if token.isdigit() else token)
    if not parts:
        raise ValueError(f"无效的路径: {path!r}")
    return parts


def get_path(data: Any, path: str, default: Any = None) -> Any:
    """
    按点路径读取嵌套值

    Args:
        data: 映射、列表或 pydantic 模型
        path: 点路径
        default: 路径不存在时的返回值

    Returns:
        路径对应的值
    """
    current = data
    for part in split_path(path):
        if isinstance(current, BaseModel):
            current = current.model_dump()
        if isinstance(current, Mapping):
            if part in current:
                current = current[part]
            elif isinstance(part, int) and str(part) in current:
                current = current[str(part)]
            else:
                return default
        elif isinstance(current, (list, tuple)) and isinstance(part, int):
            if -len(current) <= part < len(current):
                current = current[part]
            else:
                return default
        else:
            return default
    return current


def has_path(data: Any, path: str) -> bool:
    """判断点路径是否存在"""
    return get_path(data, path, _MISSING) is not _MISSING


def set_path(data: Mapping[str, Any], path: str, value: Any) -> Dict[str, Any]:
    """
    按点路径写入嵌套值（写时复制）

    沿路径的每一层都会被复制，原始数据不会被修改；缺失的中间层以字典补齐。

    Args:
        data: 原始映射
        path: 点路径
        value: 要写入的值

    Returns:
        写入后的新字典
    """
    parts = split_path(path)
    return _set_in(data, parts, value)


def _set_in(container: Any, parts: List[PathKey], value: Any) -> Any:
    head, rest = parts[0], parts[1:]

    if isinstance(container, list) and isinstance(head, int):
        copied = list(container)
        while len(copied) <= head:
            copied.append(None)
        copied[head] = _set_in(copied[head], rest, value) if rest else value
        return copied

    copied_map: Dict[Any, Any] = dict(container) if isinstance(container, Mapping) else {}
    key = head if not isinstance(head, int) else (head if head in copied_map else str(head))
    if rest:
        copied_map[key] = _set_in(copied_map.get(key), rest, value)
    else:
        copied_map[key] = value
    return copied_map


def snapshot(state: Any) -> Mapping[str, Any]:
    """
    获取状态的只读映射视图

    Args:
        state: State、映射或 pydantic 模型

    Returns:
        映射
    """
    if isinstance(state, State):
        return state.get_state()
    if isinstance(state, BaseModel):
        return state.model_dump()
    if isinstance(state, Mapping):
        return state
    return {}


class State(Generic[T]):
    """
    可变状态容器

    每次写入都会替换内部字典（写时复制），因此通过 get_state() 取得的快照
    不会被之后的写入影响。
    """

    def __init__(self, initial_state: Optional[Mapping[str, Any]] = None):
        self._state: Dict[str, Any] = dict(initial_state or {})

    def get_state(self) -> Dict[str, Any]:
        """返回状态的浅拷贝"""
        return dict(self._state)

    def update_nested_key(self, path: str, value: Any) -> None:
        """
        按点路径更新嵌套字段

        Args:
            path: 点路径，如 "weather.humidity"
            value: 新值
        """
        self._state = set_path(self._state, path, value)

    def get_nested_key_value_pair(self, path: str) -> Optional[Dict[str, Any]]:
        """
        读取嵌套字段，并以最后一段路径作为键返回

        Args:
            path: 点路径

        Returns:
            {最后一段: 值}，路径不存在时返回 None
        """
        value = get_path(self._state, path, _MISSING)
        if value is _MISSING:
            return None
        last = split_path(path)[-1]
        return {str(last): value}

    def get_key_value_pair(self, key: str) -> Dict[str, Any]:
        """读取顶层字段"""
        return {key: self._state.get(key)}

    def __contains__(self, path: str) -> bool:
        return has_path(self._state, path)

    def __repr__(self) -> str:
        return f"State({self._state!r})"
