"""
状态操作模块
============

在 Agent 得到最终结果后，把结果 JSON 中的字段写回状态。

结果是一条 Message，其 content 为 JSON 字符串（或已解析的映射）。
"""

import json
from typing import Any, Optional

from agentflow.graph.state import State, get_path
from agentflow.lifecycles.base import Action
from agentflow.types import ActionResult
from agentflow.utils.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


def _parse_content(result: Any) -> Any:
    content = getattr(result, "content", result)
    if isinstance(content, (str, bytes)):
        return json.loads(content)
    return content


def _read_source(result: Any, source: str) -> Any:
    try:
        parsed = _parse_content(result)
    except ValueError as e:
        raise ValueError(f"结果不是有效的 JSON: {e}") from e
    return get_path(parsed, source, _MISSING)


def set_value(source: str, target: Optional[str] = None) -> Action:
    """
    把结果中的 source 字段写入状态的 target 路径

    Args:
        source: 结果中的点路径
        target: 状态中的点路径，默认与 source 相同

    Returns:
        状态操作动作
    """
    target = target or source

    def run(result: Any, state: State) -> ActionResult:
        try:
            value = _read_source(result, source)
        except ValueError as e:
            logger.warning(f"[StateManipulation] set {target} 失败: {e}")
            return ActionResult(passed=False, reason=f"Error processing set operation: {e}")

        if value is _MISSING:
            return ActionResult(passed=False, reason=f'Key "{source}" not found in result.')

        state.update_nested_key(target, value)
        return ActionResult(passed=True, reason="State manipulation successful.")

    return Action("state_manipulation", target, run, label="set")


def push_value(source: str, target: Optional[str] = None) -> Action:
    """
    把结果中的 source 字段追加到状态中 target 路径的列表

    target 不存在时视为空列表。

    Args:
        source: 结果中的点路径
        target: 状态中的点路径，默认与 source 相同

    Returns:
        状态操作动作
    """
    target = target or source

    def run(result: Any, state: State) -> ActionResult:
        try:
            value = _read_source(result, source)
        except ValueError as e:
            logger.warning(f"[StateManipulation] push {target} 失败: {e}")
            return ActionResult(passed=False, reason=f"Error processing push operation: {e}")

        if value is _MISSING:
            return ActionResult(passed=False, reason=f'Key "{source}" not found in result.')

        current = get_path(state.get_state(), target, [])
        if not isinstance(current, list):
            return ActionResult(passed=False, reason=f'Target path "{target}" is not an array.')

        state.update_nested_key(target, [*current, value])
        return ActionResult(passed=True, reason="State manipulation successful.")

    return Action("state_manipulation", target, run, label="push")
