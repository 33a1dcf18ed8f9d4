"""
提示注入模块
============

在调用模型之前，根据当前状态向 Agent 的任务描述追加内容。
"""

import json
from typing import Any, Optional, Sequence

from agentflow.config.prompts import get_prompt
from agentflow.graph.state import get_path, snapshot, split_path
from agentflow.lifecycles.base import Action
from agentflow.types import ActionResult

_MISSING = object()


def _to_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def focus_on(field: Optional[str] = None) -> Action:
    """
    让模型关注状态中的某个字段

    field 为 None 时提供整个状态。

    Args:
        field: 点路径

    Returns:
        提示注入动作
    """

    def run(state: Any) -> ActionResult:
        data = snapshot(state)
        if not field:
            return ActionResult(passed=True, reason=get_prompt("STATE_OVERVIEW", state=_to_json(data)))

        value = get_path(data, field, _MISSING)
        if value is _MISSING:
            return ActionResult(passed=False, reason=f'Field "{field}" does not exist in the state.')

        last = str(split_path(field)[-1])
        return ActionResult(passed=True, reason=get_prompt("FOCUS_ON", value=_to_json({last: value})))

    return Action("prompt_injection", field or "state", run, label="focus_on")


def choose_between(workers: Sequence[Any]) -> Action:
    """
    列出可选的 Worker 供模型选择（Supervisor 使用）

    Args:
        workers: Worker 列表

    Returns:
        提示注入动作
    """
    options = [
        {"name": getattr(w, "name", ""), "description": getattr(w, "description", "")}
        for w in workers
    ]

    def run(state: Any) -> ActionResult:
        reason = get_prompt(
            "CHOOSE_BETWEEN",
            workers=_to_json(options),
            state=_to_json(snapshot(state)),
        )
        return ActionResult(passed=True, reason=reason)

    return Action("prompt_injection", "workers", run, label="choose_between")
