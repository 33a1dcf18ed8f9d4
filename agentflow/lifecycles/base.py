"""
生命周期基础模块
================

Agent 在一次调用中会依次执行三类钩子：

- prompt_injections：调用模型之前，根据状态向提示词追加内容
- result_evaluations：每次模型返回后，评估解析出的 JSON 结果，决定是否重试
- state_manipulations：最终结果确定后，把结果中的字段写回状态

三类钩子都返回 ActionResult，预期内的失败通过 passed=False 表达，而不是抛出异常。
"""

import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Union

from agentflow.types import ActionResult

ActionOutcome = Union[ActionResult, Awaitable[ActionResult]]


async def maybe_await(value: Any) -> Any:
    """值是 awaitable 时等待它，否则原样返回"""
    if inspect.isawaitable(value):
        return await value
    return value


class ResultEvaluation(Protocol):
    """结果评估：field 为被评估的字段（组合评估为描述性名称）"""

    field: str

    def run(self, result: Any) -> ActionOutcome: ...


class PromptInjection(Protocol):
    field: str

    def run(self, state: Any) -> ActionOutcome: ...


class StateManipulation(Protocol):
    target: str

    def run(self, result: Any, state: Any) -> ActionOutcome: ...


@dataclass
class Lifecycle:
    """
    Agent 生命周期配置

    Example:
        >>> lifecycle = Lifecycle(
        ...     prompt_injections=[focus_on("city")],
        ...     result_evaluations=[is_set("temperature")],
        ...     state_manipulations=[set_value("temperature", "weather.temperature")],
        ... )
    """

    prompt_injections: List[PromptInjection] = field(default_factory=list)
    result_evaluations: List[ResultEvaluation] = field(default_factory=list)
    state_manipulations: List[StateManipulation] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.prompt_injections or self.result_evaluations or self.state_manipulations)


class Action:
    """
    由普通函数构成的生命周期动作

    各个工厂函数（is_set、focus_on、set_value 等）都返回 Action，
    run 的签名由包装的函数决定。
    """

    def __init__(self, kind: str, field: str, fn: Callable[..., ActionOutcome], label: Optional[str] = None):
        self.kind = kind
        self.field = field
        self._fn = fn
        self.label = label or kind

    @property
    def target(self) -> str:
        return self.field

    def run(self, *args: Any) -> ActionOutcome:
        return self._fn(*args)

    def __repr__(self) -> str:
        return f"Action({self.label}, field={self.field!r})"
