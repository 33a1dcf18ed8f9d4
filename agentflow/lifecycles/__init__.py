"""
生命周期模块
============

Agent 调用过程中的钩子：提示注入、结果评估、状态操作。
"""

from agentflow.lifecycles.base import Action, Lifecycle, maybe_await
from agentflow.lifecycles.evaluations import (
    EVALUATIONS,
    and_,
    between,
    build_evaluation,
    contains,
    ends_with,
    eq,
    evaluate,
    gt,
    gte,
    is_empty,
    is_set,
    lt,
    lte,
    matches,
    neq,
    not_contains,
    not_empty,
    or_,
    starts_with,
)
from agentflow.lifecycles.prompt_injections import choose_between, focus_on
from agentflow.lifecycles.state_manipulations import push_value, set_value

__all__ = [
    # Base
    "Action",
    "Lifecycle",
    "maybe_await",
    # Evaluations
    "EVALUATIONS",
    "build_evaluation",
    "is_set",
    "gt",
    "lt",
    "gte",
    "lte",
    "eq",
    "neq",
    "between",
    "contains",
    "not_contains",
    "not_empty",
    "is_empty",
    "starts_with",
    "ends_with",
    "matches",
    "evaluate",
    "and_",
    "or_",
    # Prompt injections
    "focus_on",
    "choose_between",
    # State manipulations
    "set_value",
    "push_value",
]
