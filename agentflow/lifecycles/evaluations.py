"""
结果评估模块
============

对 Agent 输出的 JSON 结果做字段级检查。

字段用点路径定位（如 "weather.humidity"）。字段不存在时评估失败
（is_empty 例外：字段不存在视为通过）。失败原因统一以
"Evaluation unsuccessful: " 开头，Agent 会把它作为 system 消息反馈给模型。

EVALUATIONS 注册表把操作名映射到工厂函数，是 Planner 条件边使用的
封闭条件语言：只能组合这里注册过的操作，不会执行任何字符串代码。
"""

import asyncio
import json
import re
from typing import Any, Callable, Dict, List, Optional, Pattern, Sequence, Union

from langchain_core.messages import SystemMessage
from pydantic import BaseModel, Field

from agentflow.config.prompts import get_prompt
from agentflow.config.settings import get_settings
from agentflow.graph.state import get_path, has_path
from agentflow.lifecycles.base import Action, maybe_await
from agentflow.llm.factory import LLMFactory
from agentflow.types import ActionResult
from agentflow.utils.logger import get_logger

logger = get_logger(__name__)

SUCCESSFUL = "Evaluation successful"
UNSUCCESSFUL = "Evaluation unsuccessful: "

_MISSING = object()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _field_evaluation(
    op: str,
    field: str,
    condition: Callable[[Any], bool],
    failure: Callable[[Any], str],
) -> Action:
    if not isinstance(field, str) or not field:
        raise ValueError(f"评估字段必须是非空字符串，收到: {field!r}")

    def run(result: Any) -> ActionResult:
        value = get_path(result, field, _MISSING)
        if value is _MISSING:
            evaluation = ActionResult(
                passed=False,
                reason=f'{UNSUCCESSFUL}The field "{field}" does not exist in the result.',
            )
        else:
            passed = bool(condition(value))
            evaluation = ActionResult(
                passed=passed,
                reason=SUCCESSFUL if passed else f"{UNSUCCESSFUL}{failure(value)}",
            )
        logger.debug(f"[Evaluation] {op}({field}): {evaluation.passed}")
        return evaluation

    return Action("evaluation", field, run, label=op)


# ==================== 字段评估 ====================

def is_set(field: str) -> Action:
    """字段已设置：列表非空，其他值不为 None"""
    return _field_evaluation(
        "is_set",
        field,
        lambda v: len(v) > 0 if isinstance(v, list) else v is not None,
        lambda v: f'Field "{field}" is not set!',
    )


def gt(field: str, x: float) -> Action:
    """数值大于 x，或列表长度大于 x"""
    return _field_evaluation(
        "gt",
        field,
        lambda v: (isinstance(v, list) and len(v) > x) or (_is_number(v) and v > x),
        lambda v: f'Field "{field}" with value {v} is not greater than {x}!',
    )


def lt(field: str, x: float) -> Action:
    """数值小于 x，或列表长度小于 x"""
    return _field_evaluation(
        "lt",
        field,
        lambda v: (isinstance(v, list) and len(v) < x) or (_is_number(v) and v < x),
        lambda v: f'Field "{field}" with value {v} is not less than {x}!',
    )


def gte(field: str, x: float) -> Action:
    return _field_evaluation(
        "gte",
        field,
        lambda v: (isinstance(v, list) and len(v) >= x) or (_is_number(v) and v >= x),
        lambda v: f'Field "{field}" with value {v} is not greater than or equal to {x}!',
    )


def lte(field: str, x: float) -> Action:
    return _field_evaluation(
        "lte",
        field,
        lambda v: (isinstance(v, list) and len(v) <= x) or (_is_number(v) and v <= x),
        lambda v: f'Field "{field}" with value {v} is not less than or equal to {x}!',
    )


def eq(field: str, x: Any) -> Action:
    return _field_evaluation(
        "eq",
        field,
        lambda v: v == x,
        lambda v: f'Field "{field}" with value {v} is not equal to {x}!',
    )


def neq(field: str, x: Any) -> Action:
    return _field_evaluation(
        "neq",
        field,
        lambda v: v != x,
        lambda v: f'Field "{field}" with value {v} is equal to {x}!',
    )


def between(field: str, minimum: float, maximum: float) -> Action:
    """数值（或列表长度）在 [minimum, maximum] 之间"""
    return _field_evaluation(
        "between",
        field,
        lambda v: (_is_number(v) and minimum <= v <= maximum)
        or (isinstance(v, list) and minimum <= len(v) <= maximum),
        lambda v: f'Field "{field}" with value {v} is not between {minimum} and {maximum}!',
    )


def _contains(value: Any, element: Any) -> bool:
    if not isinstance(element, str):
        return False
    needle = element.lower()
    if isinstance(value, list):
        return any(isinstance(item, str) and needle in item.lower() for item in value)
    if isinstance(value, str):
        return needle in value.lower()
    return False


def contains(field: str, element: Any) -> Action:
    """
    字段包含 element（不区分大小写）

    字符串按子串匹配；列表中任一字符串元素包含 element 即通过。
    """
    return _field_evaluation(
        "contains",
        field,
        lambda v: _contains(v, element),
        lambda v: f'Field "{field}" does not contain {element}!',
    )


def _not_contains(value: Any, element: Any) -> bool:
    if isinstance(value, list):
        return element not in value
    if isinstance(value, str) and isinstance(element, str):
        return element not in value
    return True


def not_contains(field: str, element: Any) -> Action:
    """字段不包含 element（区分大小写；列表按元素相等判断）"""
    return _field_evaluation(
        "not_contains",
        field,
        lambda v: _not_contains(v, element),
        lambda v: f'Field "{field}" with value {v} contains {element}!',
    )


def not_empty(field: str) -> Action:
    return _field_evaluation(
        "not_empty",
        field,
        lambda v: isinstance(v, (list, str)) and len(v) > 0,
        lambda v: f'Field "{field}" is empty!',
    )


def is_empty(field: str) -> Action:
    """字段为空字符串或空列表；字段不存在同样视为通过"""
    inner = _field_evaluation(
        "is_empty",
        field,
        lambda v: isinstance(v, (list, str)) and len(v) == 0,
        lambda v: f'Field "{field}" with value {v} is not empty!',
    )

    def run(result: Any) -> ActionResult:
        if not has_path(result, field):
            return ActionResult(passed=True, reason=SUCCESSFUL)
        return inner.run(result)

    return Action("evaluation", field, run, label="is_empty")


def starts_with(field: str, prefix: str) -> Action:
    return _field_evaluation(
        "starts_with",
        field,
        lambda v: isinstance(v, str) and v.startswith(prefix),
        lambda v: f'Field "{field}" with value {v} does not start with {prefix}!',
    )


def ends_with(field: str, suffix: str) -> Action:
    return _field_evaluation(
        "ends_with",
        field,
        lambda v: isinstance(v, str) and v.endswith(suffix),
        lambda v: f'Field "{field}" with value {v} does not end with {suffix}!',
    )


def matches(field: str, pattern: Union[str, Pattern[str]]) -> Action:
    """字段是匹配正则表达式的字符串（re.search 语义）"""
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    return _field_evaluation(
        "matches",
        field,
        lambda v: isinstance(v, str) and regex.search(v) is not None,
        lambda v: f'Field "{field}" with value {v} does not match regex {regex.pattern}!',
    )


# ==================== LLM 评估 ====================

class EvaluationVerdict(BaseModel):
    final: bool = Field(description="结果满足条件时为 true，否则为 false")


def evaluate(field: str, evaluation: str, model: Optional[str] = None, llm: Any = None) -> Action:
    """
    由模型判断字段是否满足自然语言描述的条件

    Args:
        field: 被评估的字段
        evaluation: 条件描述
        model: "provider/model" 格式的模型，None 使用 EVALUATION_MODEL 配置
        llm: 直接提供的 LangChain 聊天模型（优先于 model）

    Returns:
        异步评估动作
    """

    async def run(result: Any) -> ActionResult:
        value = get_path(result, field, _MISSING)
        if value is _MISSING:
            return ActionResult(
                passed=False,
                reason=f"{UNSUCCESSFUL}The last result does not contain the field: {field}",
            )

        try:
            chat_model = llm
            if chat_model is None:
                chat_model = LLMFactory.from_model_string(model or get_settings().evaluation_model)

            rendered = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
            prompt = get_prompt("EVALUATOR_SYSTEM", evaluation=evaluation, value=rendered)
            verdict = await chat_model.with_structured_output(EvaluationVerdict).ainvoke(
                [SystemMessage(content=prompt)]
            )
            passed = bool(getattr(verdict, "final", False))
        except Exception as e:
            logger.error(f"[Evaluation] 模型评估失败 ({field}): {e}")
            return ActionResult(passed=False, reason=f"{UNSUCCESSFUL}{e}")

        return ActionResult(
            passed=passed,
            reason=SUCCESSFUL
            if passed
            else f'{UNSUCCESSFUL}Field "{field}" with value {value} does not satisfy the evaluation task: {evaluation}',
        )

    return Action("evaluation", field, run, label="evaluate")


# ==================== 组合 ====================

def summarize(results: Sequence[ActionResult], passed: bool) -> ActionResult:
    """
    汇总多个评估结果

    失败时按序号列出每个失败评估的原因（去掉统一前缀）。
    """
    if passed:
        return ActionResult(passed=True, reason=SUCCESSFUL)

    failed = [r for r in results if not r.passed]
    reasons = " ".join(
        f"{index}) {r.reason.split(UNSUCCESSFUL, 1)[-1]}" for index, r in enumerate(failed, start=1)
    )
    return ActionResult(passed=False, reason=f"{UNSUCCESSFUL}Reasons:\n\n{reasons}\n\n")


def _combine(label: str, evaluations: Sequence[Any], aggregate: Callable[[List[bool]], bool]) -> Action:
    if not evaluations:
        raise ValueError(f"{label} 至少需要一个评估")

    async def run(result: Any) -> ActionResult:
        results: List[ActionResult] = await asyncio.gather(
            *(maybe_await(evaluation.run(result)) for evaluation in evaluations)
        )
        return summarize(results, aggregate([r.passed for r in results]))

    fields = ", ".join(getattr(e, "field", "?") for e in evaluations)
    return Action("evaluation", f"{label}({fields})", run, label=label)


def and_(evaluations: Sequence[Any]) -> Action:
    """全部评估通过才通过"""
    return _combine("and", evaluations, all)


def or_(evaluations: Sequence[Any]) -> Action:
    """任一评估通过即通过"""
    return _combine("or", evaluations, any)


# ==================== 注册表 ====================

EVALUATIONS: Dict[str, Callable[..., Action]] = {
    "is_set": is_set,
    "gt": gt,
    "lt": lt,
    "gte": gte,
    "lte": lte,
    "eq": eq,
    "neq": neq,
    "between": between,
    "contains": contains,
    "not_contains": not_contains,
    "not_empty": not_empty,
    "is_empty": is_empty,
    "starts_with": starts_with,
    "ends_with": ends_with,
    "matches": matches,
}

_UNARY_OPERATORS = {"is_set", "not_empty", "is_empty"}
_NUMERIC_OPERATORS = {"gt", "lt", "gte", "lte"}
_STRING_OPERATORS = {"starts_with", "ends_with"}
_ELEMENT_OPERATORS = {"contains", "not_contains"}


def build_evaluation(op: str, field: str, value: Any = None) -> Action:
    """
    按操作名构建字段评估

    Args:
        op: EVALUATIONS 中注册的操作名
        field: 字段路径
        value: 比较值；between 需要 [min, max]

    Returns:
        评估动作

    Raises:
        ValueError: 未知操作或参数无效
    """
    factory = EVALUATIONS.get(op)
    if factory is None:
        raise ValueError(f"未知的评估操作: {op}，可用操作: {', '.join(EVALUATIONS)}")

    if op in _UNARY_OPERATORS:
        return factory(field)
    if op in _NUMERIC_OPERATORS and not _is_number(value):
        raise ValueError(f"{op} 需要数值，收到: {value!r}")
    if op in _STRING_OPERATORS and not isinstance(value, str):
        raise ValueError(f"{op} 需要字符串，收到: {value!r}")
    if op in _ELEMENT_OPERATORS and value is None:
        raise ValueError(f"{op} 需要比较值")
    if op == "between":
        if not isinstance(value, (list, tuple)) or len(value) != 2 or not all(_is_number(v) for v in value):
            raise ValueError(f"between 需要 [min, max] 两个值，收到: {value!r}")
        return factory(field, value[0], value[1])
    if op == "matches":
        if not isinstance(value, str):
            raise ValueError(f"matches 需要正则表达式字符串，收到: {value!r}")
        try:
            return factory(field, value)
        except re.error as e:
            raise ValueError(f"无效的正则表达式 {value!r}: {e}") from e
    return factory(field, value)
