"""
模型补全模块
============

把 Agent 的任务与消息历史发送给聊天模型，并把结果统一转换为 Message。

三种输出类型：
- json: 按 output_schema 返回结构化结果
- text: 返回 {"message": "..."} 结构
- tool_call: 由模型选择一个工具并执行，工具结果作为 system 消息返回
"""

import json
import re
from typing import Any, List, Optional, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, Field

from agentflow.types import Message, OutputType
from agentflow.utils.logger import EventLogger, emit_event, get_logger

logger = get_logger(__name__)

_NAME_PATTERN = re.compile(r"[^a-zA-Z0-9_-]")


class TextAnswer(BaseModel):
    """文本输出的结构"""
    message: str = Field(description="你的回答")


def _content_to_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    return json.dumps(content, ensure_ascii=False, default=str)


def _safe_name(name: str) -> str:
    # 部分提供商只接受字母、数字、下划线和连字符
    return _NAME_PATTERN.sub("_", name or "unknown")


def to_langchain_messages(system_prompt: str, history: Sequence[Message]) -> List[BaseMessage]:
    """
    转换为 LangChain 消息列表

    Args:
        system_prompt: 放在最前面的 system 提示
        history: 消息历史

    Returns:
        LangChain 消息列表
    """
    messages: List[BaseMessage] = [SystemMessage(content=system_prompt)]
    for message in history:
        content = _content_to_text(message.content)
        name = _safe_name(message.name)
        if message.role == "user":
            messages.append(HumanMessage(content=content, name=name))
        elif message.role == "assistant":
            messages.append(AIMessage(content=content, name=name))
        else:
            messages.append(SystemMessage(content=content, name=name))
    return messages


def _dump(parsed: Any) -> str:
    if isinstance(parsed, BaseModel):
        parsed = parsed.model_dump()
    return json.dumps(parsed, ensure_ascii=False, default=str)


async def complete(
    llm: BaseChatModel,
    *,
    name: str,
    task: str,
    history: Sequence[Message],
    output_type: OutputType = OutputType.TEXT,
    output_schema: Any = None,
    tools: Optional[Sequence[Any]] = None,
    event_logger: Optional[EventLogger] = None,
) -> Message:
    """
    调用模型并返回一条消息

    Args:
        llm: 聊天模型
        name: 发出消息的 Agent 名称
        task: 作为 system 提示的任务描述
        history: 本次调用的消息历史
        output_type: 输出类型
        output_schema: json 输出使用的 pydantic 模型或 JSON Schema
        tools: tool_call 输出可选的工具
        event_logger: 事件日志器

    Returns:
        模型响应消息

    Raises:
        ValueError: 输出类型与参数不匹配，或模型选择了未知工具
    """
    output_type = OutputType(output_type)
    messages = to_langchain_messages(task, history)

    if output_type is OutputType.JSON:
        if output_schema is None:
            raise ValueError(f'Agent "{name}" 使用 json 输出时必须提供 output_schema')
        parsed = await llm.with_structured_output(output_schema).ainvoke(messages)
        return Message(name=name, role="assistant", content=_dump(parsed))

    if output_type is OutputType.TEXT:
        parsed = await llm.with_structured_output(TextAnswer).ainvoke(messages)
        return Message(name=name, role="assistant", content=_dump(parsed))

    if not tools:
        raise ValueError(f'Agent "{name}" 使用 tool_call 输出时必须提供 tools')

    response = await llm.bind_tools(list(tools), tool_choice="any").ainvoke(messages)
    tool_calls = getattr(response, "tool_calls", None) or []
    if not tool_calls:
        logger.warning(f'[{name}] 模型没有选择任何工具，使用文本响应')
        return Message(name=name, role="assistant", content=_content_to_text(response.content))

    call = tool_calls[0]
    tool = next((t for t in tools if t.name == call["name"]), None)
    if tool is None:
        raise ValueError(f'[{name}] 模型选择了未知工具: {call["name"]}')

    emit_event(event_logger, "tool", tool.name)
    logger.info(f"[{name}] 调用工具: {tool.name}")
    result = await tool.ainvoke(call.get("args", {}))

    return Message(name=name, role="system", content=_content_to_text(result))
