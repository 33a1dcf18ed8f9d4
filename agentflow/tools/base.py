"""
工具基础模块
============

提供工具注册表和工具创建辅助函数。

工具遵循 LangChain 工具规范，Agent 以 tool_call 输出类型运行时由模型选择并执行。
"""

import inspect
from typing import Any, Callable, Dict, List, Optional, Sequence, Type

from langchain_core.tools import BaseTool, StructuredTool
from langchain_core.utils.function_calling import convert_to_openai_tool
from pydantic import BaseModel

from agentflow.utils.logger import get_logger

logger = get_logger(__name__)


class ToolRegistry:
    """
    工具注册表

    管理系统中所有可用的工具，支持按名称获取。
    """

    _tools: Dict[str, BaseTool] = {}

    @classmethod
    def register(cls, tool: BaseTool) -> None:
        if tool.name in cls._tools and cls._tools[tool.name] is not tool:
            logger.warning(f"覆盖已注册的工具: {tool.name}")
        cls._tools[tool.name] = tool
        logger.debug(f"注册工具: {tool.name}")

    @classmethod
    def get(cls, name: str) -> Optional[BaseTool]:
        return cls._tools.get(name)

    @classmethod
    def get_many(cls, names: Sequence[str]) -> List[BaseTool]:
        """
        按名称批量获取工具

        Args:
            names: 工具名称列表

        Returns:
            工具列表

        Raises:
            ValueError: 存在未注册的工具
        """
        missing = [name for name in names if name not in cls._tools]
        if missing:
            raise ValueError(f"未知工具: {missing}，可用工具: {cls.list_names()}")
        return [cls._tools[name] for name in names]

    @classmethod
    def get_all(cls) -> List[BaseTool]:
        return list(cls._tools.values())

    @classmethod
    def list_names(cls) -> List[str]:
        return list(cls._tools.keys())

    @classmethod
    def clear(cls) -> None:
        """清空注册表"""
        cls._tools.clear()


def create_tool(
    name: str,
    description: str,
    func: Callable[..., Any],
    args_schema: Optional[Type[BaseModel]] = None,
    register: bool = True,
) -> StructuredTool:
    """
    创建工具的工厂函数

    func 可以是普通函数或协程函数。

    Args:
        name: 工具名称
        description: 工具描述（模型据此选择工具）
        func: 工具执行函数
        args_schema: 参数 Schema（Pydantic 模型），None 时从函数签名推断
        register: 是否注册到 ToolRegistry

    Returns:
        StructuredTool 实例
    """
    if not name:
        raise ValueError("工具名称不能为空")

    if inspect.iscoroutinefunction(func):
        tool = StructuredTool.from_function(
            coroutine=func,
            name=name,
            description=description,
            args_schema=args_schema,
        )
    else:
        tool = StructuredTool.from_function(
            func=func,
            name=name,
            description=description,
            args_schema=args_schema,
        )

    if register:
        ToolRegistry.register(tool)

    return tool


def function_definition(tool: BaseTool) -> Dict[str, Any]:
    """
    工具的 OpenAI function 定义

    Args:
        tool: 工具

    Returns:
        {"type": "function", "function": {...}}
    """
    return convert_to_openai_tool(tool)
