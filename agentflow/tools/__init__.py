"""
工具模块
========

提供创建和管理 Agent 可用工具的功能。
"""

from agentflow.tools.base import ToolRegistry, create_tool, function_definition

__all__ = [
    "ToolRegistry",
    "create_tool",
    "function_definition",
]
