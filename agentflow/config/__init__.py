"""
配置模块
========

提供系统配置管理功能。
"""

from agentflow.config.settings import LLMConfig, Settings, get_settings, reload_settings
from agentflow.config.prompts import PromptTemplates, get_prompt

__all__ = [
    "LLMConfig",
    "Settings",
    "get_settings",
    "reload_settings",
    "PromptTemplates",
    "get_prompt",
]
