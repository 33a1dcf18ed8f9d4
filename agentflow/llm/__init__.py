"""
LLM 模块
========

提供语言模型的创建和调用功能。

支持的 LLM 提供商：
- OpenAI (GPT-4o 等)
- Anthropic (Claude 系列)
- Groq (Llama 等开源模型)
- 本地模型 (通过兼容 API)
"""

from agentflow.llm.factory import LLMFactory, parse_model_string
from agentflow.llm.completion import TextAnswer, complete, to_langchain_messages

__all__ = [
    "LLMFactory",
    "parse_model_string",
    "TextAnswer",
    "complete",
    "to_langchain_messages",
]
