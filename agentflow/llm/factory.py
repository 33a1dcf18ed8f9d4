"""
LLM 工厂模块
============

使用工厂模式创建和管理 LLM 实例。

模型可以用 "provider/model" 字符串描述，例如 "openai/gpt-4o-mini"、
"anthropic/claude-3-5-sonnet-latest"、"groq/llama-3.3-70b-versatile"。
"""

from typing import Dict, Optional, Tuple

from langchain_core.language_models import BaseChatModel

from agentflow.config.settings import LLMConfig, Settings, get_settings
from agentflow.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_PROVIDERS = ("openai", "anthropic", "groq", "local")


def parse_model_string(model: str) -> Tuple[str, str]:
    """
    解析 "provider/model" 字符串

    模型名本身可以包含 "/"（如本地模型 "local/meta/llama3"），只按第一个 "/" 拆分。

    Args:
        model: 模型字符串

    Returns:
        (provider, model_name)

    Raises:
        ValueError: 格式错误或提供商不受支持
    """
    if not isinstance(model, str) or "/" not in model:
        raise ValueError(f'模型格式应为 "provider/model"，收到: {model!r}')
    provider, model_name = model.split("/", 1)
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(f"不支持的 LLM 提供商: {provider}，可用: {', '.join(SUPPORTED_PROVIDERS)}")
    if not model_name:
        raise ValueError(f"模型名称不能为空: {model!r}")
    return provider, model_name


class LLMFactory:
    """
    LLM 工厂类

    使用工厂模式创建不同提供商的 LLM 实例。

    支持的提供商：
    - openai: OpenAI 模型
    - anthropic: Anthropic Claude 模型
    - groq: Groq 托管的开源模型
    - local: 本地或兼容 API 的模型

    使用示例：
        >>> llm = LLMFactory.from_model_string("openai/gpt-4o-mini")
        >>> response = await llm.ainvoke("Hello!")
    """

    _instances: Dict[str, BaseChatModel] = {}

    @classmethod
    def create(
        cls,
        config: Optional[LLMConfig] = None,
        cache_key: Optional[str] = None,
    ) -> BaseChatModel:
        """
        创建 LLM 实例

        Args:
            config: LLM 配置，None 使用默认配置
            cache_key: 缓存键，相同键返回缓存实例

        Returns:
            LLM 实例
        """
        if config is None:
            config = get_settings().get_llm_config()

        if cache_key is None:
            cache_key = f"{config.provider}:{config.model_name}"

        if cache_key in cls._instances:
            logger.debug(f"使用缓存的 LLM 实例: {cache_key}")
            return cls._instances[cache_key]

        logger.info(f"创建 LLM: {config.provider}/{config.model_name}")

        if config.provider == "openai":
            llm = cls._create_openai(config)
        elif config.provider == "anthropic":
            llm = cls._create_anthropic(config)
        elif config.provider == "groq":
            llm = cls._create_groq(config)
        elif config.provider == "local":
            llm = cls._create_local(config)
        else:
            raise ValueError(f"不支持的 LLM 提供商: {config.provider}")

        cls._instances[cache_key] = llm
        return llm

    @classmethod
    def from_model_string(cls, model: str, settings: Optional[Settings] = None) -> BaseChatModel:
        """
        根据 "provider/model" 字符串创建 LLM

        API 密钥、温度等其他参数取自配置。

        Args:
            model: 模型字符串
            settings: 配置对象，None 使用全局配置

        Returns:
            LLM 实例
        """
        provider, model_name = parse_model_string(model)
        settings = settings or get_settings()
        return cls.create(settings.get_llm_config(provider=provider, model_name=model_name))

    @classmethod
    def _create_openai(cls, config: LLMConfig) -> BaseChatModel:
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise ImportError(
                "请安装 langchain-openai: pip install langchain-openai"
            )

        kwargs = {
            "model": config.model_name,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

        if config.api_key:
            kwargs["api_key"] = config.api_key

        if config.base_url:
            kwargs["base_url"] = config.base_url

        return ChatOpenAI(**kwargs)

    @classmethod
    def _create_anthropic(cls, config: LLMConfig) -> BaseChatModel:
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError(
                "请安装 langchain-anthropic: pip install agentflow[anthropic]"
            )

        kwargs = {
            "model": config.model_name,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

        if config.api_key:
            kwargs["anthropic_api_key"] = config.api_key

        return ChatAnthropic(**kwargs)

    @classmethod
    def _create_groq(cls, config: LLMConfig) -> BaseChatModel:
        """
        创建 Groq LLM

        Args:
            config: LLM 配置

        Returns:
            ChatGroq 实例
        """
        try:
            from langchain_groq import ChatGroq
        except ImportError:
            raise ImportError(
                "请安装 langchain-groq: pip install agentflow[groq]"
            )

        kwargs = {
            "model": config.model_name,
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

        if config.api_key:
            kwargs["api_key"] = config.api_key

        return ChatGroq(**kwargs)

    @classmethod
    def _create_local(cls, config: LLMConfig) -> BaseChatModel:
        """
        创建本地/兼容 API 的 LLM

        使用 OpenAI 兼容接口连接本地模型（如 Ollama、vLLM 等）
        """
        try:
            from langchain_openai import ChatOpenAI
        except ImportError:
            raise ImportError(
                "请安装 langchain-openai: pip install langchain-openai"
            )

        base_url = config.base_url or "http://localhost:11434/v1"

        return ChatOpenAI(
            model=config.model_name,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            base_url=base_url,
            api_key=config.api_key or "not-needed",  # 本地模型通常不需要
        )

    @classmethod
    def clear_cache(cls) -> None:
        """清空所有缓存的 LLM 实例"""
        cls._instances.clear()
        logger.info("LLM 缓存已清空")

    @classmethod
    def list_cached(cls) -> list:
        return list(cls._instances.keys())
