"""
配置管理模块
============
使用 Pydantic 进行配置验证，支持环境变量和配置文件。
"""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentflow.types import ParallelMerge

ProviderType = Literal["openai", "anthropic", "groq", "local"]

class LLMConfig(BaseModel):
    provider: ProviderType = "openai"
    model_name: str = "gpt-4o-mini"
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=4096, gt=0)
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0 <= v <= 2:
            raise ValueError("temperature 必须在 0 到 2 之间")
        return v

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )
    llm_provider: ProviderType = Field(default="openai", alias="LLM_PROVIDER")
    openai_api_key: Optional[str] = Field(default=None, alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    openai_base_url: Optional[str] = Field(default=None, alias="OPENAI_BASE_URL")
    anthropic_api_key: Optional[str] = Field(default=None, alias="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(default="claude-3-5-sonnet-latest", alias="ANTHROPIC_MODEL")
    groq_api_key: Optional[str] = Field(default=None, alias="GROQ_API_KEY")
    groq_model: str = Field(default="llama-3.3-70b-versatile", alias="GROQ_MODEL")
    local_model_url: str = Field(default="http://localhost:11434/v1", alias="LOCAL_MODEL_URL")
    local_model_name: str = Field(default="llama3", alias="LOCAL_MODEL_NAME")
    llm_temperature: float = Field(default=0.7, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=4096, alias="LLM_MAX_TOKENS")
    debug_mode: bool = Field(default=False, alias="DEBUG_MODE")
    log_dir: str = Field(default="logs", alias="LOG_DIR")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    graph_max_nodes: int = Field(default=1000, ge=1, alias="GRAPH_MAX_NODES")
    graph_max_edges_per_node: int = Field(default=100, ge=1, alias="GRAPH_MAX_EDGES_PER_NODE")
    graph_max_invocations: int = Field(default=1000, ge=1, alias="GRAPH_MAX_INVOCATIONS")
    parallel_merge: ParallelMerge = Field(default=ParallelMerge.LAST_RESOLVED, alias="PARALLEL_MERGE")
    agent_default_retries: int = Field(default=3, ge=1, alias="AGENT_DEFAULT_RETRIES")
    evaluation_model: str = Field(default="openai/gpt-4o-mini", alias="EVALUATION_MODEL")

    def get_llm_config(self, provider: Optional[str] = None, model_name: Optional[str] = None) -> LLMConfig:
        provider = provider or self.llm_provider
        if provider == "openai":
            return LLMConfig(provider="openai", model_name=model_name or self.openai_model, temperature=self.llm_temperature, max_tokens=self.llm_max_tokens, api_key=self.openai_api_key, base_url=self.openai_base_url)
        elif provider == "anthropic":
            return LLMConfig(provider="anthropic", model_name=model_name or self.anthropic_model, temperature=self.llm_temperature, max_tokens=self.llm_max_tokens, api_key=self.anthropic_api_key)
        elif provider == "groq":
            return LLMConfig(provider="groq", model_name=model_name or self.groq_model, temperature=self.llm_temperature, max_tokens=self.llm_max_tokens, api_key=self.groq_api_key)
        elif provider == "local":
            return LLMConfig(provider="local", model_name=model_name or self.local_model_name, temperature=self.llm_temperature, max_tokens=self.llm_max_tokens, base_url=self.local_model_url)
        raise ValueError(f"不支持的 LLM 提供商: {provider}")

@lru_cache()
def get_settings() -> Settings:
    return Settings()

def reload_settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()
