"""
Pytest 配置文件
===============

定义测试固件和通用配置。
"""

import asyncio
import sys
import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

# 确保项目根目录在路径中
sys.path.insert(0, str(Path(__file__).parent.parent))

from agentflow.config.settings import Settings, get_settings
from agentflow.graph.state import snapshot
from agentflow.types import InvocationResult, Message


class EchoWorker:
    """
    测试用 Worker

    把 update 合并进状态后返回，并记录每次调用收到的状态与任务。
    """

    def __init__(
        self,
        name: str,
        update: Optional[Dict[str, Any]] = None,
        messages: Optional[List[str]] = None,
        delay: float = 0.0,
        error: Optional[Exception] = None,
        return_state: bool = True,
        description: str = "",
    ):
        self.name = name
        self.description = description or f"{name} worker"
        self.update = update or {}
        self.messages = messages if messages is not None else [f"{name} done"]
        self.delay = delay
        self.error = error
        self.return_state = return_state
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, state: Any, task: str) -> InvocationResult:
        self.calls.append({"state": dict(snapshot(state)), "task": task})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        history = [Message(name=self.name, role="assistant", content=m) for m in self.messages]
        if not self.return_state:
            return InvocationResult(state=None, history=history)
        new_state = {**snapshot(state), **self.update}
        return InvocationResult(state=new_state, history=history)

    def __repr__(self) -> str:
        return f"EchoWorker({self.name!r})"


class RecordingEventLogger:
    """记录所有事件的事件日志器"""

    def __init__(self):
        self.events: List[tuple] = []

    def result(self, name, passed, content):
        self.events.append(("result", name, passed))

    def result_evaluation(self, field, evaluation):
        self.events.append(("result_evaluation", field, evaluation.passed))

    def state_manipulation(self, path, evaluation):
        self.events.append(("state_manipulation", path, evaluation.passed))

    def prompt_injection(self, field, evaluation):
        self.events.append(("prompt_injection", field, evaluation.passed))

    def tool(self, name):
        self.events.append(("tool", name))

    def edge(self, current, target):
        self.events.append(("edge", getattr(current, "name", current), target))

    def of(self, kind: str) -> List[tuple]:
        return [e for e in self.events if e[0] == kind]


@pytest.fixture
def worker_factory():
    """创建 EchoWorker 的工厂"""
    return EchoWorker


@pytest.fixture
def event_recorder():
    return RecordingEventLogger()


@pytest.fixture
def mock_settings(tmp_path):
    """创建测试用配置"""
    return Settings(
        llm_provider="openai",
        openai_api_key="test-key",
        openai_model="gpt-4o-mini",
        debug_mode=True,
        log_dir=str(tmp_path / "logs"),
        graph_max_nodes=50,
        graph_max_edges_per_node=10,
        graph_max_invocations=20,
        agent_default_retries=3,
    )


def structured_llm(*responses: Any) -> MagicMock:
    """
    创建模拟 LLM

    with_structured_output(...).ainvoke 依次返回 responses 中的值。
    """
    runnable = MagicMock()
    runnable.ainvoke = AsyncMock(side_effect=list(responses))
    llm = MagicMock()
    llm.with_structured_output.return_value = runnable
    return llm


@pytest.fixture
def make_llm():
    return structured_llm


@pytest.fixture(autouse=True)
def setup_test_env(tmp_path, monkeypatch):
    """设置测试环境"""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    get_settings.cache_clear()

    yield

    get_settings.cache_clear()
