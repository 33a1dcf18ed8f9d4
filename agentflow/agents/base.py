"""
Agent 模块
==========

Agent 是唯一直接调用模型的 Worker。

一次 invoke 的流程：
1. 根据提示注入生成任务提示
2. 追加一条 user 消息
3. 最多 retries 次调用模型，每次返回后执行结果评估，评估通过即停止
4. 用最终结果执行状态操作
5. 返回新状态与本次调用产生的消息
"""

import asyncio
import json
import time
from typing import Any, List, Optional, Sequence

from langchain_core.language_models import BaseChatModel

from agentflow.config.prompts import get_prompt
from agentflow.config.settings import Settings, get_settings
from agentflow.graph.state import State, snapshot
from agentflow.lifecycles.base import Lifecycle, maybe_await
from agentflow.lifecycles.evaluations import UNSUCCESSFUL, summarize
from agentflow.llm.completion import complete
from agentflow.llm.factory import LLMFactory, parse_model_string
from agentflow.types import ActionResult, InvocationResult, Message, OutputType
from agentflow.utils.logger import EventLogger, NullEventLogger, emit_event, get_logger


class Agent:
    """
    单次模型调用的 Worker

    属性:
        name: Agent 名称，也是消息的发送者名称
        description: Agent 描述（Supervisor 选择 Worker 时展示）
        task: Agent 自身的任务描述
        model: "provider/model" 格式的模型
        retries: 评估未通过时的最大尝试次数
        output_type: 输出类型
        lifecycle: 生命周期钩子

    Example:
        >>> agent = Agent(
        ...     name="weather_agent",
        ...     task="查询城市的天气",
        ...     output_type=OutputType.JSON,
        ...     output_schema=WeatherReport,
        ...     lifecycle=Lifecycle(result_evaluations=[is_set("temperature")]),
        ... )
        >>> result = await agent.invoke({"city": "Berlin"}, "天气报告")
    """

    def __init__(
        self,
        name: str,
        task: str,
        description: str = "",
        model: str = "openai/gpt-4o-mini",
        retries: Optional[int] = None,
        output_type: OutputType = OutputType.TEXT,
        output_schema: Any = None,
        tools: Optional[Sequence[Any]] = None,
        lifecycle: Optional[Lifecycle] = None,
        llm: Optional[BaseChatModel] = None,
        settings: Optional[Settings] = None,
        event_logger: Optional[EventLogger] = None,
    ):
        """
        初始化 Agent

        Args:
            name: Agent 名称
            task: 任务描述
            description: 描述
            model: 模型，llm 为 None 时据此创建
            retries: 最大尝试次数，None 使用配置
            output_type: 输出类型
            output_schema: json 输出的 pydantic 模型或 JSON Schema
            tools: tool_call 输出可用的工具
            lifecycle: 生命周期钩子
            llm: 直接提供的聊天模型
            settings: 配置实例
            event_logger: 事件日志器

        Raises:
            ValueError: 参数无效
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Agent 名称必须是非空字符串")
        if not isinstance(task, str) or not task:
            raise ValueError(f'Agent "{name}" 的任务必须是非空字符串')

        self.settings = settings or get_settings()
        self.logger = get_logger(self.__class__.__name__)

        self._name = name
        self._description = description
        self.task = task
        self.model = model
        self.retries = retries if retries is not None else self.settings.agent_default_retries
        self.output_type = OutputType(output_type)
        self.output_schema = output_schema
        self.tools = list(tools or [])
        self.lifecycle = lifecycle or Lifecycle()
        self.event_logger: EventLogger = event_logger or NullEventLogger()
        self._llm = llm

        if self.retries < 1:
            raise ValueError(f'Agent "{name}" 的 retries 至少为 1')
        if self.output_type is OutputType.JSON and output_schema is None:
            raise ValueError(f'Agent "{name}" 使用 json 输出时必须提供 output_schema')
        if self.output_type is OutputType.TOOL and not self.tools:
            raise ValueError(f'Agent "{name}" 使用 tool_call 输出时必须提供 tools')
        if llm is None:
            parse_model_string(model)

        self.logger.debug(f"初始化 Agent: {name}")

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def llm(self) -> BaseChatModel:
        """获取 LLM 实例"""
        if self._llm is None:
            self._llm = LLMFactory.from_model_string(self.model, self.settings)
        return self._llm

    async def invoke(self, state: Any, task: str) -> InvocationResult:
        """
        执行 Agent

        传入 State 时直接修改并返回它；传入映射或 pydantic 模型时在副本上修改，
        返回新的字典。

        Args:
            state: 当前状态
            task: 整体任务描述

        Returns:
            InvocationResult
        """
        start_time = time.time()
        self.logger.info(f"[{self.name}] 开始执行")

        working = state if isinstance(state, State) else State(snapshot(state))

        try:
            prompt = await self._build_prompt(working, task)
            history: List[Message] = [
                Message(name=self.name, role="user", content=get_prompt("AGENT_TASK", task=prompt))
            ]

            response: Optional[Message] = None
            for attempt in range(1, self.retries + 1):
                response = await complete(
                    self.llm,
                    name=self.name,
                    task=prompt,
                    history=history,
                    output_type=self.output_type,
                    output_schema=self.output_schema,
                    tools=self.tools,
                    event_logger=self.event_logger,
                )
                history.append(response)

                passed = await self._evaluate(response, history)
                emit_event(self.event_logger, "result", self.name, passed, response.content)
                if passed:
                    break
                self.logger.info(f"[{self.name}] 第 {attempt}/{self.retries} 次结果未通过评估")

            await self._manipulate_state(response, working)

        except Exception as e:
            self.logger.error(f"[{self.name}] 执行失败: {e}")
            raise

        duration = time.time() - start_time
        self.logger.info(f"[{self.name}] 执行完成，耗时 {duration:.2f}s")

        new_state = working if isinstance(state, State) else working.get_state()
        return InvocationResult(state=new_state, history=history)

    async def _build_prompt(self, state: State, task: str) -> str:
        prompt = self.task
        if task and task != self.task:
            prompt = f"{prompt}\n\n整体任务：{task}"

        for injection in self.lifecycle.prompt_injections:
            result: ActionResult = await maybe_await(injection.run(state))
            emit_event(self.event_logger, "prompt_injection", injection.field, result)
            prompt = f"{prompt} {result.reason}"
        return prompt

    async def _evaluate(self, response: Message, history: List[Message]) -> bool:
        """执行结果评估，并把汇总结果作为 evaluator 消息追加到历史"""
        evaluations = self.lifecycle.result_evaluations
        if not evaluations:
            return True

        try:
            content = response.content
            parsed = json.loads(content) if isinstance(content, (str, bytes)) else content
        except ValueError as e:
            outcome = ActionResult(passed=False, reason=f"{UNSUCCESSFUL}结果不是有效的 JSON: {e}")
        else:
            results = await asyncio.gather(
                *(maybe_await(evaluation.run(parsed)) for evaluation in evaluations)
            )
            for evaluation, result in zip(evaluations, results):
                emit_event(self.event_logger, "result_evaluation", evaluation.field, result)
            outcome = summarize(results, all(r.passed for r in results))

        history.append(
            Message(
                name="evaluator",
                role="system",
                content=json.dumps(outcome.model_dump(), ensure_ascii=False),
            )
        )
        return outcome.passed

    async def _manipulate_state(self, response: Optional[Message], state: State) -> None:
        if response is None:
            return
        for manipulation in self.lifecycle.state_manipulations:
            result: ActionResult = await maybe_await(manipulation.run(response, state))
            emit_event(self.event_logger, "state_manipulation", manipulation.target, result)
            if not result.passed:
                self.logger.warning(f"[{self.name}] 状态操作 {manipulation.target} 未完成: {result.reason}")

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, model={self.model!r}, output_type={self.output_type.value!r})"
