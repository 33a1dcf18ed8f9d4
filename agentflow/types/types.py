"""
类型定义模块
============
集中定义系统中使用的所有类型，确保类型安全和一致性。
"""
from typing import (
    Any,
    Callable,
    List,
    Literal,
    Protocol,
    Union,
    runtime_checkable,
)
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

Role = Literal["user", "system", "assistant"]

class OutputType(str, Enum):
    JSON = "json"
    TEXT = "text"
    TOOL = "tool_call"

class ParallelMerge(str, Enum):
    LAST_RESOLVED = "last_resolved"
    FIRST_BRANCH = "first_branch"

class Message(BaseModel):
    name: str = Field(description="发送者名称，Supervisor 依赖它区分 Agent")
    role: Role = Field(description="消息角色")
    content: Any = Field(default=None, description="消息内容")

class InvocationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)
    state: Any = Field(default=None, description="更新后的状态，None 表示未改变")
    history: List[Message] = Field(default_factory=list, description="本次调用产生的消息")

class ActionResult(BaseModel):
    passed: bool = Field(description="是否通过")
    reason: str = Field(default="", description="原因说明")

@runtime_checkable
class Worker(Protocol):
    @property
    def name(self) -> str: ...
    @property
    def description(self) -> str: ...
    async def invoke(self, state: Any, task: str) -> InvocationResult: ...

StateReducer = Callable[[Any, List[Any]], Any]
MergeStrategy = Union[ParallelMerge, StateReducer]
