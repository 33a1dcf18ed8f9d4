"""
Planner 架构
============

由模型动态设计工作流：

1. graph_designer Agent 根据任务与可用 Worker 输出图设计（nodes / edges）
2. worker_factory Agent 为条件边引用的、尚不存在的 Worker 给出定义
3. 按定义创建新的 Agent（输出结构由 output_properties 生成）
4. 按设计构建 Graph，没有入边的节点从 START 连接
5. 用调用方的状态和任务执行 Graph

条件边只能由 {field, op, value, to} 规则组成，op 必须在 EVALUATIONS
注册表中，不会执行模型生成的代码。
"""

from typing import Any, Dict, List, Literal, Optional, Sequence, Set, Tuple, Union

from langchain_core.language_models import BaseChatModel
from pydantic import BaseModel, Field, create_model

from agentflow.agents.base import Agent
from agentflow.architectures.base import Architecture
from agentflow.architectures.pipe import Pipe
from agentflow.config.prompts import get_prompt
from agentflow.config.settings import Settings
from agentflow.graph.graph import Graph
from agentflow.graph.nodes import END, START, is_worker
from agentflow.graph.state import State, snapshot
from agentflow.lifecycles.base import Action, Lifecycle
from agentflow.lifecycles.evaluations import EVALUATIONS, build_evaluation, is_set
from agentflow.lifecycles.prompt_injections import choose_between, focus_on
from agentflow.lifecycles.state_manipulations import set_value
from agentflow.types import InvocationResult, OutputType
from agentflow.utils.logger import EventLogger, get_logger

logger = get_logger(__name__)

RuleValue = Optional[Union[str, float, bool, List[float]]]


# ==================== 设计结构 ====================

class RouteRule(BaseModel):
    field: str = Field(description="状态中的字段路径")
    op: str = Field(description="评估操作名")
    value: RuleValue = Field(default=None, description="比较值；between 使用 [min, max]")
    to: str = Field(description="条件满足时的下一个 Agent（或 END）")


class EdgeDesign(BaseModel):
    source: str = Field(description="源节点（START 或 Agent 名称）")
    type: Literal["direct", "conditional", "parallel"]
    target: Optional[Union[str, List[str]]] = Field(
        default=None, description="direct 为单个节点，parallel 为节点数组"
    )
    routes: List[RouteRule] = Field(default_factory=list, description="条件边的路由规则")
    default: Optional[str] = Field(default=None, description="条件边所有规则都不满足时的节点")
    parallel_next: Optional[str] = Field(default=None, description="并行边汇合后的节点")


class GraphDesign(BaseModel):
    nodes: List[str] = Field(description="图中包含的 Agent 名称")
    edges: List[EdgeDesign] = Field(description="Agent 之间的连接")


class OutputProperty(BaseModel):
    name: str = Field(description="输出属性名称")
    type: Literal["string", "boolean", "number"]
    description: str = Field(description="输出属性说明")
    enum: Optional[List[str]] = Field(default=None, description="允许的取值")


class WorkerDefinition(BaseModel):
    name: str = Field(description="Agent 名称")
    description: str = Field(description="Agent 描述")
    task: str = Field(description="Agent 任务")
    output_properties: List[OutputProperty]


class WorkerFactoryOutput(BaseModel):
    additional_workers: List[WorkerDefinition]


_PROPERTY_TYPES = {"string": str, "boolean": bool, "number": float}


def build_output_schema(name: str, properties: Sequence[OutputProperty]) -> type:
    """
    根据输出属性生成 pydantic 模型

    Args:
        name: Agent 名称
        properties: 输出属性

    Returns:
        pydantic 模型类
    """
    fields: Dict[str, Any] = {}
    for prop in properties:
        annotation: Any = _PROPERTY_TYPES[prop.type]
        if prop.enum and prop.type == "string":
            annotation = Literal[tuple(prop.enum)]
        fields[prop.name] = (annotation, Field(description=prop.description))
    model_name = "".join(part.capitalize() for part in name.replace("-", "_").split("_")) or "Worker"
    return create_model(f"{model_name}Output", **fields)


def find_initial_nodes(nodes: Sequence[str], edges: Sequence[EdgeDesign]) -> List[str]:
    """没有任何入边的节点"""
    incoming: Set[str] = set()
    for edge in edges:
        if isinstance(edge.target, list):
            incoming.update(edge.target)
        elif edge.target:
            incoming.add(edge.target)
        incoming.update(rule.to for rule in edge.routes)
        if edge.default:
            incoming.add(edge.default)
        if edge.parallel_next:
            incoming.add(edge.parallel_next)
    return [node for node in nodes if node not in incoming]


class Planner(Architecture):
    """
    动态规划工作流的架构

    Example:
        >>> planner = Planner(
        ...     name="trip_planner",
        ...     workers=[weather_agent, hotel_agent],
        ...     model="openai/gpt-4o",
        ... )
        >>> result = await planner.invoke({}, "规划一次柏林周末旅行")
    """

    def __init__(
        self,
        name: str,
        workers: Sequence[Any],
        model: str,
        description: str = "",
        llm: Optional[BaseChatModel] = None,
        *,
        retries: int = 2,
        event_logger: Optional[EventLogger] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(name, description, event_logger=event_logger, settings=settings)
        for worker in workers:
            if not is_worker(worker):
                raise ValueError(f'Planner "{name}" 的 Worker 必须实现 invoke')
        names = [w.name for w in workers]
        if len(set(names)) != len(names):
            raise ValueError(f'Planner "{name}" 的 Worker 名称不能重复')
        self.workers = list(workers)
        self.model = model
        self.retries = retries
        self._llm = llm
        # 最近一次规划出的 Graph，供可视化使用
        self.last_graph: Optional[Graph] = None

    def _agent(self, name: str, task: str, description: str, schema: type, lifecycle: Lifecycle) -> Agent:
        return Agent(
            name=name,
            task=task,
            description=description,
            model=self.model,
            retries=self.retries,
            output_type=OutputType.JSON,
            output_schema=schema,
            lifecycle=lifecycle,
            llm=self._llm,
            settings=self.settings,
            event_logger=self.event_logger,
        )

    def create_designer(self) -> Agent:
        """负责输出图设计的 Agent"""
        return self._agent(
            "graph_designer",
            get_prompt("GRAPH_DESIGNER_SYSTEM", operators=", ".join(EVALUATIONS)),
            "设计需要调用的 Agent 图",
            GraphDesign,
            Lifecycle(
                prompt_injections=[choose_between(self.workers)],
                result_evaluations=[is_set("nodes"), is_set("edges")],
                state_manipulations=[set_value("nodes"), set_value("edges")],
            ),
        )

    def create_worker_factory(self) -> Agent:
        """负责定义缺失 Worker 的 Agent"""
        return self._agent(
            "worker_factory",
            get_prompt("WORKER_FACTORY_SYSTEM"),
            "为条件边引用的缺失 Agent 创建定义",
            WorkerFactoryOutput,
            Lifecycle(
                prompt_injections=[focus_on("edges"), focus_on("nodes")],
                state_manipulations=[set_value("additional_workers")],
            ),
        )

    def spawn_worker(self, definition: WorkerDefinition) -> Agent:
        """根据定义创建 json 输出的 Agent，输出属性同时写回状态"""
        names = [p.name for p in definition.output_properties]
        return self._agent(
            definition.name,
            definition.task,
            definition.description,
            build_output_schema(definition.name, definition.output_properties),
            Lifecycle(
                result_evaluations=[is_set(n) for n in names],
                state_manipulations=[set_value(n) for n in names],
            ),
        )

    async def invoke(self, state: Any, task: str) -> InvocationResult:
        """
        规划并执行

        Returns:
            InvocationResult，history 为规划阶段消息加上执行阶段消息
        """
        logger.info(f"[Planner:{self.name}] 开始规划")

        planning_state = State({"nodes": None, "edges": None, "additional_workers": None})
        planning = Pipe(
            f"{self.name}_planning",
            [self.create_designer(), self.create_worker_factory()],
            "graph_designer -> worker_factory",
            event_logger=self.event_logger,
            settings=self.settings,
        )
        planning_result = await planning.invoke(planning_state, task)

        design, definitions = self.read_plan(planning_state)
        workers = list(self.workers)
        known = {w.name for w in workers}
        for definition in definitions:
            if definition.name in known:
                logger.warning(f'[Planner:{self.name}] Worker "{definition.name}" 已存在，忽略新定义')
                continue
            workers.append(self.spawn_worker(definition))
            known.add(definition.name)
            logger.info(f'[Planner:{self.name}] 创建 Worker: {definition.name}')

        graph = self.build_graph(design, workers)
        self.last_graph = graph
        result = await graph.invoke(state, task)

        return InvocationResult(
            state=result.state,
            history=[*planning_result.history, *result.history],
        )

    def read_plan(self, planning_state: State) -> Tuple[GraphDesign, List[WorkerDefinition]]:
        """
        从规划状态中读取图设计与新 Worker 定义

        Raises:
            ValueError: 规划 Agent 没有给出 nodes 或 edges
        """
        data = snapshot(planning_state)
        if data.get("nodes") is None or data.get("edges") is None:
            raise ValueError(f'Planner "{self.name}" 的规划 Agent 没有在状态中设置 nodes 或 edges')
        design = GraphDesign.model_validate({"nodes": data["nodes"], "edges": data["edges"]})
        definitions = [WorkerDefinition.model_validate(d) for d in data.get("additional_workers") or []]
        return design, definitions

    def build_graph(self, design: GraphDesign, workers: Optional[Sequence[Any]] = None) -> Graph:
        """
        按设计构建 Graph

        Args:
            design: 图设计
            workers: 可用 Worker，None 时使用构造时提供的 Worker

        Returns:
            Graph

        Raises:
            ValueError: 设计引用了未知 Worker、缺少字段或使用了未注册的评估操作
        """
        lookup = {w.name: w for w in (workers if workers is not None else self.workers)}

        def node(name: Optional[str]) -> Any:
            if name in (START, END):
                return name
            if name not in lookup:
                raise ValueError(f'Planner "{self.name}" 中没有名为 "{name}" 的 Worker')
            return lookup[name]

        graph = self.new_graph()
        for edge in design.edges:
            source = node(edge.source)
            if edge.type == "direct":
                if not isinstance(edge.target, str):
                    raise ValueError(f'直接边 "{edge.source}" 的 target 必须是单个节点')
                graph.add_edge(source, node(edge.target))
            elif edge.type == "parallel":
                if not isinstance(edge.target, list) or not edge.target:
                    raise ValueError(f'并行边 "{edge.source}" 的 target 必须是非空数组')
                next_node = node(edge.parallel_next) if edge.parallel_next and edge.parallel_next.strip() else END
                graph.add_parallel_edges(source, [node(t) for t in edge.target], next_node)
            else:
                graph.add_conditional_edge(source, self._router(edge, node))

        for name in find_initial_nodes(design.nodes, design.edges):
            target = node(name)
            if target in (START, END):
                continue
            graph.add_edge(START, target)
            logger.debug(f'[Planner:{self.name}] START -> {name}')

        return graph

    def _router(self, edge: EdgeDesign, node: Any) -> Any:
        if not edge.routes and not edge.default:
            raise ValueError(f'条件边 "{edge.source}" 至少需要一条规则或 default')

        rules: List[Tuple[Action, Any]] = [
            (build_evaluation(rule.op, rule.field, rule.value), node(rule.to)) for rule in edge.routes
        ]
        default = node(edge.default) if edge.default else None

        def route_by_rules(state: Any) -> Any:
            data = snapshot(state)
            for evaluation, target in rules:
                if evaluation.run(data).passed:
                    return target
            return default

        route_by_rules.__name__ = f"route_from_{edge.source}"
        return route_by_rules
