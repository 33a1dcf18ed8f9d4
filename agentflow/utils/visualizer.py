"""
可视化工具模块
==============

提供图结构与执行结果的可视化功能。

支持的格式：
- Mermaid: 图结构流程图
- Text: 消息历史的纯文本轨迹
"""

from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from agentflow.graph.edges import ConditionalEdge, DirectEdge, ParallelEdge
from agentflow.graph.nodes import NodeKind, classify, node_key, node_name
from agentflow.types import InvocationResult, Message
from agentflow.utils.logger import get_logger

logger = get_logger(__name__)


class ExecutionVisualizer:
    """
    可视化器

    Graph 通过 nodes 与 get_edges 提供结构信息；执行结果是 InvocationResult。
    """

    def __init__(self):
        self.logger = get_logger(self.__class__.__name__)
        self._ids: Dict[Any, str] = {}

    def _node_id(self, node: Any) -> str:
        kind = classify(node)
        if kind is NodeKind.START:
            return "START"
        if kind is NodeKind.END:
            return "END"
        key = node_key(node)
        if key not in self._ids:
            self._ids[key] = f"N{len(self._ids) + 1}"
        return self._ids[key]

    def _declare(self, node: Any, declared: Dict[str, str]) -> str:
        node_id = self._node_id(node)
        if node_id not in declared:
            if node_id == "START":
                declared[node_id] = "    START((START))"
            elif node_id == "END":
                declared[node_id] = "    END((END))"
            else:
                label = node_name(node).replace('"', "'")
                declared[node_id] = f'    {node_id}["{label}"]'
        return node_id

    def generate_mermaid(self, graph: Any, fenced: bool = True) -> str:
        """
        生成 Mermaid 流程图

        - 直接边：实线箭头
        - 条件边：虚线指向以条件函数命名的菱形节点
        - 并行边：粗箭头指向每个分支，分支以虚线汇合到 next

        Args:
            graph: Graph 实例
            fenced: 是否包裹在 ```mermaid 代码块中

        Returns:
            Mermaid 格式字符串
        """
        self._ids = {}
        declared: Dict[str, str] = {}
        links: List[str] = []
        condition_count = 0

        for source in graph.nodes:
            source_id = self._declare(source, declared)
            for edge in graph.get_edges(source):
                if isinstance(edge, DirectEdge):
                    target_id = self._declare(edge.to, declared)
                    links.append(f"    {source_id} --> {target_id}")
                elif isinstance(edge, ConditionalEdge):
                    condition_count += 1
                    condition_id = f"C{condition_count}"
                    label = getattr(edge.fn, "__name__", "condition")
                    declared[condition_id] = f"    {condition_id}{{{label}}}"
                    links.append(f"    {source_id} -.-> {condition_id}")
                elif isinstance(edge, ParallelEdge):
                    next_id = self._declare(edge.next, declared)
                    for target in edge.to:
                        target_id = self._declare(target, declared)
                        links.append(f"    {source_id} ==>|parallel| {target_id}")
                        links.append(f"    {target_id} -.->|join| {next_id}")

        lines = ["flowchart TD", *declared.values(), *links]
        if fenced:
            lines = ["```mermaid", *lines, "```"]
        return "\n".join(lines)

    def generate_text_trace(self, history: Sequence[Message], max_width: int = 80) -> str:
        """
        生成文本格式的执行轨迹

        Args:
            history: 消息历史
            max_width: 最大宽度

        Returns:
            文本格式字符串
        """
        lines = []
        lines.append("=" * max_width)
        lines.append("执行轨迹".center(max_width))
        lines.append("=" * max_width)

        for i, message in enumerate(history, 1):
            content = message.content if isinstance(message.content, str) else repr(message.content)
            prefix = f"{i:3}. [{message.name}/{message.role}] "
            lines.append(f"{prefix}{content[: max(max_width - len(prefix), 10)]}")

        lines.append("=" * max_width)
        return "\n".join(lines)

    def generate_summary(self, result: InvocationResult) -> str:
        """
        生成执行摘要

        Args:
            result: 执行结果

        Returns:
            摘要字符串
        """
        lines = []
        senders: Dict[str, int] = {}
        for message in result.history:
            senders[message.name] = senders.get(message.name, 0) + 1

        lines.append(f"消息数: {len(result.history)}")
        lines.append(f"参与者: {', '.join(senders) or '无'}")
        evaluator_count = senders.get("evaluator", 0)
        if evaluator_count:
            lines.append(f"评估次数: {evaluator_count}")
        return "\n".join(lines)

    def history_table(self, history: Sequence[Message], max_content: int = 120) -> Table:
        """消息历史的 Rich 表格"""
        table = Table(title="消息历史", show_lines=False)
        table.add_column("#", justify="right", style="dim")
        table.add_column("名称", style="cyan")
        table.add_column("角色", style="magenta")
        table.add_column("内容")

        for i, message in enumerate(history, 1):
            content = message.content if isinstance(message.content, str) else repr(message.content)
            if len(content) > max_content:
                content = content[:max_content] + "..."
            table.add_row(str(i), message.name, message.role, content)
        return table


def generate_mermaid_graph(graph: Any) -> str:
    """
    便捷函数：生成 Mermaid 图

    Args:
        graph: Graph 实例

    Returns:
        Mermaid 格式字符串
    """
    visualizer = ExecutionVisualizer()
    return visualizer.generate_mermaid(graph)


def print_execution_trace(result: InvocationResult, console: Optional[Console] = None) -> None:
    """
    打印执行结果到控制台

    Args:
        result: 执行结果
        console: Rich 控制台
    """
    console = console or Console()
    visualizer = ExecutionVisualizer()

    console.print(visualizer.history_table(result.history))
    console.print(Panel(visualizer.generate_summary(result), title="执行摘要"))
