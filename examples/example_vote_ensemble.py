"""
示例 2：Vote 多模型投票
=======================

三个 Agent 并行判断同一个问题，synthesizer 汇总所有投票。
使用 reducer 保留每个分支写入的 verdict。

运行方式：
    python -m examples.example_vote_ensemble
"""

import asyncio
import os
import sys
from typing import Any, Dict, List

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import BaseModel, Field
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty

from agentflow import Agent, OutputType, Vote
from agentflow.lifecycles import Lifecycle, focus_on, is_set, push_value, set_value
from agentflow.utils.logger import ConsoleEventLogger, setup_logger
from agentflow.utils.visualizer import print_execution_trace


class Verdict(BaseModel):
    verdict: bool = Field(description="陈述是否成立")
    reason: str = Field(description="简短理由")


def collect_votes(state: Dict[str, Any], branches: List[Dict[str, Any]]) -> Dict[str, Any]:
    """把各分支的 votes 合并到一个列表"""
    votes = [vote for branch in branches for vote in branch.get("votes", [])]
    return {**state, "votes": votes}


def voter(name: str, model: str, events: ConsoleEventLogger) -> Agent:
    return Agent(
        name=name,
        task="判断陈述是否成立，并给出理由",
        model=model,
        output_type=OutputType.JSON,
        output_schema=Verdict,
        lifecycle=Lifecycle(
            prompt_injections=[focus_on("statement")],
            result_evaluations=[is_set("verdict")],
            state_manipulations=[push_value("verdict", "votes")],
        ),
        event_logger=events,
    )


async def run(console: Console) -> None:
    events = ConsoleEventLogger(console)

    voters = [
        voter("voter_openai", "openai/gpt-4o-mini", events),
        voter("voter_anthropic", "anthropic/claude-3-5-sonnet-latest", events),
        voter("voter_groq", "groq/llama-3.3-70b-versatile", events),
    ]
    synthesizer = Agent(
        name="synthesizer",
        task="根据所有投票给出最终结论",
        lifecycle=Lifecycle(
            prompt_injections=[focus_on("votes")],
            state_manipulations=[set_value("message", "conclusion")],
        ),
        event_logger=events,
    )

    vote = Vote("fact_check", voters, synthesizer, merge=collect_votes, event_logger=events)
    result = await vote.invoke({"statement": "柏林是德国的首都", "votes": []}, "核实陈述")

    console.print(Panel(Pretty(result.state), title="最终状态"))
    print_execution_trace(result, console=console)


def main():
    """运行 Vote 示例"""
    console = Console()
    setup_logger(debug=False)

    console.print(Panel(
        "[bold blue]示例 2: Vote 多模型投票[/bold blue]\n\n"
        "三个模型并行投票，synthesizer 汇总",
        title="agentflow Demo"
    ))

    try:
        asyncio.run(run(console))
    except Exception as e:
        console.print(f"[red]错误: {e}[/red]")
        raise


if __name__ == "__main__":
    main()
