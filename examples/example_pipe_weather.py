"""
示例 1：Pipe 天气报告
=====================

两个 Agent 组成线性链：weather_agent 查询天气并写入状态，
report_agent 根据状态撰写报告。

运行方式：
    python -m examples.example_pipe_weather
"""

import asyncio
import os
import sys
from typing import Optional

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pydantic import BaseModel, Field
from rich.console import Console
from rich.panel import Panel

from agentflow import Agent, OutputType, Pipe
from agentflow.lifecycles import Lifecycle, focus_on, gt, is_set, set_value
from agentflow.utils.logger import ConsoleEventLogger, setup_logger
from agentflow.utils.visualizer import generate_mermaid_graph, print_execution_trace


class WeatherReport(BaseModel):
    temperature: Optional[float] = Field(default=None, description="气温（摄氏度）")
    humidity: Optional[int] = Field(default=None, description="湿度（百分比）")


async def run(console: Console) -> None:
    events = ConsoleEventLogger(console)

    weather_agent = Agent(
        name="weather_agent",
        task="估计指定城市明天的天气",
        description="提供天气数据",
        model="openai/gpt-4o-mini",
        output_type=OutputType.JSON,
        output_schema=WeatherReport,
        lifecycle=Lifecycle(
            prompt_injections=[focus_on("city")],
            result_evaluations=[is_set("temperature"), gt("humidity", 0)],
            state_manipulations=[
                set_value("temperature", "weather.temperature"),
                set_value("humidity", "weather.humidity"),
            ],
        ),
        event_logger=events,
    )
    report_agent = Agent(
        name="report_agent",
        task="根据天气数据写一段简短的天气报告",
        lifecycle=Lifecycle(
            prompt_injections=[focus_on("weather")],
            state_manipulations=[set_value("message", "report")],
        ),
        event_logger=events,
    )

    pipe = Pipe("weather_pipe", [weather_agent, report_agent], event_logger=events)
    console.print(generate_mermaid_graph(pipe.build_graph()))

    result = await pipe.invoke({"city": "Berlin"}, "写一份柏林明天的天气报告")

    console.print(Panel(str(result.state.get("report")), title="天气报告"))
    print_execution_trace(result, console=console)


def main():
    """运行 Pipe 示例"""
    console = Console()
    setup_logger(debug=False)

    console.print(Panel(
        "[bold blue]示例 1: Pipe 天气报告[/bold blue]\n\n"
        "weather_agent -> report_agent",
        title="agentflow Demo"
    ))

    try:
        asyncio.run(run(console))
    except Exception as e:
        console.print(f"[red]错误: {e}[/red]")
        raise


if __name__ == "__main__":
    main()
