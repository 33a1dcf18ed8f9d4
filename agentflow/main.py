"""
agentflow 主入口
================

提供命令行接口和程序入口点。

当前提供 plan 子命令：由 Planner 根据任务动态设计并执行 Agent 图。
"""

import argparse
import asyncio
import json
import sys
import time
from typing import Any, Dict, Optional

from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.prompt import Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn

from agentflow import __version__
from agentflow.architectures.planner import Planner
from agentflow.config.settings import Settings, get_settings
from agentflow.types import InvocationResult
from agentflow.utils.logger import ConsoleEventLogger, get_logger, setup_logger
from agentflow.utils.visualizer import ExecutionVisualizer, print_execution_trace

# 初始化控制台和日志
console = Console()
logger = get_logger(__name__)


def print_banner() -> None:
    """打印横幅"""
    banner = f"""
╔══════════════════════════════════════════════════════════════╗
║                agentflow v{__version__:<10}                         ║
║            Graph-based LLM agent orchestration               ║
╚══════════════════════════════════════════════════════════════╝
    """
    console.print(banner, style="bold blue")


def print_result(result: InvocationResult) -> None:
    """打印最终状态与消息历史"""
    console.print("\n")
    console.print(Panel(
        Pretty(result.state),
        title="[bold green]✅ 最终状态[/bold green]",
        border_style="green",
    ))
    print_execution_trace(result, console=console)


def parse_state(raw: Optional[str]) -> Dict[str, Any]:
    """
    解析 --state 参数

    Raises:
        ValueError: 不是 JSON 对象
    """
    if not raw:
        return {}
    state = json.loads(raw)
    if not isinstance(state, dict):
        raise ValueError("--state 必须是 JSON 对象")
    return state


def build_planner(model: str, settings: Settings) -> Planner:
    return Planner(
        name="cli_planner",
        workers=[],
        model=model,
        description="命令行规划器",
        event_logger=ConsoleEventLogger(console),
        settings=settings,
    )


def run_task(planner: Planner, task: str, state: Dict[str, Any], args: argparse.Namespace) -> InvocationResult:
    """执行单个任务"""
    console.print(f"[bold]任务: {task}[/bold]\n")

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        prog_task = progress.add_task("正在规划并执行...", total=None)

        start_time = time.time()
        result = asyncio.run(planner.invoke(state, task))
        elapsed_time = time.time() - start_time

        progress.update(prog_task, description=f"任务完成 (耗时 {elapsed_time:.2f}s)")

    print_result(result)

    visualizer = ExecutionVisualizer()
    if args.mermaid and planner.last_graph is not None:
        console.print(Panel(visualizer.generate_mermaid(planner.last_graph), title="执行流程图"))
    if args.debug:
        console.print(visualizer.generate_text_trace(result.history))

    return result


def interactive_mode(planner: Planner, state: Dict[str, Any], args: argparse.Namespace) -> None:
    """交互式模式"""
    console.print("\n[bold cyan]进入交互模式 (输入 'quit' 或 'exit' 退出)[/bold cyan]\n")

    while True:
        try:
            user_input = Prompt.ask("\n[bold green]请输入您的任务[/bold green]")

            if user_input.lower() in ("quit", "exit", "q"):
                console.print("[yellow]再见！[/yellow]")
                break

            if not user_input.strip():
                console.print("[yellow]输入不能为空，请重新输入[/yellow]")
                continue

            result = run_task(planner, user_input, state, args)
            if isinstance(result.state, dict):
                state = result.state

        except KeyboardInterrupt:
            console.print("\n[yellow]操作已取消[/yellow]")
            continue
        except Exception as e:
            console.print(f"[red]执行出错: {e}[/red]")
            if args.debug:
                console.print_exception()
            continue


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    """解析命令行参数"""
    parser = argparse.ArgumentParser(
        prog="agentflow",
        description="Graph-based LLM agent orchestration",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  # 规划并执行任务
  agentflow plan "比较柏林和慕尼黑明天的天气"

  # 提供初始状态并显示流程图
  agentflow plan "写一份天气报告" --state '{"city": "Berlin"}' --mermaid

  # 交互模式
  agentflow plan --interactive
        """
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"agentflow v{__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    plan = subparsers.add_parser("plan", help="由 Planner 动态设计并执行 Agent 图")
    plan.add_argument("task", nargs="?", help="要执行的任务描述")
    plan.add_argument("--state", "-s", type=str, help="初始状态 (JSON 对象)")
    plan.add_argument("--model", "-m", type=str, default=None, help='模型，格式 "provider/model"')
    plan.add_argument("--debug", "-d", action="store_true", help="启用调试模式")
    plan.add_argument("--mermaid", action="store_true", help="打印规划出的流程图")
    plan.add_argument("--interactive", "-i", action="store_true", help="交互模式")

    args = parser.parse_args(argv)
    if args.command == "plan" and not args.task and not args.interactive:
        parser.error("plan 需要任务描述，或使用 --interactive")
    return args


def main(argv: Optional[list] = None) -> int:
    """主入口函数"""
    args = parse_args(argv)

    settings = get_settings()
    if args.debug:
        settings.debug_mode = True

    setup_logger(
        log_dir=settings.log_dir,
        level=settings.log_level,
        debug=settings.debug_mode,
    )

    print_banner()

    try:
        state = parse_state(args.state)
        planner = build_planner(args.model or settings.evaluation_model, settings)

        if args.interactive:
            interactive_mode(planner, state, args)
        else:
            run_task(planner, args.task, state, args)

        return 0

    except KeyboardInterrupt:
        console.print("\n[yellow]程序被用户中断[/yellow]")
        return 130
    except Exception as e:
        console.print(f"[red]程序异常: {e}[/red]")
        if settings.debug_mode:
            console.print_exception()
        return 1


if __name__ == "__main__":
    sys.exit(main())
