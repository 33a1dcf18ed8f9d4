"""
日志工具模块
============

提供统一的日志配置和管理，以及面向编排过程的事件日志器。

事件日志器负责把 Agent 结果、评估、状态操作、提示注入、工具调用和边遍历
渲染到控制台。它通过构造参数注入到 Graph 与 Agent 中，默认是不输出任何内容的
NullEventLogger。
"""

import json
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Any, Optional, Protocol
from logging.handlers import RotatingFileHandler

from rich.logging import RichHandler
from rich.console import Console
from rich.pretty import Pretty

# 全局日志配置
_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_RICH_FORMAT = "%(message)s"

# 日志级别映射
_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

# 全局日志器缓存
_loggers: dict = {}
_initialized = False


def setup_logger(
    log_dir: str = "logs",
    log_file: Optional[str] = None,
    level: str = "info",
    debug: bool = False,
    use_rich: bool = True,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    设置全局日志配置

    Args:
        log_dir: 日志目录
        log_file: 日志文件名，None 自动生成
        level: 日志级别
        debug: 是否启用调试模式（覆盖 level）
        use_rich: 是否使用 Rich 美化输出
        max_file_size: 单个日志文件最大大小
        backup_count: 保留的备份文件数
    """
    global _initialized

    if _initialized:
        return

    # 确定日志级别
    if debug:
        log_level = logging.DEBUG
    else:
        log_level = _LOG_LEVELS.get(level.lower(), logging.INFO)

    # 创建日志目录
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    if log_file is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = f"agentflow_{timestamp}.log"

    log_file_path = log_path / log_file

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    # 控制台处理器
    if use_rich:
        console_handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=debug,
            rich_tracebacks=True,
            markup=False,
        )
        console_handler.setFormatter(logging.Formatter(_RICH_FORMAT))
    else:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT)
        )

    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # 文件处理器
    file_handler = RotatingFileHandler(
        log_file_path,
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(
        logging.Formatter(_LOG_FORMAT, _LOG_DATE_FORMAT)
    )
    file_handler.setLevel(logging.DEBUG)  # 文件记录所有级别
    root_logger.addHandler(file_handler)

    # 降低第三方库的日志级别
    for lib in ["httpx", "httpcore", "openai", "anthropic", "groq", "urllib3"]:
        logging.getLogger(lib).setLevel(logging.WARNING)

    _initialized = True

    root_logger.info(f"日志系统初始化完成，文件: {log_file_path}")


def get_logger(name: str) -> logging.Logger:
    """
    获取日志器实例

    Args:
        name: 日志器名称

    Returns:
        Logger 实例
    """
    if name not in _loggers:
        logger = logging.getLogger(name)
        _loggers[name] = logger

    return _loggers[name]


def set_log_level(level: str, logger_name: Optional[str] = None) -> None:
    """
    设置日志级别

    Args:
        level: 日志级别
        logger_name: 日志器名称，None 表示根日志器
    """
    log_level = _LOG_LEVELS.get(level.lower(), logging.INFO)

    if logger_name:
        logging.getLogger(logger_name).setLevel(log_level)
    else:
        logging.getLogger().setLevel(log_level)


class EventLogger(Protocol):
    """编排事件日志器协议"""

    def result(self, name: str, passed: bool, content: Any) -> None: ...
    def result_evaluation(self, field: str, evaluation: Any) -> None: ...
    def state_manipulation(self, path: str, evaluation: Any) -> None: ...
    def prompt_injection(self, field: str, evaluation: Any) -> None: ...
    def tool(self, name: str) -> None: ...
    def edge(self, current: Any, target: Any) -> None: ...


class NullEventLogger:
    """不输出任何内容的事件日志器（默认）"""

    def result(self, name: str, passed: bool, content: Any) -> None:
        pass

    def result_evaluation(self, field: str, evaluation: Any) -> None:
        pass

    def state_manipulation(self, path: str, evaluation: Any) -> None:
        pass

    def prompt_injection(self, field: str, evaluation: Any) -> None:
        pass

    def tool(self, name: str) -> None:
        pass

    def edge(self, current: Any, target: Any) -> None:
        pass


def _display_name(node: Any) -> str:
    if node is None:
        return "END"
    if isinstance(node, str):
        return node
    return getattr(node, "name", repr(node))


class ConsoleEventLogger:
    """
    控制台事件日志器

    使用 Rich 渲染编排过程中的各类事件。
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _section(self, title: str, body: Any = None, style: str = "on black") -> None:
        self.console.print(title, style=style)
        if body is not None:
            self.console.print(Pretty(body))
        self.console.print("------------------")

    def result(self, name: str, passed: bool, content: Any) -> None:
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except ValueError:
                pass
        self._section(f"🤖 AGENT [{name}]", {"final": passed, "content": content})

    def result_evaluation(self, field: str, evaluation: Any) -> None:
        self._section(f"🤔 RESULT EVALUATOR [{field}]", evaluation)

    def state_manipulation(self, path: str, evaluation: Any) -> None:
        self._section(f"📝 STATE MANIPULATOR [{path}]", evaluation)

    def prompt_injection(self, field: str, evaluation: Any) -> None:
        self._section(f"💉 PROMPT INJECTION [{field}]", evaluation)

    def tool(self, name: str) -> None:
        self._section(f"🛠️ TOOL USE [{name}]")

    def edge(self, current: Any, target: Any) -> None:
        if isinstance(target, (list, tuple)):
            names = ", ".join(_display_name(n) for n in target)
            self._section(f"⛓️ {_display_name(current)} => [{names}]", style="on blue")
        else:
            self._section(f"⛓️ {_display_name(current)} => {_display_name(target)}", style="on blue")


def emit_event(event_logger: Optional[EventLogger], method: str, *args: Any) -> None:
    """
    调用事件日志器的指定方法

    事件日志只是展示用途，日志器自身抛出的异常会降级为警告，不影响编排流程。

    Args:
        event_logger: 事件日志器，None 时忽略
        method: 方法名，如 "edge"、"result"
        *args: 方法参数
    """
    if event_logger is None:
        return
    try:
        getattr(event_logger, method)(*args)
    except Exception as e:
        logging.getLogger(__name__).warning(f"事件日志记录失败 ({method}): {e}")
