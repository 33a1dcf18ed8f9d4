"""
工具模块
========

提供日志、事件日志器等辅助功能。

可视化工具依赖图模块，请直接从 agentflow.utils.visualizer 导入。
"""

from agentflow.utils.logger import (
    ConsoleEventLogger,
    EventLogger,
    NullEventLogger,
    setup_logger,
    get_logger,
    set_log_level,
)

__all__ = [
    "setup_logger",
    "get_logger",
    "set_log_level",
    "EventLogger",
    "NullEventLogger",
    "ConsoleEventLogger",
]
