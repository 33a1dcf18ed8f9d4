"""
提示词模板管理模块
==================
集中管理所有 Agent 与编排架构的提示词模板，支持模板替换和自定义。
"""
from typing import Dict, Optional
from string import Template

class PromptTemplates:
    AGENT_TASK = """$task - 请始终查看 system 消息中的评估结果，并据此改进你的输出。"""
    EVALUATOR_SYSTEM = """你是一个严谨的评估者。请判断结果是否满足条件。
评估条件："$evaluation"
结果：$value"""
    FOCUS_ON = """请重点关注以下数据："$value"。"""
    STATE_OVERVIEW = """请根据当前状态推断你的答案：$state"""
    CHOOSE_BETWEEN = """你可以从以下 Agent 中进行选择，它们能帮助你收集状态中所需的信息。
可选 Agent：$workers
当前状态：$state"""
    GRAPH_DESIGNER_SYSTEM = """你是一个工作流设计者（Graph Designer），负责设计 Agent 的调用图，以完成用户任务。
请输出如下结构的 JSON 对象：
```json
{
    "nodes": ["agent_1", "agent_2", "agent_3", "reporter_agent"],
    "edges": [
        {"source": "START", "target": "agent_1", "type": "direct"},
        {"source": "agent_1", "target": "agent_2", "type": "direct"},
        {
            "source": "agent_2",
            "type": "conditional",
            "routes": [
                {"field": "category", "op": "eq", "value": "weather", "to": "agent_3"}
            ],
            "default": "reporter_agent"
        },
        {
            "source": "agent_3",
            "target": ["agent_1", "agent_2"],
            "type": "parallel",
            "parallel_next": "reporter_agent"
        },
        {"source": "reporter_agent", "target": "END", "type": "direct"}
    ]
}
```
规则：
- "edges" 中引用的所有 Agent 都必须出现在 "nodes" 中（START 与 END 除外）。
- 并行边的 "target" 必须是数组；若并行之后没有后续节点，"parallel_next" 设为 "END"。
- 条件边只能使用 "routes" 规则，"op" 仅允许：$operators。规则按顺序匹配，均不匹配时走 "default"。
- 除 is_set、not_empty、is_empty 外，每条规则都必须给出 "value"：gt/lt/gte/lte 为数值，starts_with/ends_with 为字符串，between 为 [min, max]。
- 条件边的 source 可以是尚不存在的 Agent，系统会为它创建定义。
- 使用满足任务的最简单结构，不必用到所有边类型，避免重复边。"""
    WORKER_FACTORY_SYSTEM = """当工作流图中的条件边引用了 nodes 列表之外（START 与 END 除外）的 Agent 时，你需要为每个这样的 Agent 创建定义。
示例：nodes 为 ["agent_1", "agent_2"]，条件边为：
```json
{"source": "x_agent", "type": "conditional", "routes": [{"field": "x", "op": "eq", "value": "a", "to": "agent_1"}], "default": "agent_2"}
```
"x_agent" 不在 nodes 中，应创建：
```json
{
    "name": "x_agent",
    "description": "该 Agent 的简短描述",
    "task": "该 Agent 要完成的任务",
    "output_properties": [
        {"name": "x", "type": "string", "description": "该输出属性的说明", "enum": ["a", "b"]}
    ]
}
```
若无需创建任何 Agent，返回空的 "additional_workers" 数组。"""

    _custom_templates: Dict[str, str] = {}
    @classmethod
    def get(cls, template_name: str, **kwargs) -> str:
        if template_name in cls._custom_templates:
            template_str = cls._custom_templates[template_name]
        else:
            template_str = getattr(cls, template_name, None)
            if template_str is None:
                raise ValueError(f"未知的模板名称: {template_name}")
        if kwargs:
            template = Template(template_str)
            return template.safe_substitute(**kwargs)
        return template_str

    @classmethod
    def set_custom(cls, template_name: str, template_str: str) -> None:
        cls._custom_templates[template_name] = template_str

    @classmethod
    def reset_custom(cls, template_name: Optional[str] = None) -> None:
        if template_name:
            cls._custom_templates.pop(template_name, None)
        else:
            cls._custom_templates.clear()

    @classmethod
    def list_templates(cls) -> list:
        return [name for name in dir(cls) if name.isupper() and not name.startswith("_")]

def get_prompt(template_name: str, **kwargs) -> str:
    return PromptTemplates.get(template_name, **kwargs)
