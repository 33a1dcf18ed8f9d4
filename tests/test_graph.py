"""
图引擎测试
==========

测试 Graph 的构建约束、遍历规则、并行合并与并发控制。
"""

import asyncio
import logging

import pytest

from agentflow.graph import (
    END,
    START,
    CircularDependencyError,
    DuplicateEdgeError,
    Graph,
    GraphCapacityError,
    GraphConstructionError,
    InvalidInvocationError,
    InvalidNodeError,
    InvalidWorkerResultError,
    RoutingError,
    State,
    UnknownNodeError,
    WorkerInvocationError,
)
from agentflow.graph.state import snapshot
from agentflow.types import InvocationResult, ParallelMerge


class Counter:
    """每次调用把 n 加一"""

    name = "counter"

    async def invoke(self, state, task):
        data = dict(snapshot(state))
        data["n"] = data.get("n", 0) + 1
        return InvocationResult(state=data, history=[])


class Probe:
    """记录同时运行的调用数"""

    name = "probe"

    def __init__(self):
        self.active = 0
        self.max_active = 0

    async def invoke(self, state, task):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0.02)
        self.active -= 1
        return InvocationResult(state=dict(snapshot(state)), history=[])


class RawWorker:
    """返回任意值的 Worker"""

    def __init__(self, name, result):
        self.name = name
        self.result = result

    async def invoke(self, state, task):
        return self.result


class TestGraphConstruction:
    """图构建测试"""

    def test_add_edge_returns_self(self, mock_settings, worker_factory):
        """测试链式调用"""
        a = worker_factory("a")
        graph = Graph("g", settings=mock_settings)

        assert graph.add_edge(START, a).add_edge(a, END) is graph
        assert graph.nodes == [START, a]
        assert len(graph.get_edges(a)) == 1

    def test_invalid_nodes_rejected(self, mock_settings, worker_factory):
        """测试无效节点"""
        graph = Graph("g", settings=mock_settings)

        with pytest.raises(InvalidNodeError):
            graph.add_edge(None, END)
        with pytest.raises(InvalidNodeError):
            graph.add_edge(START, 42)
        with pytest.raises(InvalidNodeError):
            graph.add_edge(START, None)

    def test_duplicate_direct_edge(self, mock_settings, worker_factory):
        """测试重复的直接边"""
        a = worker_factory("a")
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a)

        with pytest.raises(DuplicateEdgeError):
            graph.add_edge(START, a)

    def test_same_name_workers_are_distinct(self, mock_settings, worker_factory):
        """测试同名 Worker 按身份区分"""
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, worker_factory("a"))
        graph.add_edge(START, worker_factory("a"))

        assert len(graph.get_edges(START)) == 2

    def test_duplicate_conditional_edge(self, mock_settings):
        """测试同一函数对象的条件边重复"""
        graph = Graph("g", settings=mock_settings)

        def route(state):
            return END

        graph.add_conditional_edge(START, route)
        with pytest.raises(DuplicateEdgeError):
            graph.add_conditional_edge(START, route)

        graph.add_conditional_edge(START, lambda state: END)
        assert len(graph.get_edges(START)) == 2

    def test_conditional_edge_requires_callable(self, mock_settings):
        """测试条件边必须是可调用对象"""
        graph = Graph("g", settings=mock_settings)

        with pytest.raises(GraphConstructionError):
            graph.add_conditional_edge(START, "not callable")

    def test_parallel_targets_validation(self, mock_settings, worker_factory):
        """测试并行边目标校验"""
        graph = Graph("g", settings=mock_settings)

        with pytest.raises(InvalidNodeError):
            graph.add_parallel_edges(START, [])
        with pytest.raises(InvalidNodeError):
            graph.add_parallel_edges(START, "ab")
        with pytest.raises(InvalidNodeError):
            graph.add_parallel_edges(START, [worker_factory("a"), None])

    def test_parallel_next_defaults_to_end(self, mock_settings, worker_factory):
        """测试 next 为 None 时视为 END"""
        graph = Graph("g", settings=mock_settings)
        graph.add_parallel_edges(START, [worker_factory("a")], None)

        assert graph.get_edges(START)[0].next == END

    def test_duplicate_parallel_edge(self, mock_settings, worker_factory):
        """测试相同目标序列与 next 的并行边重复"""
        a, b = worker_factory("a"), worker_factory("b")
        graph = Graph("g", settings=mock_settings)
        graph.add_parallel_edges(START, [a, b])

        with pytest.raises(DuplicateEdgeError):
            graph.add_parallel_edges(START, [a, b], END)

        graph.add_parallel_edges(START, [b, a])
        assert len(graph.get_edges(START)) == 2

    def test_node_capacity(self, mock_settings, worker_factory):
        """测试节点数上限"""
        a = worker_factory("a")
        graph = Graph("g", max_nodes=1, settings=mock_settings)
        graph.add_edge(START, a)

        with pytest.raises(GraphCapacityError):
            graph.add_edge(a, END)

    def test_edge_capacity_checked_before_duplicates(self, mock_settings, worker_factory):
        """测试出边数上限先于重复检查"""
        a = worker_factory("a")
        graph = Graph("g", max_edges_per_node=1, settings=mock_settings)
        graph.add_edge(START, a)

        with pytest.raises(GraphCapacityError):
            graph.add_edge(START, a)

    def test_construction_errors_are_value_errors(self, mock_settings):
        """测试构建错误同时是 ValueError"""
        graph = Graph("g", settings=mock_settings)

        with pytest.raises(ValueError):
            graph.add_edge(None, END)

    def test_has_node(self, mock_settings, worker_factory):
        """测试节点存在性"""
        graph = Graph("g", settings=mock_settings)
        graph.add_edge("label", END)

        assert graph.has_node(START)
        assert graph.has_node(END)
        assert graph.has_node("label")
        assert graph.has_node(worker_factory("anyone"))
        assert not graph.has_node("missing")
        assert not graph.has_node(None)


class TestGraphTraversal:
    """图遍历测试"""

    @pytest.mark.asyncio
    async def test_linear_chain(self, mock_settings, worker_factory):
        """测试线性链的状态传递与历史顺序"""
        a = worker_factory("a", update={"x": 1})
        b = worker_factory("b", update={"y": 2})
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a).add_edge(a, b).add_edge(b, END)

        result = await graph.invoke({"city": "Berlin"}, "天气报告")

        assert result.state == {"city": "Berlin", "x": 1, "y": 2}
        assert [m.content for m in result.history] == ["a done", "b done"]
        assert b.calls[0]["state"] == {"city": "Berlin", "x": 1}
        assert a.calls[0]["task"] == "天气报告"

    @pytest.mark.asyncio
    async def test_none_state_keeps_previous(self, mock_settings, worker_factory):
        """测试 Worker 返回 None 状态时保留原状态"""
        a = worker_factory("a", return_state=False)
        b = worker_factory("b", update={"y": 2})
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a).add_edge(a, b)

        result = await graph.invoke({"x": 1}, "task")

        assert b.calls[0]["state"] == {"x": 1}
        assert result.state == {"x": 1, "y": 2}

    @pytest.mark.asyncio
    async def test_dead_end_stops_silently(self, mock_settings, worker_factory):
        """测试没有出边的节点结束遍历"""
        a = worker_factory("a", update={"x": 1})
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a)

        result = await graph.invoke({}, "task")

        assert result.state == {"x": 1}
        assert len(result.history) == 1

    @pytest.mark.asyncio
    async def test_conditional_none_falls_through(self, mock_settings, worker_factory):
        """测试条件边返回 None 时尝试下一条边"""
        a = worker_factory("a")
        b = worker_factory("b")
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a)
        graph.add_conditional_edge(a, lambda state: None)
        graph.add_edge(a, b)

        await graph.invoke({}, "task")

        assert len(b.calls) == 1

    @pytest.mark.asyncio
    async def test_no_route_means_end(self, mock_settings, worker_factory, event_recorder):
        """测试所有边都没有给出目标时结束"""
        a = worker_factory("a")
        b = worker_factory("b")
        graph = Graph("g", event_logger=event_recorder, settings=mock_settings)
        graph.add_edge(START, a)
        graph.add_conditional_edge(a, lambda state: None)
        graph.add_edge(b, END)

        result = await graph.invoke({}, "task")

        assert b.calls == []
        assert event_recorder.of("edge")[-1] == ("edge", "a", None)
        assert len(result.history) == 1

    @pytest.mark.asyncio
    async def test_conditional_loop(self, mock_settings):
        """测试条件边形成的循环"""
        counter = Counter()
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, counter)
        graph.add_conditional_edge(counter, lambda state: counter if state["n"] < 3 else END)

        result = await graph.invoke({"n": 0}, "task")

        assert result.state == {"n": 3}

    @pytest.mark.asyncio
    async def test_circular_dependency(self, mock_settings, worker_factory):
        """测试调用次数超出上限"""
        a = worker_factory("a")
        b = worker_factory("b")
        graph = Graph("g", max_invocations=5, settings=mock_settings)
        graph.add_edge(START, a).add_edge(a, b).add_edge(b, a)

        with pytest.raises(CircularDependencyError):
            await graph.invoke({}, "task")

    @pytest.mark.asyncio
    async def test_label_nodes(self, mock_settings, worker_factory):
        """测试字符串标签节点只做中转"""
        a = worker_factory("a", update={"x": 1})
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, "middle")
        graph.add_edge("middle", a)

        result = await graph.invoke({}, "task")

        assert result.state == {"x": 1}

    @pytest.mark.asyncio
    async def test_start_node(self, mock_settings, worker_factory):
        """测试从指定节点开始"""
        a = worker_factory("a")
        b = worker_factory("b")
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a)
        graph.add_edge("resume", b)

        await graph.invoke({}, "task", start_node="resume")

        assert a.calls == []
        assert len(b.calls) == 1

    @pytest.mark.asyncio
    async def test_sync_worker_tolerated(self, mock_settings):
        """测试同步 invoke 的 Worker"""

        class SyncWorker:
            name = "sync"

            def invoke(self, state, task):
                return {"state": {"sync": True}, "history": [{"name": "sync", "role": "assistant", "content": "ok"}]}

        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, SyncWorker())

        result = await graph.invoke({}, "task")

        assert result.state == {"sync": True}
        assert result.history[0].content == "ok"

    @pytest.mark.asyncio
    async def test_nested_graph_as_worker(self, mock_settings, worker_factory):
        """测试 Graph 作为另一个 Graph 的节点"""
        inner_worker = worker_factory("inner", update={"inner": True})
        inner = Graph("inner_graph", settings=mock_settings)
        inner.add_edge(START, inner_worker)

        outer_worker = worker_factory("outer", update={"outer": True})
        outer = Graph("outer_graph", settings=mock_settings)
        outer.add_edge(START, inner).add_edge(inner, outer_worker)

        result = await outer.invoke({}, "task")

        assert result.state == {"inner": True, "outer": True}
        assert [m.name for m in result.history] == ["inner", "outer"]

    @pytest.mark.asyncio
    async def test_state_container_passes_through(self, mock_settings, worker_factory):
        """测试 State 容器作为输入"""
        a = worker_factory("a", return_state=False)
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a)
        state = State({"x": 1})

        result = await graph.invoke(state, "task")

        assert result.state is state


class TestGraphErrors:
    """遍历错误测试"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("state", [None, "text", 3, True])
    async def test_invalid_state(self, mock_settings, worker_factory, state):
        """测试无效的 state"""
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, worker_factory("a"))

        with pytest.raises(InvalidInvocationError):
            await graph.invoke(state, "task")

    @pytest.mark.asyncio
    async def test_invalid_task_and_start(self, mock_settings, worker_factory):
        """测试无效的 task 与起始节点"""
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, worker_factory("a"))

        with pytest.raises(InvalidInvocationError):
            await graph.invoke({}, "")
        with pytest.raises(InvalidInvocationError):
            await graph.invoke({}, "task", start_node="nowhere")
        with pytest.raises(InvalidInvocationError):
            await graph.invoke({}, "task", start_node=None)

    @pytest.mark.asyncio
    async def test_unknown_direct_target(self, mock_settings):
        """测试直接边指向未注册的标签"""
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, "missing")

        with pytest.raises(UnknownNodeError):
            await graph.invoke({}, "task")

    @pytest.mark.asyncio
    async def test_conditional_returns_invalid_node(self, mock_settings):
        """测试条件函数返回无效节点"""
        graph = Graph("g", settings=mock_settings)
        graph.add_conditional_edge(START, lambda state: 42)

        with pytest.raises(UnknownNodeError):
            await graph.invoke({}, "task")

    @pytest.mark.asyncio
    async def test_routing_error(self, mock_settings):
        """测试条件函数抛出异常"""
        graph = Graph("g", settings=mock_settings)
        graph.add_conditional_edge(START, lambda state: state["missing"])

        with pytest.raises(RoutingError) as exc_info:
            await graph.invoke({}, "task")

        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_worker_error_wrapped(self, mock_settings, worker_factory):
        """测试 Worker 异常被包装"""
        boom = RuntimeError("boom")
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, worker_factory("broken", error=boom))

        with pytest.raises(WorkerInvocationError) as exc_info:
            await graph.invoke({}, "task")

        assert exc_info.value.worker_name == "broken"
        assert exc_info.value.cause is boom

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            "not a result",
            {"state": 5, "history": []},
            {"state": {}, "history": "text"},
            {"state": {}, "history": [{"foo": "bar"}]},
        ],
    )
    async def test_invalid_worker_result(self, mock_settings, raw):
        """测试 Worker 返回值格式错误"""
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, RawWorker("raw", raw))

        with pytest.raises(InvalidWorkerResultError):
            await graph.invoke({}, "task")

    @pytest.mark.asyncio
    async def test_mapping_result_accepted(self, mock_settings):
        """测试映射形式的返回值"""
        raw = {"state": {"ok": True}, "history": [{"name": "raw", "role": "assistant", "content": "hi"}]}
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, RawWorker("raw", raw))

        result = await graph.invoke({}, "task")

        assert result.state == {"ok": True}
        assert result.history[0].name == "raw"


class TestParallelEdges:
    """并行边测试"""

    def _graph(self, settings, a, b, join, **kwargs):
        graph = Graph("g", settings=settings, **kwargs)
        graph.add_parallel_edges(START, [a, b], join)
        return graph

    @pytest.mark.asyncio
    async def test_last_resolved_merge(self, mock_settings, worker_factory):
        """测试默认取最后完成的分支状态"""
        fast = worker_factory("fast", update={"winner": "fast"})
        slow = worker_factory("slow", update={"winner": "slow"}, delay=0.05)
        join = worker_factory("join")
        graph = self._graph(mock_settings, fast, slow, join)

        result = await graph.invoke({"shared": 1}, "task")

        assert join.calls[0]["state"] == {"shared": 1, "winner": "slow"}
        assert [m.name for m in result.history] == ["fast", "slow", "join"]

    @pytest.mark.asyncio
    async def test_first_branch_merge(self, mock_settings, worker_factory):
        """测试取声明顺序第一个分支的状态"""
        slow = worker_factory("slow", update={"winner": "slow"}, delay=0.05)
        fast = worker_factory("fast", update={"winner": "fast"})
        join = worker_factory("join")
        graph = self._graph(mock_settings, slow, fast, join, merge=ParallelMerge.FIRST_BRANCH)

        await graph.invoke({}, "task")

        assert join.calls[0]["state"] == {"winner": "slow"}

    @pytest.mark.asyncio
    async def test_reducer_merge(self, mock_settings, worker_factory):
        """测试自定义 reducer 收到按声明顺序排列的分支状态"""
        a = worker_factory("a", update={"a": 1}, delay=0.03)
        b = worker_factory("b", update={"b": 2})
        seen = []

        def reducer(state, branches):
            seen.append(branches)
            merged = dict(state)
            for branch in branches:
                merged.update(branch)
            return merged

        graph = self._graph(mock_settings, a, b, END, merge=reducer)
        result = await graph.invoke({"base": 0}, "task")

        assert result.state == {"base": 0, "a": 1, "b": 2}
        assert seen[0][0] == {"base": 0, "a": 1}

    @pytest.mark.asyncio
    async def test_reducer_none_keeps_state(self, mock_settings, worker_factory):
        """测试 reducer 返回 None 时保留原状态"""
        a = worker_factory("a", update={"a": 1})
        b = worker_factory("b", update={"b": 2})
        graph = self._graph(mock_settings, a, b, END, merge=lambda state, branches: None)

        result = await graph.invoke({"base": 0}, "task")

        assert result.state == {"base": 0}

    @pytest.mark.asyncio
    async def test_unregistered_label_target(self, mock_settings, worker_factory):
        """测试并行目标中包含未注册的标签"""
        a = worker_factory("a")
        graph = Graph("g", settings=mock_settings)
        graph.add_parallel_edges(START, [a, "ghost"], END)

        with pytest.raises(UnknownNodeError):
            await graph.invoke({}, "task")

        assert a.calls == []

    @pytest.mark.asyncio
    async def test_registered_label_target_not_invoked(self, mock_settings, worker_factory):
        """测试已注册的标签目标通过校验，但不会被调用"""
        a = worker_factory("a", update={"a": 1})
        b = worker_factory("b")
        graph = Graph("g", settings=mock_settings)
        graph.add_parallel_edges(START, [a, "review"], END)
        graph.add_edge("review", b)

        result = await graph.invoke({}, "task")

        assert result.state == {"a": 1}
        assert b.calls == []

    @pytest.mark.asyncio
    async def test_branches_receive_same_state(self, mock_settings, worker_factory):
        """测试所有分支收到相同的输入状态"""
        a = worker_factory("a", update={"a": 1})
        b = worker_factory("b", update={"b": 1})
        graph = self._graph(mock_settings, a, b, END)

        await graph.invoke({"x": 0}, "task")

        assert a.calls[0]["state"] == b.calls[0]["state"] == {"x": 0}

    @pytest.mark.asyncio
    async def test_branches_run_concurrently(self, mock_settings, worker_factory):
        """测试分支并发执行"""
        a = worker_factory("a", delay=0.1)
        b = worker_factory("b", delay=0.1)
        graph = self._graph(mock_settings, a, b, END)

        loop = asyncio.get_running_loop()
        started = loop.time()
        await graph.invoke({}, "task")

        assert loop.time() - started < 0.19

    @pytest.mark.asyncio
    async def test_branch_failure_propagates(self, mock_settings, worker_factory):
        """测试分支失败时抛出异常"""
        broken = worker_factory("broken", error=ValueError("bad"))
        slow = worker_factory("slow", delay=0.5)
        join = worker_factory("join")
        graph = self._graph(mock_settings, broken, slow, join)

        with pytest.raises(WorkerInvocationError) as exc_info:
            await graph.invoke({}, "task")

        assert exc_info.value.worker_name == "broken"
        assert join.calls == []

    @pytest.mark.asyncio
    async def test_default_next_is_end(self, mock_settings, worker_factory, event_recorder):
        """测试并行边默认汇合到 END"""
        a = worker_factory("a")
        b = worker_factory("b")
        graph = Graph("g", event_logger=event_recorder, settings=mock_settings)
        graph.add_parallel_edges(START, [a, b])

        result = await graph.invoke({}, "task")

        assert len(result.history) == 2
        assert event_recorder.of("edge") == [("edge", "START", [a, b])]


class TestGraphConcurrency:
    """互斥与重入测试"""

    @pytest.mark.asyncio
    async def test_invocations_are_serialized(self, mock_settings):
        """测试同一个 Graph 的调用互斥"""
        probe = Probe()
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, probe)

        await asyncio.gather(graph.invoke({}, "one"), graph.invoke({}, "two"))

        assert probe.max_active == 1

    @pytest.mark.asyncio
    async def test_different_graphs_run_concurrently(self, mock_settings):
        """测试不同 Graph 之间互不阻塞"""
        probe = Probe()
        first = Graph("first", settings=mock_settings)
        first.add_edge(START, probe)
        second = Graph("second", settings=mock_settings)
        second.add_edge(START, probe)

        await asyncio.gather(first.invoke({}, "one"), second.invoke({}, "two"))

        assert probe.max_active == 2

    @pytest.mark.asyncio
    async def test_reentrant_invocation(self, mock_settings, worker_factory):
        """测试同一调用链内重入不会死锁"""
        inner = worker_factory("inner", update={"inner": True})
        graph = Graph("g", settings=mock_settings)

        class Reenter:
            name = "reenter"

            async def invoke(self, state, task):
                return await graph.invoke(state, task, start_node="nested")

        graph.add_edge(START, Reenter())
        graph.add_edge("nested", inner)

        result = await asyncio.wait_for(graph.invoke({}, "task"), timeout=1)

        assert result.state == {"inner": True}

    @pytest.mark.asyncio
    async def test_reentrant_from_parallel_branch(self, mock_settings, worker_factory):
        """测试并行分支内的重入"""
        inner = worker_factory("inner", update={"inner": True})
        other = worker_factory("other")
        graph = Graph("g", settings=mock_settings)

        class Reenter:
            name = "reenter"

            async def invoke(self, state, task):
                return await graph.invoke(state, task, start_node="nested")

        graph.add_parallel_edges(START, [Reenter(), other])
        graph.add_edge("nested", inner)

        result = await asyncio.wait_for(graph.invoke({}, "task"), timeout=1)

        assert len(inner.calls) == 1
        assert any(m.name == "inner" for m in result.history)

    @pytest.mark.asyncio
    async def test_detached_task_inherits_reentry(self, mock_settings, worker_factory):
        """测试 Worker 启动的后台任务继承重入记录，不等待锁"""
        inner = worker_factory("inner", update={"inner": True})
        graph = Graph("g", settings=mock_settings)
        spawned = []

        class Spawner:
            name = "spawner"

            async def invoke(self, state, task):
                spawned.append(asyncio.create_task(graph.invoke({}, task, start_node="nested")))
                return InvocationResult()

        class Gate:
            name = "gate"

            async def invoke(self, state, task):
                detached = await spawned[0]
                return InvocationResult(state=detached.state)

        spawner, gate = Spawner(), Gate()
        graph.add_edge(START, spawner).add_edge(spawner, gate)
        graph.add_edge("nested", inner)

        result = await asyncio.wait_for(graph.invoke({}, "task"), timeout=1)

        assert result.state == {"inner": True}


class TestEventLogging:
    """事件日志测试"""

    @pytest.mark.asyncio
    async def test_edge_events(self, mock_settings, worker_factory, event_recorder):
        """测试边遍历事件"""
        a = worker_factory("a")
        b = worker_factory("b")
        graph = Graph("g", event_logger=event_recorder, settings=mock_settings)
        graph.add_edge(START, a).add_edge(a, b).add_edge(b, END)

        await graph.invoke({}, "task")

        assert event_recorder.of("edge") == [
            ("edge", "START", a),
            ("edge", "a", b),
            ("edge", "b", END),
        ]

    @pytest.mark.asyncio
    async def test_failing_event_logger_only_warns(self, mock_settings, worker_factory, caplog):
        """测试事件日志器出错不影响执行"""

        class BrokenLogger:
            def edge(self, current, target):
                raise RuntimeError("logger down")

        a = worker_factory("a", update={"x": 1})
        graph = Graph("g", event_logger=BrokenLogger(), settings=mock_settings)
        graph.add_edge(START, a)

        with caplog.at_level(logging.WARNING):
            result = await graph.invoke({}, "task")

        assert result.state == {"x": 1}
        assert "logger down" in caplog.text

    def test_defaults_from_settings(self, mock_settings):
        """测试容量与合并策略来自配置"""
        graph = Graph("g", settings=mock_settings)

        assert graph.max_nodes == 50
        assert graph.max_edges_per_node == 10
        assert graph.max_invocations == 20
        assert graph.merge == ParallelMerge.LAST_RESOLVED


class TestTraversalProperties:
    """遍历性质测试"""

    @pytest.mark.asyncio
    async def test_single_worker_example(self, mock_settings):
        """测试 START -> A -> END"""

        class SeenWorker:
            name = "A"

            async def invoke(self, state, task):
                return {
                    "state": {**state, "seen": True},
                    "history": [{"name": "A", "role": "assistant", "content": "ok"}],
                }

        a = SeenWorker()
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a).add_edge(a, END)

        result = await graph.invoke({"seen": False}, "t")

        assert result.state == {"seen": True}
        assert [(m.name, m.role, m.content) for m in result.history] == [("A", "assistant", "ok")]

    @pytest.mark.asyncio
    async def test_conditional_to_unregistered_label(self, mock_settings, worker_factory):
        """测试条件函数返回未注册的字符串节点"""
        a = worker_factory("A")
        graph = Graph("g", settings=mock_settings)
        graph.add_edge(START, a)
        graph.add_conditional_edge(a, lambda state: "B")

        with pytest.raises(UnknownNodeError):
            await graph.invoke({}, "t")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", ["weather", "news", "other"])
    async def test_conditional_routing_is_deterministic(self, mock_settings, worker_factory, kind):
        """测试条件路由只访问映射到的目标"""
        targets = {name: worker_factory(name) for name in ("weather", "news", "other")}
        graph = Graph("g", settings=mock_settings)
        graph.add_conditional_edge(START, lambda state: targets[state["kind"]])

        await graph.invoke({"kind": kind}, "t")

        assert {name: len(w.calls) for name, w in targets.items()} == {
            name: int(name == kind) for name in targets
        }

    @pytest.mark.asyncio
    async def test_self_loop_hits_ceiling(self, mock_settings, worker_factory):
        """测试始终回到自身的条件边"""
        a = worker_factory("a")
        graph = Graph("g", max_invocations=10, settings=mock_settings)
        graph.add_edge(START, a)
        graph.add_conditional_edge(a, lambda state: a)

        with pytest.raises(CircularDependencyError):
            await asyncio.wait_for(graph.invoke({}, "t"), timeout=1)

        assert len(a.calls) == 9

    @pytest.mark.asyncio
    async def test_history_length_is_sum_of_messages(self, mock_settings, worker_factory):
        """测试历史长度等于各 Worker 消息数之和"""
        workers = [
            worker_factory("a", messages=["1"]),
            worker_factory("b", messages=["1", "2", "3"]),
            worker_factory("c", messages=[]),
        ]
        graph = Graph("g", settings=mock_settings)
        previous = START
        for worker in workers:
            graph.add_edge(previous, worker)
            previous = worker

        result = await graph.invoke({}, "t")

        assert len(result.history) == 4
        assert all(len(w.calls) == 1 for w in workers)
