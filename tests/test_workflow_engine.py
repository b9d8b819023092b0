"""Tests for DAG validation and workflow execution."""

import asyncio

import pytest

from content_engine.services.errors import (
    StepDependencyError,
    WorkflowDefinitionError,
    WorkflowStepError,
)
from content_engine.services.workflow.engine import (
    StepDefinition,
    WorkflowDefinition,
    WorkflowEngine,
)
from content_engine.services.workflow.state import StepStatus


def constant(value):
    async def execute(ctx):
        return value
    return execute


def failing(message):
    async def execute(ctx):
        raise ValueError(message)
    return execute


class TestWorkflowDefinition:

    def test_order_respects_dependencies(self) -> None:
        definition = WorkflowDefinition("wf", [
            StepDefinition("publish", constant(3), depends_on=("draft", "review")),
            StepDefinition("draft", constant(1)),
            StepDefinition("review", constant(2), depends_on=("draft",)),
        ])

        assert definition.order == ["draft", "review", "publish"]
        assert definition.ancestors["publish"] == frozenset({"draft", "review"})
        assert definition.terminal_steps == ["publish"]

    def test_chain_links_each_step_to_the_previous(self) -> None:
        definition = WorkflowDefinition.chain("wf", [("a", constant(1)), ("b", constant(2)), ("c", constant(3))])

        assert definition.order == ["a", "b", "c"]
        assert definition.step_map["c"].depends_on == ("b",)
        assert definition.ancestors["c"] == frozenset({"a", "b"})

    def test_cycle_is_rejected(self) -> None:
        with pytest.raises(WorkflowDefinitionError, match="cycle"):
            WorkflowDefinition("wf", [
                StepDefinition("a", constant(1), depends_on=("c",)),
                StepDefinition("b", constant(2), depends_on=("a",)),
                StepDefinition("c", constant(3), depends_on=("b",)),
            ])

    @pytest.mark.parametrize("steps", [
        [],
        [StepDefinition("a", constant(1)), StepDefinition("a", constant(2))],
        [StepDefinition("a", constant(1), depends_on=("missing",))],
        [StepDefinition("a", constant(1), depends_on=("a",))],
        [StepDefinition("results", constant(1))],
    ])
    def test_invalid_graphs_are_rejected(self, steps) -> None:
        with pytest.raises(WorkflowDefinitionError):
            WorkflowDefinition("wf", steps)


class TestWorkflowEngine:

    def test_linear_run_passes_results_forward(self) -> None:
        async def double(ctx):
            return ctx.get_step_result("first") * 2

        async def describe(ctx):
            return f"{ctx.trigger['label']}={ctx.get_step_result('second')}"

        engine = WorkflowEngine(WorkflowDefinition.chain("wf", [
            ("first", constant(21)),
            ("second", double),
            ("third", describe),
        ]))

        run = asyncio.run(engine.start({"label": "answer"}))

        assert run.succeeded
        assert run.results == {"first": 21, "second": 42, "third": "answer=42"}
        assert set(run.statuses.values()) == {StepStatus.SUCCESS}
        assert run.started_at and run.finished_at

    def test_join_waits_for_all_predecessors(self) -> None:
        seen = []

        def record(name, value):
            async def execute(ctx):
                seen.append(name)
                return value
            return execute

        async def combine(ctx):
            seen.append("combine")
            return ctx.get_step_result("left") + ctx.get_step_result("right") + ctx.get_step_result("root")

        engine = WorkflowEngine(WorkflowDefinition("diamond", [
            StepDefinition("root", record("root", 1)),
            StepDefinition("left", record("left", 10), depends_on=("root",)),
            StepDefinition("right", record("right", 100), depends_on=("root",)),
            StepDefinition("combine", combine, depends_on=("left", "right")),
        ]))

        run = asyncio.run(engine.start({}))

        assert run.succeeded
        assert run.results["combine"] == 111
        assert seen[0] == "root"
        assert seen[-1] == "combine"
        assert sorted(seen[1:3]) == ["left", "right"]

    def test_failure_stops_downstream_steps(self) -> None:
        calls = []

        async def never(ctx):
            calls.append("never")
            return None

        engine = WorkflowEngine(WorkflowDefinition.chain("wf", [
            ("first", constant(1)),
            ("second", failing("model timed out")),
            ("third", never),
        ]))

        run = asyncio.run(engine.start({}))

        assert not run.succeeded
        assert run.status == StepStatus.FAILED
        assert run.failed_step == "second"
        assert "model timed out" in run.error
        assert run.statuses == {
            "first": StepStatus.SUCCESS,
            "second": StepStatus.FAILED,
            "third": StepStatus.PENDING,
        }
        assert "third" not in run.results
        assert calls == []
        assert isinstance(run.exception, WorkflowStepError)
        assert isinstance(run.exception.cause, ValueError)

    def test_reading_a_non_predecessor_is_a_programming_error(self) -> None:
        async def sneaky(ctx):
            return ctx.get_step_result("sibling")

        engine = WorkflowEngine(WorkflowDefinition("wf", [
            StepDefinition("root", constant(1)),
            StepDefinition("sibling", constant(2), depends_on=("root",)),
            StepDefinition("reader", sneaky, depends_on=("root",)),
        ]))

        with pytest.raises(StepDependencyError):
            asyncio.run(engine.start({}))

    def test_watchers_receive_every_transition(self) -> None:
        events = []
        engine = WorkflowEngine(WorkflowDefinition.chain("wf", [
            ("first", constant("a")),
            ("second", constant("b")),
        ]))
        engine.watch(events.append)

        run = asyncio.run(engine.start({}, run_id="run-1"))

        assert [(e["step_id"], e["status"]) for e in events] == [
            ("first", "running"),
            ("first", "success"),
            ("second", "running"),
            ("second", "success"),
            (None, "success"),
        ]
        assert all(e["run_id"] == "run-1" for e in events)
        assert events[1]["result"] == "a"
        assert run.to_dict()["steps"] == {"first": "success", "second": "success"}

    def test_runs_are_independent(self) -> None:
        async def echo(ctx):
            return ctx.trigger["n"]

        engine = WorkflowEngine(WorkflowDefinition.chain("wf", [("echo", echo)]))

        async def both():
            return await asyncio.gather(engine.start({"n": 1}), engine.start({"n": 2}))

        first, second = asyncio.run(both())

        assert first.results["echo"] == 1
        assert second.results["echo"] == 2
        assert first.run_id != second.run_id

    def test_failing_listener_does_not_break_the_run(self) -> None:
        events = []

        def broken(event):
            raise RuntimeError("listener crashed")

        engine = WorkflowEngine(WorkflowDefinition.chain("wf", [
            ("first", constant(1)),
            ("second", constant(2)),
        ]))
        engine.watch(broken)
        engine.watch(events.append)

        run = asyncio.run(engine.start({}))

        assert run.succeeded
        assert set(run.statuses.values()) == {StepStatus.SUCCESS}
        assert [(e["step_id"], e["status"]) for e in events if e["step_id"]] == [
            ("first", "running"),
            ("first", "success"),
            ("second", "running"),
            ("second", "success"),
        ]
