"""
DAG workflow engine on top of LangGraph.

A workflow is a set of steps with declared predecessors. The definition is
validated once (unknown dependencies, duplicates, cycles) and compiled per
run into a StateGraph: steps without predecessors hang off START, a step with
several predecessors waits on a join edge, steps nobody depends on lead to
END. A step starts only after all its predecessors succeeded; the first
failure aborts the run.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from langgraph.graph import END, START, StateGraph

from content_engine.services.errors import (
    StepDependencyError,
    WorkflowDefinitionError,
    WorkflowStepError,
)
from content_engine.services.workflow.state import (
    RunListener,
    StepContext,
    WorkflowGraphState,
    WorkflowRun,
)

logger = logging.getLogger(__name__)

StepFn = Callable[[StepContext], Awaitable[Any]]

# Graph state keys and LangGraph's own node names
RESERVED_STEP_IDS = frozenset({"trigger", "results", START, END})


@dataclass(frozen=True)
class StepDefinition:
    id: str
    execute: StepFn
    depends_on: Tuple[str, ...] = ()
    description: str = ""


@dataclass
class WorkflowDefinition:
    """
    Validated step graph.

    Raises:
        WorkflowDefinitionError: Empty graph, duplicate step ids, unknown or
            self dependencies, or a cycle
    """

    name: str
    steps: Sequence[StepDefinition]
    order: List[str] = field(init=False)
    ancestors: Dict[str, FrozenSet[str]] = field(init=False)

    def __post_init__(self):
        self.steps = list(self.steps)
        if not self.steps:
            raise WorkflowDefinitionError(f"Workflow '{self.name}' has no steps")

        ids = [step.id for step in self.steps]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise WorkflowDefinitionError(f"Duplicate step ids: {', '.join(duplicates)}")

        reserved = sorted(set(ids) & RESERVED_STEP_IDS)
        if reserved:
            raise WorkflowDefinitionError(f"Reserved step ids: {', '.join(reserved)}")

        known = set(ids)
        for step in self.steps:
            if step.id in step.depends_on:
                raise WorkflowDefinitionError(f"Step '{step.id}' depends on itself")
            unknown = [d for d in step.depends_on if d not in known]
            if unknown:
                raise WorkflowDefinitionError(
                    f"Step '{step.id}' depends on unknown steps: {', '.join(unknown)}"
                )

        self.order = self._topological_order()
        self.ancestors = self._collect_ancestors()

    def _topological_order(self) -> List[str]:
        # Kahn's algorithm, ties broken by declaration order
        in_degree = {step.id: len(set(step.depends_on)) for step in self.steps}
        dependents: Dict[str, List[str]] = {step.id: [] for step in self.steps}
        for step in self.steps:
            for dep in set(step.depends_on):
                dependents[dep].append(step.id)

        queue = deque(step.id for step in self.steps if in_degree[step.id] == 0)
        order: List[str] = []
        while queue:
            current = queue.popleft()
            order.append(current)
            for child in dependents[current]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    queue.append(child)

        if len(order) != len(self.steps):
            cyclic = sorted(step_id for step_id, deg in in_degree.items() if deg > 0)
            raise WorkflowDefinitionError(
                f"Workflow '{self.name}' has a cycle through: {', '.join(cyclic)}"
            )
        return order

    def _collect_ancestors(self) -> Dict[str, FrozenSet[str]]:
        by_id = self.step_map
        ancestors: Dict[str, FrozenSet[str]] = {}
        for step_id in self.order:
            found = set()
            for dep in by_id[step_id].depends_on:
                found.add(dep)
                found.update(ancestors[dep])
            ancestors[step_id] = frozenset(found)
        return ancestors

    @property
    def step_map(self) -> Dict[str, StepDefinition]:
        return {step.id: step for step in self.steps}

    @property
    def terminal_steps(self) -> List[str]:
        depended_on = {dep for step in self.steps for dep in step.depends_on}
        return [step_id for step_id in self.order if step_id not in depended_on]

    @classmethod
    def chain(cls, name: str, steps: Sequence[Tuple[str, StepFn]]) -> "WorkflowDefinition":
        """Linear workflow: each step depends on the one before it."""
        definitions = []
        previous: Optional[str] = None
        for step_id, execute in steps:
            depends_on = (previous,) if previous else ()
            definitions.append(StepDefinition(id=step_id, execute=execute, depends_on=depends_on))
            previous = step_id
        return cls(name=name, steps=definitions)


class WorkflowEngine:
    """
    Usage:
        engine = WorkflowEngine(definition)
        engine.watch(lambda event: print(event["step_id"], event["status"]))
        run = await engine.start({"topic": "AI website builders"})
        if run.succeeded:
            article = run.results["finalize"]
    """

    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition
        self._listeners: List[RunListener] = []

    def watch(self, listener: RunListener) -> None:
        """Register a callback receiving a step status event for every transition."""
        self._listeners.append(listener)

    def _node(self, run: WorkflowRun, step: StepDefinition):
        ancestors = self.definition.ancestors[step.id]

        async def node(state: WorkflowGraphState) -> Dict[str, Any]:
            run.mark_running(step.id)
            logger.info(
                f"[{run.workflow_name}] step {step.id} started",
                extra={"step_id": step.id},
            )
            context = StepContext(run, step.id, ancestors)
            try:
                result = await step.execute(context)
            except StepDependencyError as e:
                run.mark_failed(step.id, e)
                raise
            except Exception as e:
                run.mark_failed(step.id, e)
                logger.error(
                    f"[{run.workflow_name}] step {step.id} failed: {type(e).__name__}: {e}",
                    extra={"step_id": step.id, "error": str(e)},
                )
                raise WorkflowStepError(step.id, e) from e

            run.mark_success(step.id, result)
            logger.info(
                f"[{run.workflow_name}] step {step.id} completed",
                extra={"step_id": step.id},
            )
            return {"results": {step.id: result}}

        return node

    def build_graph(self, run: WorkflowRun):
        """Compile the step graph for one run."""
        graph = StateGraph(WorkflowGraphState)

        for step_id in self.definition.order:
            graph.add_node(step_id, self._node(run, self.definition.step_map[step_id]))

        for step in self.definition.steps:
            deps = list(dict.fromkeys(step.depends_on))
            if not deps:
                graph.add_edge(START, step.id)
            elif len(deps) == 1:
                graph.add_edge(deps[0], step.id)
            else:
                graph.add_edge(deps, step.id)

        for step_id in self.definition.terminal_steps:
            graph.add_edge(step_id, END)

        return graph.compile()

    async def start(self, trigger: Dict[str, Any], run_id: Optional[str] = None) -> WorkflowRun:
        """
        Execute the workflow once.

        Step failures never escape: the returned run has status `failed`,
        `failed_step` and `error` set. StepDependencyError is a programming
        error and propagates.
        """
        run = WorkflowRun.create(
            self.definition.name, self.definition.order, trigger, run_id=run_id
        )
        run.listeners.extend(self._listeners)
        run.mark_started()

        logger.info(f"[{run.workflow_name}] run {run.run_id} started with {trigger}")

        graph = self.build_graph(run)
        try:
            await graph.ainvoke(
                {"trigger": run.trigger, "results": {}},
                config={"recursion_limit": len(self.definition.order) + 10},
            )
        except WorkflowStepError as e:
            run.exception = e
            logger.error(
                f"[{run.workflow_name}] run {run.run_id} failed at step {e.step_id}",
                extra={"step_id": e.step_id, "error": str(e.cause)},
            )
        finally:
            run.finish()

        if run.succeeded:
            logger.info(f"[{run.workflow_name}] run {run.run_id} succeeded")
        return run
