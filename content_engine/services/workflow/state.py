"""Workflow run state, step statuses and the context handed to each step."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Callable, Dict, FrozenSet, List, Optional, TypedDict

from content_engine.services.errors import StepDependencyError

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def merge_results(left: Dict[str, Any], right: Dict[str, Any]) -> Dict[str, Any]:
    """LangGraph reducer: parallel branches each contribute their own step ids."""
    merged = dict(left or {})
    merged.update(right or {})
    return merged


class WorkflowGraphState(TypedDict, total=False):
    """LangGraph runtime state."""

    trigger: Dict[str, Any]
    results: Annotated[Dict[str, Any], merge_results]


RunListener = Callable[[Dict[str, Any]], None]


@dataclass
class WorkflowRun:
    """
    One execution of a workflow.

    `statuses` holds every step id; `results` only the steps that succeeded.
    The run is `success` only when every step succeeded and `failed` as soon
    as one step fails.
    """

    workflow_name: str
    trigger: Dict[str, Any]
    statuses: Dict[str, StepStatus]
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    results: Dict[str, Any] = field(default_factory=dict)
    status: StepStatus = StepStatus.PENDING
    error: Optional[str] = None
    failed_step: Optional[str] = None
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False)
    listeners: List[RunListener] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        workflow_name: str,
        step_ids: List[str],
        trigger: Dict[str, Any],
        run_id: Optional[str] = None,
    ) -> "WorkflowRun":
        run = cls(
            workflow_name=workflow_name,
            trigger=dict(trigger),
            statuses={step_id: StepStatus.PENDING for step_id in step_ids},
        )
        if run_id:
            run.run_id = run_id
        return run

    def _emit(self, step_id: Optional[str], status: StepStatus) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "status": status.value,
            "statuses": {k: v.value for k, v in self.statuses.items()},
        }
        if step_id and step_id in self.results:
            event["result"] = self.results[step_id]
        if self.error and status == StepStatus.FAILED:
            event["error"] = self.error
        for listener in self.listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Run {self.run_id} listener failed on {step_id} {status.value}: {e}")

    def mark_started(self) -> None:
        self.status = StepStatus.RUNNING
        self.started_at = _now()

    def mark_running(self, step_id: str) -> None:
        self.statuses[step_id] = StepStatus.RUNNING
        self._emit(step_id, StepStatus.RUNNING)

    def mark_success(self, step_id: str, result: Any) -> None:
        self.results[step_id] = result
        self.statuses[step_id] = StepStatus.SUCCESS
        self._emit(step_id, StepStatus.SUCCESS)

    def mark_failed(self, step_id: str, error: BaseException) -> None:
        self.statuses[step_id] = StepStatus.FAILED
        self.failed_step = step_id
        self.error = f"{type(error).__name__}: {error}"
        self._emit(step_id, StepStatus.FAILED)

    def finish(self) -> None:
        if all(s == StepStatus.SUCCESS for s in self.statuses.values()):
            self.status = StepStatus.SUCCESS
        else:
            self.status = StepStatus.FAILED
        self.finished_at = _now()
        self._emit(None, self.status)

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "workflow": self.workflow_name,
            "trigger": self.trigger,
            "status": self.status.value,
            "steps": {k: v.value for k, v in self.statuses.items()},
            "failed_step": self.failed_step,
            "error": self.error,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


class StepContext:
    """
    What a step sees while it executes: the trigger payload and the results
    of the steps it (transitively) depends on.
    """

    def __init__(self, run: WorkflowRun, step_id: str, ancestors: FrozenSet[str]):
        self._run = run
        self.step_id = step_id
        self._ancestors = ancestors

    @property
    def trigger(self) -> Dict[str, Any]:
        return self._run.trigger

    @property
    def run_id(self) -> str:
        return self._run.run_id

    def get_step_result(self, step_id: str) -> Any:
        """
        Result of a completed predecessor step.

        Raises:
            StepDependencyError: `step_id` is not a predecessor of this step
                or has not completed
        """
        if step_id not in self._ancestors:
            raise StepDependencyError(
                f"Step '{self.step_id}' does not depend on step '{step_id}'"
            )
        if self._run.statuses.get(step_id) != StepStatus.SUCCESS:
            raise StepDependencyError(
                f"Step '{self.step_id}' read step '{step_id}' before it completed"
            )
        return self._run.results[step_id]
