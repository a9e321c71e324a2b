"""Caller-driven step interface over a provisioning workflow.

Exposes the provision → inspect → power cycle → teardown sequence one step at
a time, so a caller (such as the CLI) decides when to advance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence

from ..models.descriptor import ResourceDescriptor
from ..models.workflow_state import LifecycleOperation, WorkflowState
from .engine import ProvisioningWorkflow

logger = logging.getLogger(__name__)


class Step(Enum):
    """Steps of the standard provisioning sequence."""

    APPLY = "apply"
    LIST = "list"
    EXPORT = "export"
    STOP = "stop"
    START = "start"
    RESTART = "restart"
    TEARDOWN = "teardown"

    @property
    def is_lifecycle(self) -> bool:
        return self in (Step.STOP, Step.START, Step.RESTART)


DEFAULT_STEPS = (
    Step.APPLY,
    Step.LIST,
    Step.EXPORT,
    Step.STOP,
    Step.START,
    Step.RESTART,
    Step.TEARDOWN,
)


@dataclass
class StepOutcome:
    """Result of one executed step.

    Attributes:
        step: Step that ran
        state: Workflow state after the step
        payload: Step result (live resources, resource listing, template text)
    """

    step: Step
    state: WorkflowState
    payload: Any = None


class WorkflowRunner:
    """Run a provisioning workflow one step at a time.

    Attributes:
        workflow: Workflow being driven
        descriptors: Descriptor set planned before the first step
        vm_name: Virtual machine targeted by lifecycle steps
        steps: Remaining and completed steps in execution order
    """

    def __init__(
        self,
        workflow: ProvisioningWorkflow,
        descriptors: Sequence[ResourceDescriptor],
        vm_name: str,
        steps: Sequence[Step] = DEFAULT_STEPS,
    ) -> None:
        self.workflow = workflow
        self.descriptors = list(descriptors)
        self.vm_name = vm_name
        self.steps = list(steps)
        self._position = 0
        self.outcomes: List[StepOutcome] = []

    @property
    def has_next(self) -> bool:
        return self._position < len(self.steps)

    @property
    def pending_step(self) -> Optional[Step]:
        """Step that next() will run, None when finished."""
        return self.steps[self._position] if self.has_next else None

    def next(self) -> StepOutcome:
        """Execute the pending step.

        The workflow's errors propagate unchanged. A step that raised is not
        consumed, so calling next() again retries it (useful for teardown).

        Raises:
            StopIteration: If every step already ran
        """
        if not self.has_next:
            raise StopIteration("No steps remaining")

        step = self.steps[self._position]
        logger.debug(f"Running step {self._position + 1}/{len(self.steps)}: {step.value}")
        payload = self._run(step)
        self._position += 1

        outcome = StepOutcome(step=step, state=self.workflow.state, payload=payload)
        self.outcomes.append(outcome)
        return outcome

    def run_all(self) -> List[StepOutcome]:
        """Execute every remaining step without pausing."""
        while self.has_next:
            self.next()
        return list(self.outcomes)

    def _run(self, step: Step) -> Any:
        if step == Step.APPLY:
            if not self.workflow.plan_order:
                self.workflow.plan(self.descriptors)
            return self.workflow.apply()
        if step == Step.LIST:
            return self.workflow.list_resources()
        if step == Step.EXPORT:
            return self.workflow.export_template()
        if step.is_lifecycle:
            return self.workflow.lifecycle(LifecycleOperation(step.value), self.vm_name)
        return self.workflow.teardown()
