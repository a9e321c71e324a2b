"""Provisioning workflow engine.

Drives provider calls in dependency order, tracks live resources and exposes
lifecycle operations, template export and teardown.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence

from ..exceptions import (
    InvalidStateError,
    ProviderError,
    TeardownError,
    ValidationError,
    WorkflowCancelledError,
)
from ..models.descriptor import ResourceDescriptor, ResourceKind
from ..models.live_resource import LiveResource
from ..models.workflow_state import LifecycleOperation, WorkflowState
from ..providers.base import ALL_RESOURCES, ProviderClient
from .dependency import DependencyOrderer
from .references import check_references, resolve_descriptor

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag checked between workflow steps."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ProvisioningWorkflow:
    """Provisioning workflow orchestrator.

    Owns one run's live resources and state. All side effects go through the
    provider client; the workflow itself keeps nothing beyond memory.

    State transitions:
        planned → creating → ready | failed
        ready → stopping → stopped → starting → ready
        ready → restarting → ready
        any (except deleted) → deleting → deleted

    Known limitation: a provider error during apply() leaves already created
    resources live. There is no rollback; teardown() removes the whole group.

    Attributes:
        provider: Authenticated provider client
        orderer: Dependency orderer used to validate and sequence descriptors
        cancellation: Optional cancellation token checked between apply steps
    """

    def __init__(
        self,
        provider: ProviderClient,
        cancellation: Optional[CancellationToken] = None,
    ) -> None:
        """Initialize workflow.

        Args:
            provider: Already-authenticated provider client
            cancellation: Cancellation token (optional)
        """
        self.provider = provider
        self.orderer = DependencyOrderer()
        self.cancellation = cancellation
        self._state = WorkflowState.PLANNED
        self._history: List[WorkflowState] = [WorkflowState.PLANNED]
        self._plan: Optional[List[ResourceDescriptor]] = None
        self._group_name: Optional[str] = None
        self._live: Dict[str, LiveResource] = {}
        self._applied = False

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def history(self) -> List[WorkflowState]:
        return list(self._history)

    @property
    def group_name(self) -> Optional[str]:
        return self._group_name

    @property
    def plan_order(self) -> List[ResourceDescriptor]:
        """Planned descriptors in creation order (empty before plan())."""
        return list(self._plan or [])

    @property
    def live_resources(self) -> Dict[str, LiveResource]:
        """Live resources created so far, keyed by name."""
        return dict(self._live)

    def plan(self, descriptors: Sequence[ResourceDescriptor]) -> List[ResourceDescriptor]:
        """Validate a descriptor set and fix its creation order.

        No provider call is made. The set must contain exactly one ResourceGroup
        descriptor; its name becomes the workflow's group name.

        Args:
            descriptors: Descriptor set

        Returns:
            Descriptors in creation order

        Raises:
            InvalidStateError: If the workflow already left the planned state
            ValidationError: If the descriptor set is invalid (including
                CyclicDependencyError and UnknownDependencyError)
        """
        if self._state != WorkflowState.PLANNED or self._applied:
            raise InvalidStateError("plan", self._state.value, [WorkflowState.PLANNED.value])

        groups = [d for d in descriptors if d.kind == ResourceKind.RESOURCE_GROUP]
        if len(groups) != 1:
            raise ValidationError(f"Descriptor set must contain exactly one ResourceGroup, found {len(groups)}")

        ordered = self.orderer.order(descriptors)
        check_references(ordered)

        self._plan = ordered
        self._group_name = groups[0].name
        logger.info(
            f"Planned {len(ordered)} resource(s) in group '{self._group_name}': "
            f"{', '.join(d.name for d in ordered)}"
        )
        return list(ordered)

    def apply(self) -> Dict[str, LiveResource]:
        """Create every planned resource in dependency order.

        Returns:
            Live resources keyed by name

        Raises:
            InvalidStateError: If there is no plan or the plan was already applied
            ProviderError: If a provider call fails; remaining steps are skipped
                and the workflow is left in the failed state
            WorkflowCancelledError: If cancellation was requested between steps
        """
        if self._plan is None or self._applied or self._state != WorkflowState.PLANNED:
            raise InvalidStateError("apply", self._state.value, [WorkflowState.PLANNED.value])

        self._applied = True
        self._transition(WorkflowState.CREATING)
        group_name = self._group_name or ""

        for index, descriptor in enumerate(self._plan):
            if self.cancellation is not None and self.cancellation.cancelled:
                self._transition(WorkflowState.FAILED)
                raise WorkflowCancelledError(completed=index, remaining=len(self._plan) - index)

            logger.info(f"Creating {descriptor.kind.value} '{descriptor.name}' ({index + 1}/{len(self._plan)})")
            try:
                resolved = resolve_descriptor(descriptor, self._live)
                live = self.provider.create_or_update(group_name, descriptor.name, resolved)
            except ProviderError as e:
                self._transition(WorkflowState.FAILED)
                error = e.with_context(resource_name=descriptor.name, kind=descriptor.kind.value, phase="apply")
                logger.error(f"Failed to create {descriptor.kind.value} '{descriptor.name}': {error}")
                raise error from e
            except ValidationError:
                self._transition(WorkflowState.FAILED)
                raise

            self._live[descriptor.name] = live
            logger.debug(f"Created {descriptor.name}: {live.id}")

        self._transition(WorkflowState.READY)
        return dict(self._live)

    def lifecycle(self, operation: LifecycleOperation, target: str) -> WorkflowState:
        """Run a power lifecycle operation on a virtual machine.

        Blocks until the provider confirms completion.

        Args:
            operation: Stop, Start or Restart
            target: Name of a live virtual machine

        Returns:
            Workflow state after the operation

        Raises:
            InvalidStateError: If the workflow state does not allow the operation
            ValidationError: If target is not a live virtual machine
            ProviderError: If the provider call fails (OperationTimeoutError on
                timeout); the workflow is left in the failed state
        """
        operation = LifecycleOperation(operation)
        if self._state not in operation.required_states:
            raise InvalidStateError(
                operation.value, self._state.value, [s.value for s in operation.required_states]
            )

        live = self._live.get(target)
        if live is None:
            raise ValidationError(f"Unknown lifecycle target: {target}")
        if live.kind != ResourceKind.VIRTUAL_MACHINE:
            kind = live.kind.value if live.kind else live.resource_type
            raise ValidationError(f"Lifecycle target '{target}' is a {kind}, not a VirtualMachine")

        call = {
            LifecycleOperation.STOP: self.provider.power_off,
            LifecycleOperation.START: self.provider.start,
            LifecycleOperation.RESTART: self.provider.restart,
        }[operation]

        self._transition(operation.transient_state)
        try:
            call(self._group_name or "", target)
        except ProviderError as e:
            self._transition(WorkflowState.FAILED)
            raise e.with_context(
                resource_name=target, kind=ResourceKind.VIRTUAL_MACHINE.value, phase=operation.value
            ) from e

        self._transition(operation.final_state)
        return self._state

    def export_template(self, resource_filter: Sequence[str] = ALL_RESOURCES) -> str:
        """Export the resource group's current template.

        Read-only; the workflow state is unchanged.

        Raises:
            InvalidStateError: If the workflow is deleted or has no plan
            ProviderError: If the provider call fails
        """
        self._require_readable("export template")
        try:
            return self.provider.export_template(self._group_name or "", resource_filter)
        except ProviderError as e:
            raise e.with_context(
                resource_name=self._group_name, kind=ResourceKind.RESOURCE_GROUP.value, phase="export"
            ) from e

    def list_resources(self) -> List[LiveResource]:
        """List the resources the provider reports inside the group.

        Raises:
            InvalidStateError: If the workflow is deleted or has no plan
            ProviderError: If the provider call fails
        """
        self._require_readable("list resources")
        try:
            return self.provider.list_resources(self._group_name or "")
        except ProviderError as e:
            raise e.with_context(
                resource_name=self._group_name, kind=ResourceKind.RESOURCE_GROUP.value, phase="list"
            ) from e

    def teardown(self) -> WorkflowState:
        """Delete the resource group and everything in it.

        Calling teardown() on a deleted workflow is a no-op. A workflow that was
        never applied has nothing to delete and moves straight to deleted.

        Returns:
            Workflow state after teardown

        Raises:
            TeardownError: If the provider reports an error; the workflow stays
                in the deleting state so the caller can retry
        """
        if self._state == WorkflowState.DELETED:
            logger.debug("Teardown requested on deleted workflow, nothing to do")
            return self._state

        if not self._applied:
            self._transition(WorkflowState.DELETED)
            return self._state

        group_name = self._group_name or ""
        if self._state != WorkflowState.DELETING:
            self._transition(WorkflowState.DELETING)

        logger.info(f"Deleting resource group '{group_name}'")
        try:
            self.provider.delete(group_name)
        except ProviderError as e:
            logger.error(f"Failed to delete resource group '{group_name}': {e}")
            raise TeardownError(group_name, e) from e

        self._live.clear()
        self._transition(WorkflowState.DELETED)
        return self._state

    def _require_readable(self, operation: str) -> None:
        if self._state == WorkflowState.DELETED or self._group_name is None:
            allowed = [s.value for s in WorkflowState if s != WorkflowState.DELETED]
            raise InvalidStateError(operation, self._state.value, allowed)

    def _transition(self, new_state: WorkflowState) -> None:
        logger.info(f"Workflow state: {self._state.value} -> {new_state.value}")
        self._state = new_state
        self._history.append(new_state)
