"""Workflow state machine values."""

from __future__ import annotations

from enum import Enum


class WorkflowState(Enum):
    """Provisioning workflow state.

    State transitions:
        planned → creating → ready (all resources created)
        planned → creating → failed (provider error, no rollback)
        ready → stopping → stopped → starting → ready
        ready → restarting → ready
        any → deleting → deleted
    """

    PLANNED = "planned"
    CREATING = "creating"
    READY = "ready"
    STOPPING = "stopping"
    STOPPED = "stopped"
    STARTING = "starting"
    RESTARTING = "restarting"
    DELETING = "deleting"
    DELETED = "deleted"
    FAILED = "failed"


class LifecycleOperation(Enum):
    """Power lifecycle operations on a virtual machine."""

    STOP = "stop"
    START = "start"
    RESTART = "restart"

    @property
    def required_states(self) -> tuple[WorkflowState, ...]:
        """States in which this operation may be issued."""
        if self is LifecycleOperation.START:
            return (WorkflowState.STOPPED, WorkflowState.READY)
        return (WorkflowState.READY,)

    @property
    def transient_state(self) -> WorkflowState:
        """State held while the provider call is in flight."""
        return {
            LifecycleOperation.STOP: WorkflowState.STOPPING,
            LifecycleOperation.START: WorkflowState.STARTING,
            LifecycleOperation.RESTART: WorkflowState.RESTARTING,
        }[self]

    @property
    def final_state(self) -> WorkflowState:
        """State reached once the provider confirms completion."""
        if self is LifecycleOperation.STOP:
            return WorkflowState.STOPPED
        return WorkflowState.READY
