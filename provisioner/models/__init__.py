"""Data models for descriptors, live resources and workflow state."""

from __future__ import annotations

from .descriptor import PropertyValue, ResourceDescriptor, ResourceKind
from .live_resource import LiveResource
from .workflow_state import LifecycleOperation, WorkflowState

__all__ = [
    "LifecycleOperation",
    "LiveResource",
    "PropertyValue",
    "ResourceDescriptor",
    "ResourceKind",
    "WorkflowState",
]
