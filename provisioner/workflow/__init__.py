"""Provisioning workflow module.

This module orders resource descriptors, creates them through a provider
client and drives lifecycle and teardown operations.

Classes:
    ProvisioningWorkflow: Main orchestrator for a provisioning run
    DependencyOrderer: Dependency graph construction and creation ordering
    WorkflowRunner: Caller-driven step interface over a workflow
    CancellationToken: Cooperative cancellation between apply steps
"""

from __future__ import annotations

from .dependency import DependencyOrderer
from .engine import CancellationToken, ProvisioningWorkflow
from .runner import Step, StepOutcome, WorkflowRunner

__all__ = [
    "CancellationToken",
    "DependencyOrderer",
    "ProvisioningWorkflow",
    "Step",
    "StepOutcome",
    "WorkflowRunner",
]
